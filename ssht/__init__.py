"""ssht - tmux pane navigation bridge over a shared SSH connection."""

__version__ = "0.1.0"
