"""Constants used across ssht.

This module defines shared constants to ensure consistency.
"""

# IPC socket
SOCKET_DIR = "/tmp/ssht"
MAX_MESSAGE_SIZE = 1024  # One read per request, no framing
SOCKET_MODE = 0o600

# Replies
REPLY_TRUE = "true"
REPLY_FALSE = "false"
REPLY_OK = "ok"
UNRECOGNIZED_PREFIX = "unrecognized command "

# Remote tmux
TMUX_SESSION_NAME = "main"
AT_EDGE_FALSE = b"0\n"  # tmux prints pane_at_* flags as 0/1 plus newline

# ssh exits with 255 when the connection itself fails
SSH_ERROR_EXIT_CODE = 255

# Configuration
DEFAULT_CONFIG_PATH = "~/.config/ssht/ssht.yml"
CONFIG_PATH_ENV = "SSHT_CONFIG"
LOG_LEVEL_ENV = "SSHT_LOG_LEVEL"
