"""ssht logging configuration.

ssht uses the shared InstruktAI logging standard (`instrukt_ai_logging`).
The level is taken from `SSHT_LOG_LEVEL`.
"""

from __future__ import annotations

import os
from typing import Optional

from instrukt_ai_logging import configure_logging

from ssht.constants import LOG_LEVEL_ENV


def setup_logging(level: Optional[str] = None) -> None:
    """Configure ssht logging.

    Args:
        level: Optional override for `SSHT_LOG_LEVEL`.
    """
    if level:
        os.environ[LOG_LEVEL_ENV] = level

    configure_logging("ssht")
