"""
Logging setup shared by all modules.
"""

import logging
import sys

from daylit.core.config import get_settings

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    settings = get_settings()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root = logging.getLogger("daylit")
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.addHandler(handler)
    root.propagate = False
    _configured = True


def setup_logger(name: str) -> logging.Logger:
    """Return a module logger under the ``daylit`` hierarchy."""
    _configure_root()
    if not name.startswith("daylit"):
        name = f"daylit.{name}"
    return logging.getLogger(name)
