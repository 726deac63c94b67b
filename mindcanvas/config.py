"""Client configuration and logging setup."""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_API_URL = "http://localhost:5001/api"
DEFAULT_TIMEOUT = 15.0
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "mindcanvas"

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


@dataclass
class ClientConfig:
    """Where the document API and the auth service live."""
    api_url: str = DEFAULT_API_URL
    auth_url: str = ""
    auth_key: str = ""
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    data_dir: Path = DEFAULT_DATA_DIR

    @property
    def auth_enabled(self) -> bool:
        return bool(self.auth_url)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build a config from environment variables.

        MINDCANVAS_API_URL
            Base URL of the document API (default ``http://localhost:5001/api``).
        MINDCANVAS_AUTH_URL / MINDCANVAS_AUTH_KEY
            Supabase project URL and anon key. Login is disabled when unset.
        MINDCANVAS_TIMEOUT
            Request timeout in seconds (default ``15``).
        MINDCANVAS_LOG_LEVEL
            Logging level name (default ``INFO``).
        MINDCANVAS_DATA_DIR
            Local data directory (default ``~/.local/share/mindcanvas``).
        """
        timeout = DEFAULT_TIMEOUT
        raw_timeout = os.environ.get("MINDCANVAS_TIMEOUT", "")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                timeout = DEFAULT_TIMEOUT
            if timeout <= 0:
                timeout = DEFAULT_TIMEOUT

        data_env = os.environ.get("MINDCANVAS_DATA_DIR", "")

        return cls(
            api_url=(os.environ.get("MINDCANVAS_API_URL") or DEFAULT_API_URL).rstrip("/"),
            auth_url=(os.environ.get("MINDCANVAS_AUTH_URL") or "").rstrip("/"),
            auth_key=os.environ.get("MINDCANVAS_AUTH_KEY") or "",
            timeout=timeout,
            log_level=(os.environ.get("MINDCANVAS_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
            data_dir=Path(data_env).expanduser() if data_env else DEFAULT_DATA_DIR,
        )


def setup_logging(level: Optional[str] = None) -> None:
    """Send ``mindcanvas.*`` records to stderr. Safe to call more than once."""
    level_name = (level or DEFAULT_LOG_LEVEL).upper()
    numeric = logging.getLevelName(level_name)
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logger = logging.getLogger("mindcanvas")
    logger.setLevel(numeric)
    if not any(getattr(h, "_mindcanvas", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._mindcanvas = True
        logger.addHandler(handler)
