"""
Startup check for the configured data directory.

The database files must never live inside the application's own source tree:
a deploy that wipes or syncs the app directory would take the data with it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def verify_data_location(data_path: str, app_root: str | Path | None = None) -> Path:
    """
    Return the resolved data path, or raise `ConfigurationError` if it is unsafe.

    A missing directory is only a warning; it is created by the store on first start.
    """
    raw = (data_path or "").strip()
    if not raw:
        raise ConfigurationError("DB_DATA_PATH is not set.")

    resolved = Path(raw).expanduser().resolve()
    project = Path(app_root if app_root is not None else Path.cwd()).resolve()

    if resolved == project or resolved.is_relative_to(project):
        raise ConfigurationError(
            f"Data directory {resolved} is inside the application directory {project}. "
            "Point DB_DATA_PATH to a directory outside the application."
        )

    if not resolved.exists():
        logger.warning("data_path_missing path=%s", resolved)

    logger.info("data_location_ok path=%s", resolved)
    return resolved
