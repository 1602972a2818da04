from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default
FALLBACK_LOG_NAME = "t2-postinstall.log"

_CONFIGURED_ATTR = "_t2_postinstall_configured"
_PATH_ATTR = "_t2_postinstall_log_path"


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure root logging for a provisioning run.

    The log goes to /var/log/t2-postinstall.log. When that is not writable
    (e.g. a dry run as a normal user) it falls back to ./t2-postinstall.log.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    if getattr(logger, _CONFIGURED_ATTR, False):
        return getattr(logger, _PATH_ATTR, log_path)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        chosen_path = log_path
    except OSError:
        chosen_path = str(Path.cwd() / FALLBACK_LOG_NAME)
        file_handler = logging.FileHandler(chosen_path)

    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        logger.addHandler(console)

    setattr(logger, _CONFIGURED_ATTR, True)
    setattr(logger, _PATH_ATTR, chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
