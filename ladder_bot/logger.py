import logging
import os
from pathlib import Path
from typing import Optional

_LOGGER: Optional[logging.Logger] = None

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str = "ladder_bot", logs_dir: Optional[str] = None) -> logging.Logger:
    """Process-wide operator log: console plus ``<logs_dir>/ladder_bot.log``.

    ``LADDER_LOG_DIR`` and ``LADDER_LOG_LEVEL`` override the defaults.
    """
    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    log_path = Path(logs_dir or os.getenv("LADDER_LOG_DIR", "logs"))
    log_path.mkdir(parents=True, exist_ok=True)
    level = logging.getLevelName(os.getenv("LADDER_LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = logging.FileHandler(log_path / "ladder_bot.log", encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(file_handler)
        logger.addHandler(console_handler)

    _LOGGER = logger
    return logger
