import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"


def setup_logger(log_config: Dict[str, Any], log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Attaches handlers to the ``videoport`` package logger.

    The library never calls this itself; applications opt in once at startup,
    usually with the ``logging`` section of their settings file. Calling it
    again keeps the existing handlers and only updates the level.

    Args:
        log_config (Dict[str, Any]): level, format, filename, max_bytes, backup_count.
        log_dir (Optional[Path]): Directory for the rotating log file. When
                                  None, only the console handler is added.

    Returns:
        logging.Logger: The configured package logger.
    """
    log_level = str(log_config.get("level", "INFO")).upper()
    formatter = logging.Formatter(log_config.get("format", DEFAULT_FORMAT))

    logger = logging.getLogger("videoport")
    logger.setLevel(log_level)
    logger.propagate = False  # Prevent duplicate logs in parent loggers

    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / log_config.get("filename", "videoport.log"),
            maxBytes=log_config.get("max_bytes", 5 * 1024 * 1024),  ## 5 MB
            backupCount=log_config.get("backup_count", 5),
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info(f"Logging configured at {log_level}" + (f", files in {log_dir}" if log_dir else "."))
    return logger
