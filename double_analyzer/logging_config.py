import logging
from datetime import datetime
from pathlib import Path

FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# APScheduler warns on every skipped tick while a slow cycle runs
_QUIET = ("apscheduler", "apscheduler.scheduler", "apscheduler.executors.default")


def setup_logging(level: str | int = "INFO", log_dir: str | None = None, name: str = "double_analyzer") -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Logging level name or number
        log_dir: Directory for a timestamped log file (None for console only)
        name: Logger to configure; children inherit its handlers
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(fmt=FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_handler = logging.FileHandler(path / f"{name}_{timestamp}.log", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for noisy in _QUIET:
        logging.getLogger(noisy).setLevel(logging.ERROR)

    logger.debug("Logging initialized for %s", name)
    return logger
