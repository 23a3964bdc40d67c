import logging
from pathlib import Path

from hrd_evolved.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: str | int) -> int:
    """Logging level number for a level name (any case) or number."""
    if isinstance(level, int):
        return level
    number = logging.getLevelName(str(level).upper())
    if not isinstance(number, int):
        raise ConfigurationError("Unknown log level", {"log_level": level})
    return number


def setup_logger(name: str = "hrd_evolved", level: str | int = "INFO", file: str | None = None) -> logging.Logger:
    """
    Configure the package logger: a console handler, plus a file handler when
    ``file`` is given.

    Calling it again only changes the level of the existing handlers; the
    training modules log through children of this logger.
    """
    number = resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(number)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(number)
        return logger

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if file:
        path = Path(file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(number)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    return logger
