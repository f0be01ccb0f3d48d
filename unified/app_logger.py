import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
BASE_LOGGER = "unified"


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("UNIFIED_LOG_LEVEL", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure the root logger once and return the package logger."""
    resolved = _resolve_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)

    logger = logging.getLogger(BASE_LOGGER)
    logger.setLevel(resolved)

    # Avoid duplicate console handlers on Streamlit reruns
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        ch.setLevel(resolved)
        logger.addHandler(ch)

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger(BASE_LOGGER)
    return base.getChild(name) if name else base
