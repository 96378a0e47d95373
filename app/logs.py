import logging
import os


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    _level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, _level, logging.INFO))
    logger.propagate = False
    return logger
