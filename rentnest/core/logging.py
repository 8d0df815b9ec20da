import sys

from loguru import logger

from rentnest.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str = None):
    """Configure loguru with a single stderr sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=(level or settings.LOG_LEVEL).upper(),
        backtrace=settings.DEBUG,
        diagnose=settings.DEBUG,
    )
    return logger
