import sys

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}"


def configure_logging(level: str = "WARNING") -> int:
    """Enable flowlens log output on stderr and return the sink id.

    The package is silent by default so that host applications only see its
    messages after opting in.
    """
    logger.remove()
    logger.enable("flowlens")
    return logger.add(sys.stderr, level=level, format=LOG_FORMAT)
