import sys

from loguru import logger


def setup_logging(level: str = "INFO") -> None:
    """
    Send the launcher's own log lines to stderr at the given level.

    stdout is reserved for the node's output, which is forwarded unmodified.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
