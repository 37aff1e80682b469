import logging
import sys


def setup_logger(level: int = logging.INFO):
    """Configures the root logger for the application."""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Console handler
    handler = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"
    )
    handler.setFormatter(formatter)

    # Only one handler, even when called again with a new level
    if not logger.handlers:
        logger.addHandler(handler)

    # googleapiclient logs every discovery fetch at INFO
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
