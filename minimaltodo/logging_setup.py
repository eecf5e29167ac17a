import os
import sys

from loguru import logger


def setup_logging(config=None) -> None:
    if config is None:
        from minimaltodo.config import settings as config

    level = (config.log_level or "INFO").upper()
    log_dir = os.path.dirname(config.log_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger.remove()
    logger.add(sys.stdout, level=level)
    logger.add(config.log_path, rotation="10 MB", level=level)
