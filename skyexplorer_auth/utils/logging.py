import logging

from skyexplorer_auth.utils.config import config


def setup_logging(level: str = None):
    """Configure root logging from LOG_LEVEL and return the package logger."""
    log_level = getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger = logging.getLogger("skyexplorer_auth")
    logger.setLevel(log_level)
    return logger
