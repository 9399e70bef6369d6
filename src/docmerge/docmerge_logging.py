import logging
import os
import sys

from .config import LOGGER_LEVEL

# Convert the string to a logging level
env_log_level = getattr(logging, LOGGER_LEVEL, logging.INFO)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s (file: %(filename)s, line: %(lineno)d)'


# Generic logger creation function to be used by all modules
def create_logger(name: str, level: int = None, propagate: bool = False) -> logging.Logger:
    _level = level if level is not None else env_log_level
    # check if there is a specific log level for the module
    module_log_level = os.getenv(f'LOGGER_LEVEL.{name}')
    if level is None and module_log_level:
        _level = getattr(logging, module_log_level.upper(), _level)

    logger = logging.getLogger(name)
    logger.setLevel(_level)
    # avoid stacking handlers when the same logger is requested twice
    if not any(getattr(h, '_docmerge_handler', False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._docmerge_handler = True
        logger.addHandler(handler)
    logger.propagate = propagate
    return logger
