import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

def setup_logger(name=None, level=logging.INFO) -> logging.Logger:
    """
    Sets up a logger with a standard format. Safe to call more than once.
    With no name the root logger is configured, which covers every module.
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        # getLevelName maps unknown names to a "Level x" string
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
