"""JSON log output for the session store."""

import logging

from pythonjsonlogger import jsonlogger

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


class JSONHandler(logging.StreamHandler):
    """Writes log records to stderr as JSON."""

    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(jsonlogger.JsonFormatter(
            LOG_FORMAT,
            rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
        ))


def setup_logger(level: int = logging.INFO) -> logging.Logger:
    """Emit ``kvsession`` logs as JSON on stderr."""
    logger = logging.getLogger('kvsession')
    for existing in list(logger.handlers):
        if isinstance(existing, JSONHandler):
            logger.removeHandler(existing)
    logger.addHandler(JSONHandler())
    logger.setLevel(level)
    return logger
