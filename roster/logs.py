import logging
import os

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ErrorLogHandler(logging.FileHandler):
    """Append-only file handler that creates its directory on first write."""

    def __init__(self, filename):
        super().__init__(filename, mode="a", encoding="utf-8", delay=True)

    def _open(self):
        os.makedirs(os.path.dirname(self.baseFilename), exist_ok=True)
        return super()._open()


def init_error_log(app):
    logger = logging.getLogger("roster")
    logger.setLevel(logging.INFO)

    # create_app may run several times in one process (tests)
    for handler in list(logger.handlers):
        if isinstance(handler, ErrorLogHandler):
            logger.removeHandler(handler)
            handler.close()

    handler = ErrorLogHandler(app.config["ERROR_LOG_FILE"])
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    return handler
