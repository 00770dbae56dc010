import os
import logging
import sys

from uvicorn import Config, Server
from loguru import logger


def get_log_level(level_name: str, default_level: int = logging.INFO) -> int:
    """Convert log level name to numeric level."""
    return logging.getLevelNamesMapping().get(level_name.upper(), default_level)


LOG_LEVEL = get_log_level(os.environ.get("LOG_LEVEL", "INFO"))
JSON_LOGS = os.environ.get("JSON_LOGS", "0") == "1"
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8000"))


class InterceptHandler(logging.Handler):
    """Route stdlib records (uvicorn, sqlalchemy, httpx) into loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        # walk out of the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging():
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(LOG_LEVEL)
    for name in logging.root.manager.loggerDict.keys():
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
    logger.configure(
        handlers=[
            {"sink": sys.stdout, "level": LOG_LEVEL, "serialize": JSON_LOGS},
        ]
    )


if __name__ == "__main__":
    server = Server(
        Config(
            "app.main:app",
            host=HOST,
            port=PORT,
            log_level=LOG_LEVEL,
            log_config=None,
        ),
    )
    # last, so no library replaces our handlers afterwards
    setup_logging()
    server.run()
