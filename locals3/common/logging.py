import json
import logging
from logging.config import dictConfig
from typing import Any

from locals3.common.config import Settings


def setup_logging(settings: Settings) -> None:
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        },
        "startup_console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    }
    root_handlers = ["console"]
    if settings.ERROR_LOG_FILE:
        handlers["error_file"] = {
            "class": "logging.FileHandler",
            "formatter": "json",
            "filename": settings.ERROR_LOG_FILE,
            "level": "ERROR",
            "delay": True,
        }
        root_handlers.append("error_file")

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": JsonFormatter,
                },
                "plain": {
                    "format": "%(levelname)s %(name)s: %(message)s",
                },
            },
            "handlers": handlers,
            "root": {
                "level": "DEBUG" if settings.DEBUG_LOG else "INFO",
                "handlers": root_handlers,
            },
            "loggers": {
                "locals3.startup": {
                    "handlers": ["startup_console"],
                    "level": "INFO",
                    "propagate": False,
                }
            },
        }
    )


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)
