import logging
import logging.config


def configure_logging(level: str = "INFO") -> None:
    level = (level or "INFO").upper()
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        "loggers": {
            # engineio/socketio are chatty at INFO
            "engineio": {"level": "WARNING"},
            "socketio": {"level": "WARNING"},
        },
    }

    logging.config.dictConfig(config)
