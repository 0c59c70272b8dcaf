"""One-JSON-object-per-line logging for the gateway.

Provides a JSON formatter and a `dictConfig` layout. Records carry the
active correlation scope (`trace_id`, `subject_id`) via `CorrelationFilter`.
"""

import json
import logging
import logging.config
from typing import Any

from dict_gateway.foundation.correlation import CorrelationFilter

# Standard LogRecord attributes that are either emitted under a fixed key or internal
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "asctime",
        "taskName",
        "error",
    }
)


class CustomJSONFormatter(logging.Formatter):
    """Render each record as a single JSON object.

    Fixed keys (`time`, `level`, `logger_name`, `line`, `message`) come first,
    then an `error` object when the record has `exc_info` or an `error` extra,
    then whatever `CorrelationFilter` and `extra=` attached.
    """

    def __init__(self, fmt: str) -> None:
        """`fmt` only drives `asctime`; the output itself is JSON."""
        logging.Formatter.__init__(self, fmt)

    def format(self, record: logging.LogRecord) -> str:
        """Serialize `record`; values json cannot encode fall back to `str()`."""
        logging.Formatter.format(self, record)
        return json.dumps(self.get_log(record), indent=None, default=str)

    def get_log(self, record: logging.LogRecord) -> dict[str, Any]:
        """Collect the fields of `record` that end up in the JSON line.

        Args:
            record: Record already passed through `logging.Formatter.format`.

        Returns:
            Mapping ready for `json.dumps`.
        """
        d: dict[str, Any] = {
            "time": record.asctime,
            "process_id": record.process,
            "thread_name": record.threadName,
            "level": record.levelname,
            "logger_name": record.name,
            "line": record.lineno,
            "message": record.message,
        }

        error_data = getattr(record, "error", None)
        if error_data is not None or record.exc_info:
            error_dict: dict[str, Any] = dict(error_data) if isinstance(error_data, dict) else {}
            if error_data is not None and not isinstance(error_data, dict):
                error_dict["message"] = str(error_data)
            if record.exc_info:
                error_dict["trace"] = self.formatException(record.exc_info)
            d["error"] = error_dict

        # extras and filter-stamped fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                d[key] = value

        return d


LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,  # Keep existing loggers, just configure them
    "filters": {
        "correlation": {"()": CorrelationFilter},
    },
    "formatters": {
        "standard": {"()": lambda: CustomJSONFormatter(fmt="%(asctime)s")},
    },
    "handlers": {
        "default": {
            "formatter": "standard",
            "filters": ["correlation"],
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "dict_gateway": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "dict_gateway.audit": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "urllib3": {
            "handlers": ["default"],
            "level": "WARNING",
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["default"],
        "level": "INFO",
    },
}


def configure_logging(level: str | None = None) -> None:
    """Apply `LOGGING_CONFIG`, optionally overriding the gateway log level."""
    config = dict(LOGGING_CONFIG)
    if level is not None:
        loggers = {name: dict(cfg) for name, cfg in LOGGING_CONFIG["loggers"].items()}
        loggers["dict_gateway"]["level"] = level.upper()
        config["loggers"] = loggers
    logging.config.dictConfig(config)
