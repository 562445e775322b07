import logging
import logging.config
import logging.handlers
import json
import pathlib
import datetime as dt
from typing import Dict, Any, Optional, Set

# LogRecord attributes that are never copied into the "extra" section
LOG_RECORD_BUILTIN_ATTRS: Set[str] = {
    "args", "asctime", "created", "exc_info", "exc_text", "filename",
    "funcName", "levelname", "levelno", "lineno", "module", "msecs",
    "message", "msg", "name", "pathname", "process", "processName",
    "relativeCreated", "stack_info", "thread", "threadName", "taskName",
}

class JSONFormatter(logging.Formatter):
    """
    Formats each record as one JSON object per line.

    ``fmt_keys`` maps output keys to LogRecord attribute names, e.g.
    ``{"level": "levelname", "logger": "name"}``. ``message`` and
    ``timestamp`` are always present; anything passed through ``extra=``
    (such as ``room_code``) is appended as-is.
    """

    def __init__(self, *, fmt_keys: Optional[Dict[str, str]] = None, datefmt: Optional[str] = None):
        super().__init__(datefmt=datefmt)
        self.fmt_keys = fmt_keys if fmt_keys is not None else {}

    def format(self, record: logging.LogRecord) -> str:
        message = self._prepare_log_dict(record)
        return json.dumps(message, default=str)

    def _prepare_log_dict(self, record: logging.LogRecord) -> Dict[str, Any]:
        always_fields: Dict[str, Any] = {"message": record.getMessage()}

        if self.datefmt:
            always_fields["timestamp"] = self.formatTime(record, self.datefmt)
        else:
            always_fields["timestamp"] = dt.datetime.fromtimestamp(
                record.created, tz=dt.timezone.utc
            ).isoformat()

        if record.exc_info:
            always_fields["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            always_fields["stack_info"] = self.formatStack(record.stack_info)

        message_dict: Dict[str, Any] = {}
        for key, record_attr in self.fmt_keys.items():
            if record_attr in always_fields:
                message_dict[key] = always_fields[record_attr]
                continue
            val = getattr(record, record_attr, None)
            if val is not None:
                message_dict[key] = val

        mapped_attrs = set(self.fmt_keys.values())
        for key, value in always_fields.items():
            if key not in mapped_attrs and key not in message_dict:
                message_dict[key] = value

        for key, val in record.__dict__.items():
            if key not in LOG_RECORD_BUILTIN_ATTRS and key not in message_dict and key not in mapped_attrs:
                message_dict[key] = val

        return message_dict


FALLBACK_FORMAT = "%(levelname)-8s [%(name)s] %(message)s"


def configure_logging(config_file: pathlib.Path, log_dir: pathlib.Path = pathlib.Path("logs")) -> Optional[logging.handlers.QueueHandler]:
    """
    Applies a ``dictConfig`` JSON file and returns the root QueueHandler, if any,
    so the caller can start and stop its listener. An unreadable or invalid
    file leaves plain stdout logging in place and returns None.
    """
    try:
        config = json.loads(config_file.read_text())
        log_dir.mkdir(exist_ok=True)
        logging.config.dictConfig(config)
    except (OSError, ValueError, TypeError) as e:
        # json.JSONDecodeError is a ValueError; dictConfig raises ValueError for bad sections
        print(f"ERROR: Could not apply logging config {config_file}: {e}. Falling back to basic stdout logging.")
        logging.basicConfig(level=logging.INFO, format=FALLBACK_FORMAT)
        return None

    queue_handler = next(
        (handler for handler in logging.getLogger().handlers if isinstance(handler, logging.handlers.QueueHandler)),
        None,
    )
    if queue_handler is None:
        logging.getLogger("guess_link.core.logging_utils").error(
            "QueueHandler not found in root logger. Off-thread logging will not work as intended."
        )
    return queue_handler
