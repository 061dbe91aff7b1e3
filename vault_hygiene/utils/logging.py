import json
import logging
import sys
from typing import Any, Dict, Optional, TextIO

from rich.console import Console
from rich.text import Text

ROOT_LOGGER = "vault_hygiene"

TEXT_FORMAT = "%(asctime)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

STATUS_STYLES = {"ok": "green", "info": "blue", "dry_run": "yellow"}

# attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def record_style(record: logging.LogRecord) -> str:
    """Style from the record's `status` extra when present, else from its level."""
    style = STATUS_STYLES.get(getattr(record, "status", None) or "")
    if style is not None:
        return style
    if record.levelno >= logging.ERROR:
        return "red"
    if record.levelno >= logging.WARNING:
        return "yellow"
    return ""


class ConsoleHandler(logging.Handler):
    """
    Operator-facing status lines rendered through a rich Console.

    The console decides whether to emit color (terminal detection, NO_COLOR and so on).
    Messages are printed as plain Text so secret paths containing brackets are never
    read as markup.
    """

    def __init__(self, console: Console):
        super().__init__()
        self.console = console
        self.setFormatter(logging.Formatter(TEXT_FORMAT, DATE_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = Text(self.format(record), style=record_style(record))
            self.console.print(line, soft_wrap=True, highlight=False)
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # include extra fields (status, path, policy ...) if provided
        for k, v in record.__dict__.items():
            if k in _RESERVED:
                continue
            try:
                json.dumps({k: v})
                data[k] = v
            except (TypeError, ValueError):
                data[k] = str(v)
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    stream: Optional[TextIO] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Install a single handler on the package logger. Safe to call more than once;
    the previous handler is replaced.
    """
    stream = stream or sys.stderr
    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    if fmt == "json":
        handler: logging.Handler = logging.StreamHandler(stream)
        handler.setFormatter(JSONFormatter())
    else:
        handler = ConsoleHandler(console or Console(file=stream))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
