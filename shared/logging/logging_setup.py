"""Logging for docqa_bridge.

One console handler (colored) and one file handler at ``<ROOT_DIR>/logs/app.log``
(plain). Timestamps use the ``TIMEZONE`` zone, ``LOG_LEVEL`` picks the level.
"""

from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os

APP_LOGGER_NAME = "docqa_bridge"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(marker)s%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RESET = "\033[0m"
_COLORS = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}

# chatty at INFO, only raised to DEBUG together with the app
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "multipart")


def _marker_for(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "⛔ "
    if levelno >= logging.WARNING:
        return "⚠️ "
    return ""


class ZonedFormatter(logging.Formatter):
    """Renders ``asctime`` in a fixed pytz zone and fills the ``marker`` field.

    With ``colored=True`` the whole line is wrapped in the ANSI color named by
    the record's ``color`` attribute, if any.
    """

    def __init__(self, fmt: str, datefmt: str, tz_name: str, colored: bool = False):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.zone = timezone(tz_name)
        self.colored = colored

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.zone)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record):
        record.marker = _marker_for(record.levelno)
        line = super().format(record)
        if not self.colored:
            return line
        ansi = _COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{_RESET}" if ansi else line


class ColorLogger(logging.LoggerAdapter):
    """Accepts an extra ``color=`` keyword on every log call.

        logger.info("Document %d completed", document_id, color="green")

    Only the console shows the color.
    """

    def process(self, msg, kwargs):
        color = kwargs.pop("color", None)
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        return msg, kwargs


def _level_from_env() -> int:
    name = os.getenv("LOG_LEVEL", "info").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _formatter(tz_name: str, colored: bool) -> dict:
    return {
        "()": ZonedFormatter,
        "fmt": LOG_FORMAT,
        "datefmt": DATE_FORMAT,
        "tz_name": tz_name,
        "colored": colored,
    }


def setup_logging() -> ColorLogger:
    """Install the handlers on the root logger and hand back the application logger."""
    level = _level_from_env()
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    log_dir = os.path.join(os.getenv("ROOT_DIR") or os.getcwd(), "logs")
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": _formatter(tz_name, colored=False),
            "colored": _formatter(tz_name, colored=True),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "colored",
                "level": level,
            },
            "file": {
                "class": "logging.FileHandler",
                "filename": os.path.join(log_dir, "app.log"),
                "encoding": "utf-8",
                "formatter": "plain",
                "level": level,
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    })

    quiet_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    return ColorLogger(logging.getLogger(APP_LOGGER_NAME), {})
