from __future__ import annotations

import logging
import os
import sys
import threading
from typing import Optional


# Custom levels sit between INFO (20) and WARNING (30)
STEP_LEVEL = 25
SUCCESS_LEVEL = 22

logging.addLevelName(STEP_LEVEL, "STEP")
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")


class LogSource:
    """
    Constants for the services and components a message originates from.
    """
    DBLP = "DBLP"
    CORE = "CORE"
    SJR = "SJR"
    PROFILE = "Profile"
    CACHE = "Cache"
    SYSTEM = "System"


class LogCategory:
    """
    Constants for log categories, tagging each message with the pipeline phase it belongs to.
    """
    AUTHOR = "AUTHOR"
    IDENTITY = "IDENTITY"
    FETCH = "FETCH"
    SEARCH = "SEARCH"
    MATCH = "MATCH"
    RANK = "RANK"
    SAVE = "SAVE"
    SKIP = "SKIP"
    ERROR = "ERROR"
    DEBUG = "DEBUG"
    PLAN = "PLAN"


class ColoredFormatter(logging.Formatter):
    """
    Formatter that adds ANSI color codes to level names, source tags and
    category tags so terminal output is easy to scan.
    """

    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD_CYAN = "\033[1;36m"
    BOLD_GREEN = "\033[1;32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BOLD_RED = "\033[1;31m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    GREEN = "\033[32m"
    LIGHT_MAGENTA = "\033[95m"
    DARK_GRAY = "\033[90m"
    BOLD_MAGENTA = "\033[1;35m"
    BOLD_BLUE = "\033[1;34m"
    RESET = "\033[0m"

    LEVEL_COLORS = {
        "DEBUG": CYAN,
        "INFO": WHITE,
        "STEP": BOLD_CYAN,
        "SUCCESS": BOLD_GREEN,
        "WARNING": YELLOW,
        "ERROR": RED,
        "CRITICAL": BOLD_RED,
    }

    SOURCE_COLORS = {
        LogSource.DBLP: CYAN,
        LogSource.CORE: BLUE,
        LogSource.SJR: LIGHT_MAGENTA,
        LogSource.PROFILE: MAGENTA,
        LogSource.CACHE: DARK_GRAY,
        LogSource.SYSTEM: WHITE,
    }

    CATEGORY_COLORS = {
        LogCategory.AUTHOR: BOLD_MAGENTA,
        LogCategory.IDENTITY: BOLD_BLUE,
        LogCategory.FETCH: CYAN,
        LogCategory.SEARCH: YELLOW,
        LogCategory.MATCH: BOLD_GREEN,
        LogCategory.RANK: GREEN,
        LogCategory.SAVE: GREEN,
        LogCategory.SKIP: DARK_GRAY,
        LogCategory.ERROR: RED,
        LogCategory.DEBUG: DARK_GRAY,
        LogCategory.PLAN: MAGENTA,
    }

    def __init__(self, fmt: str, use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the record, prefixing the message with colored source and category tags.
        """
        original_msg = record.msg
        original_levelname = record.levelname

        source = getattr(record, "source", None)
        category = getattr(record, "category", None)

        if self.use_color:
            if record.levelname in self.LEVEL_COLORS:
                record.levelname = f"{self.LEVEL_COLORS[record.levelname]}{record.levelname}{self.RESET}"

            parts = []
            if source:
                color = self.SOURCE_COLORS.get(source)
                parts.append(f"{color}[{source}]{self.RESET}" if color else f"[{source}]")
            if category:
                color = self.CATEGORY_COLORS.get(category)
                parts.append(f"{color}[{category}]{self.RESET}" if color else f"[{category}]")
            if parts:
                record.msg = f"{' '.join(parts)} {record.msg}"

        formatted = super().format(record)

        record.msg = original_msg
        record.levelname = original_levelname
        return formatted


class PlainTagFormatter(logging.Formatter):
    """
    Uncolored formatter for log files, keeping the source and category tags.
    """

    def format(self, record: logging.LogRecord) -> str:
        original_msg = record.msg
        tags = [f"[{t}]" for t in (getattr(record, "source", None), getattr(record, "category", None)) if t]
        if tags:
            record.msg = f"{' '.join(tags)} {record.msg}"
        formatted = super().format(record)
        record.msg = original_msg
        return formatted


class CategoryAdapter(logging.LoggerAdapter):
    """
    Adapter that moves the source and category keyword arguments into the record's extra dict.
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra", {})

        source = kwargs.pop("source", None)
        if source:
            extra["source"] = source

        category = kwargs.pop("category", None)
        if category:
            extra["category"] = category

        kwargs["extra"] = extra
        return msg, kwargs


class MainThreadFilter(logging.Filter):
    """
    Filter that only allows log records from the main thread.
    """
    def filter(self, record: logging.LogRecord) -> bool:
        return threading.current_thread() is threading.main_thread()


class ThreadLocalFileHandler(logging.Handler):
    """
    Handler that delegates to a thread-local file handler if one exists.
    """
    def __init__(self, thread_local_storage: threading.local):
        super().__init__()
        self._tls = thread_local_storage

    def emit(self, record: logging.LogRecord):
        handler = getattr(self._tls, "handler", None)
        if handler:
            handler.emit(record)


class Logger:
    """
    Wrapper around the standard logging module with colored console output,
    custom STEP and SUCCESS levels, source/category tags, and an optional
    per-thread log file. Console output is restricted to the main thread so
    quartile lookups running in a worker pool do not interleave on screen.
    """

    LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self, name: str = "VenueRank"):
        self._logger = logging.getLogger(name)
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        self._logger.handlers.clear()

        self._console_handler = logging.StreamHandler(sys.stdout)
        self._console_handler.setLevel(logging.INFO)
        self._console_handler.addFilter(MainThreadFilter())
        console_formatter = ColoredFormatter(self.LOG_FORMAT, use_color=sys.stdout.isatty())
        console_formatter.datefmt = self.DATE_FORMAT
        self._console_handler.setFormatter(console_formatter)
        self._logger.addHandler(self._console_handler)

        self._thread_local = threading.local()
        self._logger.addHandler(ThreadLocalFileHandler(self._thread_local))

        self._adapter = CategoryAdapter(self._logger, {})

    def set_log_file(self, path: str):
        """
        Start mirroring all log messages to the specified file for the current thread.
        """
        parent = os.path.dirname(path)
        if parent:
            try:
                os.makedirs(parent, exist_ok=True)
            except OSError:
                pass

        try:
            self.close()
            handler = logging.FileHandler(path, mode="w", encoding="utf-8")
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(PlainTagFormatter(self.LOG_FORMAT, datefmt=self.DATE_FORMAT))
            self._thread_local.handler = handler
            self._thread_local.log_file_path = path
        except OSError as e:
            self._thread_local.handler = None
            self._thread_local.log_file_path = None
            self._logger.error(f"Failed to open log file {path}: {e}")

    def close(self):
        """
        Stop logging to file for the current thread.
        """
        handler = getattr(self._thread_local, "handler", None)
        if handler:
            handler.close()
            self._thread_local.handler = None
            self._thread_local.log_file_path = None

    def step(self, msg: str, source: Optional[str] = None, category: Optional[str] = None):
        """
        Log a top-level workflow step.
        """
        self._adapter.log(STEP_LEVEL, msg, source=source, category=category)

    def debug(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.debug(msg, source=source, category=category)

    def info(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.info(msg, source=source, category=category)

    def warn(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.warning(msg, source=source, category=category)

    def error(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.error(msg, source=source, category=category)

    def success(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.log(SUCCESS_LEVEL, msg, source=source, category=category)

    @property
    def log_file_path(self) -> Optional[str]:
        """
        Get the log file path for the current thread.
        """
        return getattr(self._thread_local, "log_file_path", None)


# Global logger instance
logger = Logger()
