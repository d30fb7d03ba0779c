"""
Per-class logging for the puzzle core

Every element, coordinator and session writes through a ClassLogger that
tags records with its class name and filters by its own level, while all of
them share the handlers of one HybridLogger.
"""

import logging
import sys
import traceback
from contextlib import suppress
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(class_name)s] %(message)s"


class ColoredFormatter(logging.Formatter):
    """Bracketed [time] [level] [class] format, ANSI coloured on the console"""

    COLORS = {
        logging.DEBUG: "\033[94m",     # Blue
        logging.INFO: "\033[92m",      # Green
        logging.WARNING: "\033[93m",   # Yellow
        logging.ERROR: "\033[91m",     # Red
        logging.CRITICAL: "\033[95m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = False):
        super().__init__(LOG_FORMAT)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        # Records from plain stdlib loggers carry no class name
        if not hasattr(record, "class_name"):
            record.class_name = "Main"
        formatted = super().format(record)
        if not self.use_colors:
            return formatted
        color = self.COLORS.get(record.levelno, self.RESET)
        return f"{color}{formatted}{self.RESET}"


class ClassLogger:
    """
    Level-filtered logger for one component class.

    Usage:
        logger = main_logger.get_class_logger("PuzzleCoordinator", logging.DEBUG)
        logger.info("Correct step: rune_1 (step 1/3)")
        element_logger = logger.create_class_logger("PuzzleElement")
    """

    def __init__(self, main_logger: logging.Logger, class_name: str, level: int):
        self.main_logger = main_logger
        self.class_name = class_name
        self.level = level

    def is_enabled_for(self, level: int) -> bool:
        return level >= self.level

    def _log(self, level: int, message: str, exc_info=None) -> None:
        if not self.is_enabled_for(level):
            return
        self.main_logger.log(level, message, exc_info=exc_info, extra={"class_name": self.class_name})

    def debug(self, message: str) -> None:
        self._log(logging.DEBUG, message)

    def info(self, message: str) -> None:
        self._log(logging.INFO, message)

    def warning(self, message: str) -> None:
        self._log(logging.WARNING, message)

    def error(self, message: str, exception: Optional[BaseException] = None) -> None:
        """
        Log an error, optionally with the origin of an exception.

        Args:
            message: What failed
            exception: Caught exception; its type, file and line are appended
        """
        if exception is None:
            self._log(logging.ERROR, message)
            return
        frames = traceback.extract_tb(exception.__traceback__)
        origin = f"{frames[-1].filename}:{frames[-1].lineno}" if frames else "unknown"
        self._log(
            logging.ERROR,
            f"{message} | {type(exception).__name__} at {origin}",
            exc_info=(type(exception), exception, exception.__traceback__),
        )

    def create_class_logger(self, class_name: str, level: Optional[int] = None) -> "ClassLogger":
        """Sibling logger on the same handlers (inherits this level unless given)"""
        return ClassLogger(self.main_logger, class_name, self.level if level is None else level)

    def flush(self) -> None:
        for handler in self.main_logger.handlers:
            with suppress(OSError, ValueError):
                handler.flush()


class HybridLogger:
    """
    Owns the handlers for one puzzle room: coloured stdout plus an optional
    timestamped log file under log_dir.
    """

    def __init__(self, name: str = "puzzle", log_dir: str = "logs", log_to_file: bool = True):
        self.name = name
        self.log_dir = Path(log_dir)
        self.log_to_file = log_to_file
        self.log_file: Optional[Path] = None
        self.class_loggers: Dict[str, ClassLogger] = {}

        self.main_logger = logging.getLogger(name)
        self.main_logger.setLevel(logging.DEBUG)
        self.main_logger.propagate = False
        self.main_logger.handlers.clear()
        self._add_handlers()

    def _add_handlers(self) -> None:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(ColoredFormatter(use_colors=True))
        self.main_logger.addHandler(console)

        if not self.log_to_file:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"{self.name}_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}.log"
        file_handler = logging.FileHandler(self.log_file, encoding="utf-8")
        file_handler.setFormatter(ColoredFormatter(use_colors=False))
        self.main_logger.addHandler(file_handler)

    def get_class_logger(self, class_name: str, level: int = logging.INFO) -> ClassLogger:
        """
        Logger for one component class (cached by name).

        Args:
            class_name: Shown in the [class] column
            level: Minimum level for this class
        """
        if class_name not in self.class_loggers:
            self.class_loggers[class_name] = ClassLogger(self.main_logger, class_name, level)
        return self.class_loggers[class_name]

    def cleanup(self) -> None:
        """Flush and close every handler"""
        for handler in self.main_logger.handlers:
            with suppress(OSError, ValueError):
                handler.flush()
                handler.close()
        self.main_logger.handlers.clear()


_default_logger: Optional[HybridLogger] = None


def get_default_class_logger(class_name: str, level: int = logging.INFO) -> ClassLogger:
    """
    Class logger backed by a shared console-only HybridLogger.

    Used when a component is constructed without an injected logger.
    """
    global _default_logger
    if _default_logger is None:
        _default_logger = HybridLogger("puzzle", log_to_file=False)
    return _default_logger.get_class_logger(class_name, level)
