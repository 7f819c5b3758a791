"""
Logging system for the form flow engine.
Provides human-readable console logs with optional file output.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    BOLD = "\033[1m"


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record):
        # Work on a copy so file handlers sharing the record stay uncolored
        record = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        record.msg = f"{color}{record.msg}{Colors.RESET}"
        return super().format(record)


class FormFlowLogger:
    """
    Central logging channel for formflow.

    Features:
    - Console output with colors
    - Optional daily file output (plain text)
    - Structured helpers for the soft-failure channel: a visibility rule
      that failed open, a computed field that fell back
    """

    def __init__(
        self,
        log_dir: str = "logs",
        log_level: str = "INFO",
        log_to_file: bool = False,
    ):
        self.log_dir = Path(log_dir)
        self.log_to_file = log_to_file
        if log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = self._create_logger("formflow", log_level)
        self.rules_logger = logging.getLogger("formflow.rules")
        self.computed_logger = logging.getLogger("formflow.computed")

    def _create_logger(self, name: str, level: str) -> logging.Logger:
        """Create a configured logger instance."""
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(ColoredFormatter(
            "%(asctime)s | %(levelname)s | %(message)s",
            datefmt="%H:%M:%S"
        ))
        logger.addHandler(console_handler)

        if self.log_to_file:
            log_file = self.log_dir / f"formflow_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            logger.addHandler(file_handler)

        return logger

    def info(self, msg: str, *args, **kwargs):
        """Log info message."""
        self.main_logger.info(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message."""
        self.main_logger.debug(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message."""
        self.main_logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message."""
        self.main_logger.error(msg, *args, **kwargs)

    def rule_failure(self, element_id: str, error: BaseException, **kwargs):
        """
        Log a visibility rule that raised and was treated as visible.

        Args:
            element_id: Step id or field name whose rule failed
            error: The exception raised during evaluation
            **kwargs: Additional context
        """
        parts = [
            "[RULE:FAIL_OPEN]",
            f"element={element_id}",
            f"error={type(error).__name__}: {error}",
        ]
        for key, value in kwargs.items():
            parts.append(f"{key}={value}")
        self.rules_logger.error(" | ".join(parts))

    def computed_failure(self, path: str, error: BaseException, fallback=None, **kwargs):
        """
        Log a computed field that failed and received its fallback value.

        Args:
            path: Normalized computed field path
            error: The exception raised during evaluation
            fallback: Value written instead
            **kwargs: Additional context
        """
        parts = [
            "[COMPUTED:FALLBACK]",
            f"path={path}",
            f"fallback={fallback!r}",
            f"error={type(error).__name__}: {error}",
        ]
        for key, value in kwargs.items():
            parts.append(f"{key}={value}")
        self.computed_logger.warning(" | ".join(parts))


# Global logger instance
_logger: Optional[FormFlowLogger] = None


def get_logger() -> FormFlowLogger:
    """Get or create the global logger instance from the loaded config."""
    global _logger
    if _logger is None:
        from ..config import get_config

        log = get_config().log
        _logger = FormFlowLogger(log.log_dir, log.level, log.log_to_file)
    return _logger


def setup_logger(
    log_dir: str = "logs",
    log_level: str = "INFO",
    log_to_file: bool = False,
) -> FormFlowLogger:
    """Initialize the logger with custom settings."""
    global _logger
    _logger = FormFlowLogger(log_dir, log_level, log_to_file)
    return _logger
