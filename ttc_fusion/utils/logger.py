"""Logging utilities."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logger(
    name: str = "ttc_fusion",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Set up and configure a logger.

    Args:
        name: Logger name.
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional file path for logging.
        console: Whether to log to console.
        format_string: Custom format string.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers = []

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "ttc_fusion") -> logging.Logger:
    """
    Get a logger below the package logger.

    Names not starting with ``ttc_fusion`` are nested under it so that one
    call to :func:`setup_logger` configures every module.

    Args:
        name: Logger name.

    Returns:
        Logger instance.
    """
    if not name.startswith("ttc_fusion"):
        name = f"ttc_fusion.{name}"
    return logging.getLogger(name)


class LoggerMixin:
    """Mixin class to add logging to any class."""

    @property
    def logger(self) -> logging.Logger:
        """Get class-specific logger."""
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger


class TTCRecorder:
    """
    Record TTC estimates, echoing them to the log and optionally to a file.

    Each value is written as ``"<ttc>;"`` on its own line so a run can be
    pasted into a spreadsheet. With ``verbose`` the echo goes to INFO,
    otherwise to DEBUG.
    """

    def __init__(
        self,
        verbose: bool = False,
        log_file: Optional[Union[str, Path]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.verbose = verbose
        self.logger = logger or get_logger("ttc")
        self.log_file = Path(log_file) if log_file else None
        self._file_logger: Optional[logging.Logger] = None

        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            self._file_logger = logging.getLogger(f"ttc_fusion.record.{self.log_file}")
            self._file_logger.setLevel(logging.INFO)
            self._file_logger.propagate = False
            self._file_logger.handlers = []
            handler = logging.FileHandler(self.log_file)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._file_logger.addHandler(handler)

    def record(self, source: str, ttc: float) -> None:
        """
        Record one TTC value.

        Args:
            source: Estimator that produced it ("camera" or "lidar").
            ttc: TTC in seconds (may be nan/inf).
        """
        level = logging.INFO if self.verbose else logging.DEBUG
        self.logger.log(level, "TTC %s: %.4f s", source, ttc)

        if self._file_logger is not None:
            self._file_logger.info(f"{ttc:.6f};")

    def close(self) -> None:
        """Close the file handler, if any."""
        if self._file_logger is None:
            return
        for handler in self._file_logger.handlers:
            handler.close()
        self._file_logger.handlers = []
