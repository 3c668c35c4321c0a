"""
Logging configuration for pipebomb.

The library itself only ever calls get_logger(__name__) and logs; it never
installs handlers. Applications (including the pipebomb command line) call
setup_logging() once at startup to get:

    - Console: coloured, tqdm-compatible output (INFO, or DEBUG if verbose)
    - log_full.log: complete log of all events (DEBUG and above)
    - log_errors.log: only ERROR and CRITICAL level messages
    - refresh_failures.log: playlists whose background refresh failed

The three files are only written when a log directory is given.

Usage:
    from pipebomb.core.logger import setup_logging, get_logger

    setup_logging(Path("logs"))
    logger = get_logger(__name__)
    logger.info("Connected")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


LOG_FULL_FILENAME = "log_full.log"
LOG_ERRORS_FILENAME = "log_errors.log"
REFRESH_FAILURES_FILENAME = "refresh_failures.log"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log format for console output (compact, tqdm-friendly)
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colours the level name on console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to the console without breaking tqdm bars.

    tqdm redraws its bars in place with carriage returns; a plain stream
    handler would interleave with them. tqdm.write() prints above any
    active bar instead.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class RefreshFailureHandler(logging.Handler):
    """
    Handler that collects failed background playlist refreshes.

    Background refresh failures are swallowed by design, so they never reach
    the code that subscribed to the playlist. This handler gives them a
    dedicated, human-readable file instead:

        2024-05-01 12:00:00  7  Server returned 503 Service Unavailable

    Only records carrying the 'refresh_failed_collection_id' extra field are
    written; use log_refresh_failure() to produce them.

    Attributes:
        report_path: Path to the refresh_failures.log file.
        report_file: Open file handle (None until open() is called).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        collection_id = getattr(record, "refresh_failed_collection_id", None)
        if collection_id is None or self.report_file is None:
            return

        try:
            reason = getattr(record, "refresh_failed_reason", record.getMessage())
            timestamp = datetime.fromtimestamp(record.created).strftime(FILE_DATE_FORMAT)
            self.report_file.write(f"{timestamp}  {collection_id}  {reason}\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self.report_file is not None:
            self.report_file.close()
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path | None = None, verbose: bool = False) -> None:
    """
    Configure the logging system for an application using pipebomb.

    This function should be called ONCE at application startup.

    Args:
        log_dir: Directory where log files will be created. If None, only
                 the console handler is installed.
        verbose: If True, the console shows DEBUG records as well.

    Behavior:
        1. Configure root logger level to DEBUG and drop existing handlers
        2. Add console handler (TqdmLoggingHandler, coloured)
        3. If log_dir is given, create it and add the full log, the
           error-only log and the refresh failure report
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    # aiohttp is chatty at DEBUG; keep its access noise out of the console
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)

    full_handler = logging.FileHandler(log_dir / LOG_FULL_FILENAME, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(log_dir / LOG_ERRORS_FILENAME, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    refresh_handler = RefreshFailureHandler(log_dir / REFRESH_FAILURES_FILENAME)
    refresh_handler.open()
    root_logger.addHandler(refresh_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.
              This creates a hierarchy like 'pipebomb.collection.playlist'.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().
    """
    return logging.getLogger(name)


def log_refresh_failure(logger: logging.Logger, collection_id: str, error: BaseException) -> None:
    """
    Log a swallowed background refresh failure.

    Logs at WARNING with the extra fields RefreshFailureHandler looks for.

    Args:
        logger: The logger to use for the message.
        collection_id: ID of the playlist whose refresh failed.
        error: The exception that ended the refresh.
    """
    reason = str(error) or type(error).__name__
    logger.warning(
        f"Background refresh of playlist {collection_id} failed: {reason}",
        extra={
            "refresh_failed_collection_id": collection_id,
            "refresh_failed_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """Flush, close and remove every handler on the root logger."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)
