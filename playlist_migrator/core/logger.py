"""
Logging configuration for playlist-migrator.

This module sets up the logging system with multiple outputs:
    - Console: Colored messages written through tqdm so they do not break
      the migration progress bar
    - log_full_{timestamp}.log: Complete log of all events (DEBUG and above)
    - log_errors_{timestamp}.log: Only ERROR and CRITICAL level messages
    - migration_failures_{timestamp}.log: Tracks that could not be migrated,
      one block per track with the reason

Everything written to the screen is also saved to file, then filtered into
the specialized files.

Usage:
    from playlist_migrator.core.logger import setup_logging, get_logger

    setup_logging(config.log_directory)  # Call once at startup
    logger = get_logger(__name__)        # Get logger for each module

    logger.info("Starting migration")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


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
    Formatter that colors the level name for console output.

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
        return f"{color}{record.levelname}{Colors.RESET}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    Uses tqdm.write(), which prints above any active progress bar instead of
    interleaving with its carriage-return updates.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            # Resolved per record so a redirected sys.stderr is honored
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class TrackFailureHandler(logging.Handler):
    """
    Handler that captures failed tracks into the migration failures report.

    Writes one human-readable block per failed track:

        Song Title - Artist Name
        https://open.spotify.com/track/xxxxx
        reason: Target catalog timed out

    Only records carrying a 'failed_track_name' extra field are written;
    everything else is ignored. Use log_track_failure() to produce them.

    Attributes:
        report_path: Path to the report file.
        report_file: Open file handle, set by open().
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "failed_track_name"):
            return

        if self.report_file is None:
            return

        try:
            name = getattr(record, "failed_track_name", "Unknown")
            artist = getattr(record, "failed_track_artist", "Unknown")
            url = getattr(record, "failed_track_url", "")
            reason = getattr(record, "failed_track_reason", "")

            self.report_file.write(f"{name} - {artist}\n")
            if url:
                self.report_file.write(f"{url}\n")
            self.report_file.write(f"reason: {reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only passes ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, verbose: bool = False) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        log_dir: Directory where log files will be created.
        verbose: If True, the console handler also shows DEBUG records.

    Behavior:
        1. Create log_dir if it doesn't exist
        2. Configure root logger level to DEBUG
        3. Console handler (TqdmLoggingHandler), INFO or DEBUG
        4. Full log file handler, DEBUG
        5. Error-only log file handler
        6. Migration failures report handler
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove handlers from any previous setup_logging() call
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_handler = logging.FileHandler(
        log_dir / f"log_full_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        log_dir / f"log_errors_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    failures_handler = TrackFailureHandler(log_dir / f"migration_failures_{timestamp}.log")
    failures_handler.open()
    root_logger.addHandler(failures_handler)

    # Third-party loggers are far too chatty at DEBUG
    for noisy in ("urllib3", "spotipy"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called will have no
        handlers and will not produce output.
    """
    return logging.getLogger(name)


def log_track_failure(
    logger: logging.Logger,
    track_name: str,
    artist: str,
    spotify_url: str,
    reason: str
) -> None:
    """
    Log a track that could not be migrated.

    The record goes to the console and error log like any other error and
    is additionally written to the migration failures report.
    """
    logger.error(
        f"Failed to migrate {artist} - {track_name}: {reason}",
        extra={
            "failed_track_name": track_name,
            "failed_track_artist": artist,
            "failed_track_url": spotify_url,
            "failed_track_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Flush, close and detach all root handlers.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except Exception:
            pass
        root_logger.removeHandler(handler)
