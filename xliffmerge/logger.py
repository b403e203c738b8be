"""
Centralized Logging Module for xliff-merge.

Provides consistent logging across all modules with output to:
- Console (INFO by default, DEBUG when running verbose)
- File (only when XLIFF_MERGE_LOG_DIR is set, for post-run analysis)
"""
import logging
import os
import sys

LOG_DIR_ENV = "XLIFF_MERGE_LOG_DIR"
LOG_FILE_NAME = "xliff_merge.log"

# Formatter with timestamp, level, module, and message
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s() | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_console_handlers = []
_verbose = False


def get_logger(name: str) -> logging.Logger:
    """
    Returns a configured logger instance.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        A logging.Logger instance configured for console (and optional file) output.
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    log_dir = os.environ.get(LOG_DIR_ENV)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        # File Handler - captures everything (DEBUG and above)
        file_handler = logging.FileHandler(os.path.join(log_dir, LOG_FILE_NAME), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    # Console Handler - only INFO and above unless verbose
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if _verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)
    _console_handlers.append(console_handler)

    return logger


def set_verbose(verbose: bool):
    """Switches every console handler between DEBUG and INFO."""
    global _verbose
    _verbose = verbose
    for handler in _console_handlers:
        handler.setLevel(logging.DEBUG if verbose else logging.INFO)


def setup_exception_hook():
    """
    Installs a global exception hook to log uncaught exceptions before exiting.
    Call this once at CLI startup.
    """
    root_logger = get_logger("CRASH")

    def exception_hook(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            # Allow Ctrl+C to exit without logging
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        root_logger.critical("Uncaught exception!", exc_info=(exc_type, exc_value, exc_tb))
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = exception_hook
