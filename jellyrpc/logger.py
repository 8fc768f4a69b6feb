"""
Logging setup for JellyRPC with console and optional file output.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

_logger: Optional[logging.Logger] = None

def setup_logger(name: str = "JellyRPC", log_file: Optional[str] = "jellyrpc.log", level: int = logging.INFO) -> logging.Logger:
    """
    Set up the application logger with a console handler and, optionally, a file handler.

    Args:
        name: Logger name
        log_file: Path to log file. If None, only console logging is enabled
        level: Console logging level

    Returns:
        Configured logger instance
    """
    global _logger

    if _logger is not None:
        return _logger

    _logger = logging.getLogger(name)
    _logger.setLevel(logging.DEBUG)
    _logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_formatter = logging.Formatter('[%(levelname)s] %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)
    _logger.addHandler(console_handler)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # File gets all messages
            file_handler.setFormatter(detailed_formatter)
            _logger.addHandler(file_handler)
        except OSError as e:
            _logger.warning(f"Could not set up file logging: {e}")

    return _logger

def get_logger() -> logging.Logger:
    """Get the configured logger instance, creating a console-only one if needed."""
    global _logger
    if _logger is None:
        return logging.getLogger("JellyRPC")
    return _logger

def reset_logger():
    """Drop the configured logger so the next setup_logger() call rebuilds it."""
    global _logger
    if _logger is not None:
        for handler in list(_logger.handlers):
            handler.close()
            _logger.removeHandler(handler)
    _logger = None
