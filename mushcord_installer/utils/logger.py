"""Logging utilities for Mushcord Installer."""

import logging
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = 'mushcord_installer'

# Global logger instance
_logger: Optional[logging.Logger] = None


def setup_logger(verbose: bool = False, log_file: Optional[str] = 'mushcord-installer.log') -> logging.Logger:
    """Set up and configure the application logger.
    
    Module loggers (``logging.getLogger(__name__)``) are children of this
    logger, so they share its handlers.
    
    Args:
        verbose: Enable verbose (DEBUG) logging
        log_file: Path to log file, or None to skip file logging
        
    Returns:
        Configured logger instance
    """
    global _logger
    
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    
    # Clear any existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    
    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    simple_formatter = logging.Formatter(
        '%(levelname)s: %(message)s'
    )
    
    # File handler - always detailed
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            
            file_handler = logging.FileHandler(log_path, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)
            logger.addHandler(file_handler)
        
        except OSError as e:
            # An unwritable log location must not stop the installer
            sys.stderr.write(f"Could not open log file {log_file}: {e}\n")
    
    # Console handler - only for errors and warnings unless verbose
    console_handler = logging.StreamHandler(sys.stderr)
    
    if verbose:
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(detailed_formatter)
    else:
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(simple_formatter)
    
    logger.addHandler(console_handler)
    
    # Prevent propagation to root logger
    logger.propagate = False
    
    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the application logger instance.
    
    Returns:
        Logger instance (creates default if none exists)
    """
    global _logger
    
    if _logger is None:
        _logger = setup_logger(log_file=None)
    
    return _logger


class LoggerMixin:
    """Mixin class to add logging capabilities to other classes."""
    
    @property
    def logger(self) -> logging.Logger:
        """Get logger instance for this class."""
        return logging.getLogger(type(self).__module__)
