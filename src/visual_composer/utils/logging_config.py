"""Centralized logging configuration for Visual Composer."""

import inspect
import logging
import sys
from typing import Optional


def configure_logging(
    level: str = "INFO",
    format: Optional[str] = None,
    suppress_external: bool = True
) -> None:
    """Configure logging for the application.
    
    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        format: Custom format string, or None for default
        suppress_external: If True, suppress noisy external library logs
    """
    # Default format: levelname | time | filename:lineno | message
    if format is None:
        format = "%(levelname)-5s | %(asctime)s | %(filename)s:%(lineno)d | %(message)s"
    
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=format,
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True  # Reconfigure if already configured
    )
    
    if suppress_external:
        # Pillow logs every plugin it probes at DEBUG
        logging.getLogger("PIL").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.
    
    Args:
        name: Logger name (usually __name__)
        
    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class ProgressLogger:
    """Helper class for logging progress of long-running sessions."""
    
    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self._current_task = None
        self.name = name.split('.')[-1] if '.' in name else name
        
    def _log(self, level: int, message: str) -> None:
        """Log with the caller's file and line rather than this helper's."""
        frame = inspect.currentframe()
        if frame and frame.f_back and frame.f_back.f_back:
            caller_frame = frame.f_back.f_back
            filename = caller_frame.f_code.co_filename
            lineno = caller_frame.f_lineno
        else:
            filename = self.name + ".py"
            lineno = 0
        
        if not self.logger.isEnabledFor(level):
            return
        record = self.logger.makeRecord(
            self.logger.name,
            level,
            filename,
            lineno,
            message,
            args=(),
            exc_info=None
        )
        self.logger.handle(record)
    
    @property
    def current_task(self) -> Optional[str]:
        return self._current_task
        
    def start_task(self, task: str) -> None:
        """Log the start of a new task."""
        self._current_task = task
        self._log(logging.INFO, f"Starting: {task}")
        
    def update(self, message: str) -> None:
        """Log a progress update."""
        if self._current_task:
            self._log(logging.INFO, f"   > {message}")
        else:
            self._log(logging.INFO, f"> {message}")
            
    def complete(self, message: Optional[str] = None) -> None:
        """Log task completion."""
        if message:
            self._log(logging.INFO, f"Done: {message}")
        elif self._current_task:
            self._log(logging.INFO, f"Completed: {self._current_task}")
        self._current_task = None
        
    def error(self, message: str) -> None:
        """Log an error."""
        self._log(logging.ERROR, f"Error: {message}")
        
    def warning(self, message: str) -> None:
        """Log a warning."""
        self._log(logging.WARNING, f"Warning: {message}")
