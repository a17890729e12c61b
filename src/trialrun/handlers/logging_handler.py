"""
Logging Handler for trialrun.

Routes the ``trialrun`` logger to stderr, and optionally to a log file, for
the length of a run. The report itself goes to stdout through the reporter.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..utils.config_manager import ConfigManager


CONSOLE_FORMAT = '%(levelname)s %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggingHandler:
    """
    Attaches log handlers to the ``trialrun`` logger for one run.

    ``install`` replaces whatever handlers an earlier run left behind and
    ``uninstall`` removes the ones it attached, so repeated runs in the same
    process do not duplicate log records.
    """

    LOGGER_NAME = 'trialrun'

    def __init__(self, log_level: str = "WARNING", log_file: Optional[str] = None):
        """
        Args:
            log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional path that also receives every record
        """
        self.log_level = getattr(logging, str(log_level).upper(), logging.WARNING)
        self.log_file = log_file
        self.logger = logging.getLogger(self.LOGGER_NAME)
        self._handlers: List[logging.Handler] = []

    @classmethod
    def from_options(cls, options: ConfigManager) -> 'LoggingHandler':
        """Build the handler from the ``logging.level`` and ``logging.file`` options."""
        return cls(options.get('logging.level', 'WARNING'), options.get('logging.file'))

    def install(self) -> logging.Logger:
        """
        Attach the console and file handlers.

        Returns:
            The ``trialrun`` logger
        """
        self.logger.setLevel(self.log_level)
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        self._attach(console_handler)

        if self.log_file:
            log_path = Path(self.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            self._attach(logging.FileHandler(log_path, encoding='utf-8'), FILE_FORMAT)

        return self.logger

    def uninstall(self):
        """Detach and close the handlers attached by ``install``."""
        for handler in self._handlers:
            self.logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def _attach(self, handler: logging.Handler, fmt: Optional[str] = None):
        handler.setLevel(self.log_level)
        if fmt is not None:
            handler.setFormatter(logging.Formatter(fmt))
        self.logger.addHandler(handler)
        self._handlers.append(handler)
