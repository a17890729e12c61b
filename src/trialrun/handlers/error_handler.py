import logging
import traceback
from typing import Optional


# Raised by test callbacks and recorded against the test. KeyboardInterrupt is
# not included and stops the run.
TEST_ERRORS = (Exception, SystemExit)


class TrialRunError(Exception):
    """Base class for trialrun errors."""
    pass


class DefinitionLoadError(TrialRunError):
    """For test definition files which fail to load."""
    pass


class ErrorHandler:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('trialrun.errors')

    @staticmethod
    def describe(error: BaseException) -> str:
        """
        Build the short description of an error shown against an errored test.

        Args:
            error: The exception which escaped the test

        Returns:
            str: "<ExceptionName>: <message>"
        """
        return f"{type(error).__name__}: {error}"

    def log_error(self, error: BaseException, test_name: Optional[str] = None,
                  level: int = logging.ERROR) -> str:
        message = self.describe(error)
        if test_name:
            message += f" | Test: {test_name}"

        self.logger.log(level, message)
        self.logger.debug(''.join(traceback.format_exception(type(error), error, error.__traceback__)))

        return message
