"""
Error and logging handlers shared by the runner and its collaborators.
"""

from .error_handler import DefinitionLoadError, ErrorHandler, TrialRunError
from .logging_handler import LoggingHandler

__all__ = [
    "DefinitionLoadError",
    "ErrorHandler",
    "LoggingHandler",
    "TrialRunError",
]
