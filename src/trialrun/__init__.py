"""
trialrun - a lightweight unit-testing framework.

Test definition files register tests with ``test(name, callback)``; the runner
executes them with dependency ordering and reports the results.
"""

from .core.assertion import Assertion, AssertionFailure
from .core.case import MissingCallbackError, Test
from .core.outcome import Outcome, State
from .core.registry import test
from .core.runner import Runner
from .core.scheduler import DependencyError
from .handlers.error_handler import DefinitionLoadError, TrialRunError
from .scanners.test_scanner import TestNotFoundError
from .utils.config_manager import ConfigManager, ConfigurationError

__version__ = "0.4.0"

__all__ = [
    "Assertion",
    "AssertionFailure",
    "ConfigManager",
    "ConfigurationError",
    "DefinitionLoadError",
    "DependencyError",
    "MissingCallbackError",
    "Outcome",
    "Runner",
    "State",
    "Test",
    "TestNotFoundError",
    "TrialRunError",
    "test",
]
