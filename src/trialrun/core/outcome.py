"""
Test states and the outcome value produced by running a test's callback.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class State(Enum):
    """The states a test moves through. Every state but PENDING is terminal."""

    PENDING = 'pending'
    PASSED = 'passed'
    FAILED = 'failed'
    ERRORED = 'errored'
    SKIPPED = 'skipped'

    @property
    def is_terminal(self) -> bool:
        return self is not State.PENDING


TERMINAL_STATES = (State.PASSED, State.FAILED, State.ERRORED, State.SKIPPED)


@dataclass(frozen=True)
class Outcome:
    """
    The resolution of a single test run.

    Attributes:
        state: The terminal state the test should move into
        message: Failure or error message, if any
    """

    state: State
    message: Optional[str] = None

    @classmethod
    def passed(cls) -> 'Outcome':
        return cls(State.PASSED)

    @classmethod
    def failed(cls, message: Optional[str] = None) -> 'Outcome':
        return cls(State.FAILED, message)

    @classmethod
    def errored(cls, message: Optional[str] = None) -> 'Outcome':
        return cls(State.ERRORED, message)

    @classmethod
    def skipped(cls) -> 'Outcome':
        return cls(State.SKIPPED)
