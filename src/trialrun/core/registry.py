"""
The ``test()`` definition function used by test definition files.

Definition files are run with ``test`` already in their namespace. Files which
prefer an explicit import can use ``from trialrun import test``, which
registers with whichever runner is loading files at the time.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Optional

from ..handlers.error_handler import TrialRunError


_active_runner: ContextVar = ContextVar('trialrun_active_runner', default=None)


@contextmanager
def activate(runner: Any):
    """Make ``runner`` the target of ``test()`` for the duration of the block."""
    token = _active_runner.set(runner)
    try:
        yield runner
    finally:
        _active_runner.reset(token)


def test(name: str, callback: Optional[Callable] = None):
    """
    Define a test.

    Args:
        name: The name of the test
        callback: The body of the test; may also be bound later with
            ``.execute()`` or by using the returned test as a decorator

    Returns:
        Test: The registered test
    """
    runner = _active_runner.get()
    if runner is None:
        raise TrialRunError('test() can only be called while trialrun is loading test definitions.')

    return runner.define(name, callback)


# Not a pytest test function
test.__test__ = False
