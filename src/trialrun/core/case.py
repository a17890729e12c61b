"""
The Test state machine.

A test starts out pending and moves into exactly one terminal state: passed,
failed, errored or skipped. Tests may depend on another test, in which case
their callback only runs once that dependency has passed.
"""

import logging
import uuid
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..handlers.error_handler import TEST_ERRORS, ErrorHandler, TrialRunError
from .assertion import Assertion, AssertionFailure
from .outcome import Outcome, State


DEFAULT_FAILURE_MESSAGE = 'The test failed.'
DEFAULT_ERROR_MESSAGE = 'An error occurred while running the test.'


class MissingCallbackError(TrialRunError):
    """Raised when a test is run without a callback."""
    pass


def _bind_row(callback: Callable, row: Any) -> Callable:
    """Bind one data provider row to a test callback."""
    args = tuple(row) if isinstance(row, (list, tuple)) else (row,)

    def bound(test):
        return callback(test, *args)

    return bound


class Test:
    """
    A test. Contains methods for directly passing/failing tests, as well as
    making assertions against values.
    """

    # Keep pytest from collecting this class when it is imported into a test module
    __test__ = False

    def __init__(self, name: str, runner: Any, callback: Optional[Callable] = None):
        """
        Create the test.

        Args:
            name: The name of the test
            runner: The runner which owns and runs this test
            callback: The body of the test; receives the test as its argument
        """
        self.name = name
        self.runner = runner
        self.id = uuid.uuid4().hex
        self.logger = logging.getLogger('trialrun.test')

        self.callback: Optional[Callable] = None
        self.dependency: Optional['Test'] = None
        self.expected_exception: Optional[type] = None
        self.expected_message: Optional[str] = None

        self.state = State.PENDING
        self.assertions = 0
        self.covered: List[Tuple[Any, Optional[str]]] = []
        self.position: Optional[Tuple[int, int]] = None

        self.failure_message = DEFAULT_FAILURE_MESSAGE
        self.error_message = DEFAULT_ERROR_MESSAGE

        if callback is not None:
            self.execute(callback)

    def __repr__(self):
        return f"<Test {self.name!r} {self.state.value}>"

    def __call__(self, callback: Callable) -> 'Test':
        """Allow ``@test("name")`` to bind the decorated function as the callback."""
        return self.execute(callback)

    # Configuration

    def execute(self, callback: Callable) -> 'Test':
        """Define the callback executed when this test runs."""
        self.callback = callback
        return self

    def depends(self, dependency: 'Test') -> 'Test':
        """
        Define a test which must pass before this one runs.

        Raises:
            TypeError: If ``dependency`` is not a Test
        """
        if not isinstance(dependency, Test):
            raise TypeError(f"A test can only depend on another test, not {type(dependency).__name__}")

        self.dependency = dependency
        return self

    def expect(self, exception: type, message: Optional[str] = None) -> 'Test':
        """
        Define an exception which must be raised for this test to pass.

        Args:
            exception: The exception class expected
            message: The exact message the exception must carry, if given
        """
        if not (isinstance(exception, type) and issubclass(exception, BaseException)):
            raise TypeError(f"Expected an exception class, got {exception!r}")

        self.expected_exception = exception
        if message is not None:
            self.expected_message = message

        return self

    def covers(self, target: Any, method: Optional[str] = None) -> 'Test':
        """
        Select a function or method which this test covers.

        Args:
            target: A function, a class, or a "module.Class::method" name
            method: An optional method name on ``target``
        """
        self.covered.append((target, method))

        if self.runner.coverage is not None:
            self.runner.coverage.add_covered(target, method)

        return self

    def data(self, rows: Iterable[Any]) -> 'Test':
        """
        Feed this test from a data provider.

        The first row runs through this test. Each further row is registered
        with the runner as its own test, named "<name> #<index>", with the same
        expectation and coverage.
        """
        if self.callback is None:
            raise MissingCallbackError('Define the test callback before its data.')

        rows = list(rows)
        if not rows:
            raise ValueError(f'The data provider for "{self.name}" has no rows.')

        callback = self.callback
        self.callback = _bind_row(callback, rows[0])

        for index, row in enumerate(rows[1:], start=1):
            spawned = self.runner.define(f"{self.name} #{index}", _bind_row(callback, row))

            if self.expected_exception is not None:
                spawned.expect(self.expected_exception, self.expected_message)

            for target, method in self.covered:
                spawned.covers(target, method)

        return self

    # Assertions

    def is_(self, value: Any) -> Assertion:
        """Create an assertion against ``value``."""
        return Assertion(value, self)

    def does(self, value: Any) -> Assertion:
        """Alias of ``is_``."""
        return self.is_(value)

    def increment_assertion_count(self) -> int:
        self.assertions += 1
        return self.assertions

    # Execution

    def run(self):
        """
        Run the test.

        Raises:
            MissingCallbackError: If no callback has been defined
            Exception: Any unexpected exception raised before the test made an
                assertion or reached a state; the runner records it as an error
        """
        if self.state.is_terminal:
            return

        if not callable(self.callback):
            raise MissingCallbackError('You must provide a callable to each test.')

        dependency = self.dependency
        if dependency is None:
            return self._run_callback()

        if dependency.state is State.PASSED:
            return self._run_callback()

        if dependency.state.is_terminal:
            return self.skip()

        # The dependency has not run yet, so wait for it to resolve
        events = self.runner.events
        events.on(dependency, State.PASSED, self._run_deferred)
        for state in (State.FAILED, State.ERRORED, State.SKIPPED):
            events.on(dependency, state, self.skip)

        self.logger.debug(f'"{self.name}" is waiting on "{dependency.name}"')

    def _run_deferred(self):
        # There is no caller left to propagate to once the dependency resolves
        try:
            self._run_callback()
        except TEST_ERRORS as e:
            self.error(ErrorHandler.describe(e))

    def _run_callback(self):
        outcome = self._execute()
        if outcome is not None:
            self._resolve(outcome)

    def _execute(self) -> Optional[Outcome]:
        try:
            with self.runner.recording():
                self.callback(self)
        except BaseException as e:
            if self._is_expected(e):
                return self._match_expected(e)

            if not isinstance(e, TEST_ERRORS):
                raise

            if isinstance(e, AssertionFailure):
                return Outcome.failed(str(e))

            if self.state.is_terminal:
                self.logger.warning(f'"{self.name}" raised after it {self.state.value}: '
                                    f'{ErrorHandler.describe(e)}')
                return None

            if self.assertions == 0:
                raise

            return Outcome.errored(ErrorHandler.describe(e))

        return self._conclude()

    def _is_expected(self, error: BaseException) -> bool:
        return self.expected_exception is not None and type(error) is self.expected_exception

    def _match_expected(self, error: BaseException) -> Outcome:
        message = str(error)
        if self.expected_message is not None and self.expected_message != message:
            return Outcome.failed(f'Expected exception message "{self.expected_message}" '
                                  f'does not match "{message}".')
        return Outcome.passed()

    def _conclude(self) -> Optional[Outcome]:
        if self.state.is_terminal:
            return None

        if self.expected_exception is not None:
            return Outcome.failed(f'Expected exception {self.expected_exception.__name__} was not thrown.')

        if self.assertions > 0:
            return Outcome.passed()

        return Outcome.errored('No assertions were made.')

    def _resolve(self, outcome: Outcome):
        if outcome.state is State.PASSED:
            self.pass_()
        elif outcome.state is State.FAILED:
            self.fail(outcome.message)
        elif outcome.state is State.ERRORED:
            self.error(outcome.message)
        elif outcome.state is State.SKIPPED:
            self.skip()

    # Transitions

    def _transition(self, state: State) -> bool:
        if self.state.is_terminal:
            self.logger.warning(f'"{self.name}" already {self.state.value}, ignoring {state.value}')
            return False

        self.state = state
        return True

    def pass_(self, condition: Any = None):
        """
        Pass the test.

        Args:
            condition: An optional value; if given and falsy, the test fails instead
        """
        if condition is not None and not condition:
            return self.fail()

        if self._transition(State.PASSED):
            self.runner.add_pass(self)
            self.runner.events.emit(self, State.PASSED)

    def fail(self, message: Optional[str] = None):
        if self._transition(State.FAILED):
            if message is not None:
                self.failure_message = message
            self.runner.add_failure(self)
            self.runner.events.emit(self, State.FAILED)

    def error(self, message: Optional[str] = None):
        if self._transition(State.ERRORED):
            if message is not None:
                self.error_message = message
            self.runner.add_error(self)
            self.runner.events.emit(self, State.ERRORED)

    def skip(self):
        if self._transition(State.SKIPPED):
            self.runner.add_skipped(self)
            self.runner.events.emit(self, State.SKIPPED)
