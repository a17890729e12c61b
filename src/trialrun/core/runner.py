"""
The test runner.

Loads the test definitions of each suite, runs the tests they register and
collects the results. The runner is the error boundary for tests: every test
ends up in exactly one of the passed, failed, errored or skipped buckets.
"""

import logging
import random
import runpy
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from ..handlers.error_handler import TEST_ERRORS, DefinitionLoadError, ErrorHandler
from ..scanners.test_scanner import TestNotFoundError, TestScanner, TestSource
from ..utils.config_manager import ConfigManager
from ..utils.reporter import RunFinished, SuiteFinished, SuiteStarted, TestResolved
from .case import Test
from .events import EventBus
from .registry import activate
from .scheduler import Scheduler


class Runner:
    """
    Runs the tests of each configured suite.

    Created once per run and passed explicitly to whatever needs it; test
    definition files receive it through the ``test`` function they are given.
    """

    def __init__(self, options: Optional[ConfigManager] = None,
                 reporter: Any = None,
                 coverage: Any = None,
                 scanner: Optional[TestScanner] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 root_directory: Union[str, Path, None] = None,
                 rng: Optional[random.Random] = None):
        """
        Args:
            options: Runner options; defaults only when omitted
            reporter: Collaborator exposing ``render(event)``
            coverage: Coverage recorder, or None when coverage is disabled
            scanner: Discovers definition files; created from ``root_directory``
            error_handler: Describes and logs errors escaping tests
            root_directory: Directory suite paths are relative to
            rng: Random source used to shuffle suites
        """
        self.root_directory = Path(root_directory or Path.cwd()).resolve()
        self.options = options or ConfigManager(self.root_directory)
        self.reporter = reporter
        self.coverage = coverage
        self.scanner = scanner or TestScanner(self.root_directory)
        self.error_handler = error_handler or ErrorHandler()
        self.rng = rng or random.Random()
        self.logger = logging.getLogger('trialrun.runner')

        self.events = EventBus()
        self.tests: List[Test] = []
        self.passed: List[Test] = []
        self.failures: List[Test] = []
        self.errors: List[Test] = []
        self.skipped: List[Test] = []
        self.total_count = 0

        self._bootstrapped: Set[Path] = set()

    # Registration

    def define(self, name: str, callback: Optional[Callable] = None) -> Test:
        """Create a test and register it with the suite being loaded."""
        test = Test(name, self, callback)
        self.add_test(test)
        return test

    def add_test(self, test: Test):
        self.tests.append(test)

    # Loading

    def suites(self) -> Dict[str, List[str]]:
        """
        Work out which suites this run covers.

        Positional paths form a single ad-hoc suite; otherwise the suite named
        by the ``suite`` option, or every configured suite.

        Raises:
            TestNotFoundError: If the named suite is not configured
        """
        suites = self.options.get('suites') or {}

        name = self.options.get('suite')
        if name:
            if name not in suites:
                raise TestNotFoundError(f'The suite {name} is not defined')
            suites = {name: suites[name]}

        paths = self.options.get('paths')
        if paths:
            suites = {'tests': list(paths)}

        return suites

    def load_tests(self, paths: Union[str, Iterable[str]]):
        """
        Load the test definition files found at ``paths``.

        Raises:
            TestNotFoundError: If nothing is found
            DefinitionLoadError: If a definition or bootstrap file raises
        """
        sources = self.scanner.discover(paths)

        with activate(self):
            for source in sources:
                self._load_source(source)

        self.logger.info(f"Loaded {len(self.tests)} tests from {len(sources)} file(s)")

    def _load_source(self, source: TestSource):
        for bootstrap in source.bootstraps:
            if bootstrap not in self._bootstrapped:
                self._bootstrapped.add(bootstrap)
                self._include(bootstrap)

        self._include(source.path)

    def _include(self, path: Path):
        # Each file runs in its own namespace
        namespace = {'test': self.define, 'runner': self}
        try:
            runpy.run_path(str(path), init_globals=namespace, run_name=f"trialrun.definitions.{path.stem}")
        except TEST_ERRORS as e:
            raise DefinitionLoadError(f"Could not load {path}: {ErrorHandler.describe(e)}") from e

    # Execution

    @contextmanager
    def recording(self):
        """Record coverage around a test callback, when coverage is enabled."""
        if self.coverage is None:
            yield
            return

        self.coverage.begin_recording()
        try:
            yield
        finally:
            self.coverage.end_recording()

    def run(self) -> int:
        """
        Run every suite and report the results.

        Returns:
            int: The process exit code

        Raises:
            TestNotFoundError: If a suite or its tests cannot be found
            DefinitionLoadError: If a definition file fails to load
            DependencyError: If tests depend on each other in a cycle
        """
        self.total_count = 0

        for name, paths in self.suites().items():
            self.run_suite(name, paths)

        return self.results()

    def run_suite(self, name: str, paths: Union[str, Iterable[str]]):
        self.tests = []
        self.load_tests(paths)

        if self.options.get('random') or self.options.get('shuffle'):
            self.rng.shuffle(self.tests)

        plan = Scheduler(self.tests).plan()
        orphans = set(plan.orphans)

        total = len(plan.order)
        self.total_count += total
        self.logger.info(f"Running {total} tests in suite {name}")

        self._render(SuiteStarted(name=name, tests=list(plan.order)))
        try:
            for test in plan.order:
                if test in orphans:
                    test.error(f'Dependency "{test.dependency.name}" is not part of this suite.')
                else:
                    self.run_test(test)
        finally:
            self._render(SuiteFinished(name=name))

    def run_test(self, test: Test):
        # Run inside a try block so that errors are included in the results
        # without stopping the run
        try:
            test.run()
        except TEST_ERRORS as e:
            self.error_handler.log_error(e, test.name, level=logging.INFO)
            test.error(ErrorHandler.describe(e))

    def results(self) -> int:
        """
        Hand the final state to the reporter.

        Returns:
            int: 0 if every test passed, otherwise 1
        """
        report = None
        if self.coverage is not None:
            self.coverage.collect()
            report = self.coverage.report()

        exit_code = self._render(RunFinished(
            total=self.total_count,
            passed=list(self.passed),
            failures=list(self.failures),
            errors=list(self.errors),
            skipped=list(self.skipped),
            coverage=report,
        ))

        if exit_code is None:
            exit_code = int(len(self.passed) != self.total_count)

        return exit_code

    # Buckets

    def add_pass(self, test: Test):
        self.passed.append(test)
        self._render(TestResolved(test))

    def add_failure(self, test: Test):
        self.failures.append(test)
        self._render(TestResolved(test))

    def add_error(self, test: Test):
        self.errors.append(test)
        self._render(TestResolved(test))

    def add_skipped(self, test: Test):
        self.skipped.append(test)
        self._render(TestResolved(test))

    def _render(self, event: Any) -> Any:
        if self.reporter is None:
            return None
        return self.reporter.render(event)
