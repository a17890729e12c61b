# src/trialrun/utils/reporter.py
"""
Terminal Reporter
Renders suite headers, the live grid of test indicators, final results and
coverage tables with rich.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.outcome import State


@dataclass
class SuiteStarted:
    name: str
    tests: List[Any]


@dataclass
class TestResolved:
    __test__ = False

    test: Any


@dataclass
class SuiteFinished:
    name: str


@dataclass
class RunFinished:
    total: int
    passed: List[Any] = field(default_factory=list)
    failures: List[Any] = field(default_factory=list)
    errors: List[Any] = field(default_factory=list)
    skipped: List[Any] = field(default_factory=list)
    coverage: Optional[Dict[str, Dict[str, Dict[str, int]]]] = None


class Reporter:
    """
    Renders runner events to the terminal
    """

    INDICATOR = '◼'

    STATE_STYLES = {
        State.PENDING: 'bright_black',
        State.PASSED: 'green',
        State.FAILED: 'red',
        State.ERRORED: 'yellow',
        State.SKIPPED: 'magenta',
    }

    def __init__(self, console: Optional[Console] = None, live: Optional[bool] = None):
        """
        Initialize the reporter

        Args:
            console (Console, optional): Console to write to
            live (bool, optional): Redraw the grid as tests resolve; defaults
                to whether the console is a terminal
        """
        self.console = console or Console(highlight=False)
        self.live = self.console.is_terminal if live is None else live
        self.logger = logging.getLogger('trialrun.reporter')

        self._grid: List[Any] = []
        self._tests_per_row = 25
        self._live: Optional[Live] = None

    def render(self, event: Any) -> Any:
        """
        Render a single runner event

        Args:
            event: SuiteStarted, TestResolved, SuiteFinished or RunFinished

        Returns:
            The exit code for RunFinished, otherwise None
        """
        handlers = {
            SuiteStarted: self._suite_started,
            TestResolved: self._test_resolved,
            SuiteFinished: self._suite_finished,
            RunFinished: self._run_finished,
        }

        handler = handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unknown event: {type(event).__name__}")

        return handler(event)

    def tests_per_row(self) -> int:
        """Number of indicators per grid row for the console width"""
        width = self.console.width
        if width <= 50:
            return 10
        if width <= 70:
            return 15
        if width <= 80:
            return 20
        if width > 100:
            return 50
        return 25

    def _suite_started(self, event: SuiteStarted):
        total = len(event.tests)
        self.console.print()
        self.console.print(Text(f"  Running {total} tests in suite {event.name.title()}...", style='bright_black'))

        self._grid = list(event.tests)
        self._tests_per_row = self.tests_per_row()
        for i, test in enumerate(self._grid):
            test.position = (i % self._tests_per_row, i // self._tests_per_row)

        if self.live:
            self._live = Live(self._grid_text(), console=self.console, auto_refresh=False)
            self._live.start()

    def _test_resolved(self, event: TestResolved):
        if self._live is not None:
            self._live.update(self._grid_text(), refresh=True)

    def _suite_finished(self, event: SuiteFinished):
        if self._live is not None:
            self._live.update(self._grid_text(), refresh=True)
            self._live.stop()
            self._live = None
        else:
            self.console.print(self._grid_text())

    def _grid_text(self) -> Text:
        text = Text('  ')
        count = len(self._grid)
        per_row = self._tests_per_row

        for i, test in enumerate(self._grid):
            text.append(self.INDICATOR + ' ', style=self.STATE_STYLES[test.state])

            j = i + 1
            if j % (per_row * 4) == 0:
                text.append(f"  {j}")
            if j % per_row == 0 and j != count:
                text.append('\n  ')

        return text

    def _run_finished(self, event: RunFinished) -> int:
        passed = len(event.passed)

        results = Text('\n').join([
            Text.assemble((self.INDICATOR, 'green'), f" Passes    {passed}"),
            Text.assemble((self.INDICATOR, 'red'), f" Failures  {len(event.failures)}"),
            Text.assemble((self.INDICATOR, 'yellow'), f" Errors    {len(event.errors)}"),
            Text.assemble((self.INDICATOR, 'magenta'), f" Skipped   {len(event.skipped)}"),
        ])

        self.console.print()
        self.console.print(Panel(results, title='Results', border_style='yellow', expand=False, padding=(0, 1)))

        for test in event.failures:
            self.console.print()
            self.console.print(Text(f"FAILED - {test.name}", style='red'))
            self.console.print(Text(test.failure_message))

        for test in event.errors:
            self.console.print()
            self.console.print(Text(f"ERROR - {test.name}", style='yellow'))
            self.console.print(Text(test.error_message))

        all_passed = passed == event.total
        self.console.print()
        self.console.print(Text.assemble(
            (f"{passed} / {event.total}", 'green' if all_passed else 'red'),
            ' tests passed successfully.',
        ))

        if event.coverage is not None:
            self._coverage_tables(event.coverage)

        exit_code = 0 if all_passed else 1
        self.logger.info(f"Run finished: {passed}/{event.total} passed, exit code {exit_code}")
        return exit_code

    def _coverage_tables(self, report: Dict[str, Dict[str, Dict[str, int]]]):
        tables = []
        for key, heading in (('classes', 'Class'), ('files', 'File')):
            rows = report.get(key) or {}
            if not rows:
                continue

            table = Table(header_style='yellow', box=None, padding=(0, 1))
            table.add_column(heading)
            table.add_column('Covered', justify='right')
            table.add_column('Lines', justify='right')
            table.add_column('Percentage', justify='right')

            for name, values in rows.items():
                covered, total = values['covered'], values['total']
                percentage = (covered / total * 100) if total else 0.0
                style = self._coverage_style(percentage)
                table.add_row(Text(name), Text(str(covered), style=style),
                              Text(str(total), style=style), Text(f"{percentage:.2f}%", style=style))

            tables.append(table)

        self.console.print()
        if tables:
            self.console.print(Group(*tables))
        else:
            self.console.print(Text('  No coverage data was recorded.', style='bright_black'))

    @staticmethod
    def _coverage_style(percentage: float) -> str:
        if percentage < 25:
            return 'red'
        if percentage < 75:
            return 'black on yellow'
        return 'green'
