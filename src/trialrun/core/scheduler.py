"""
Dependency scheduling for a suite of tests.

The whole registry is planned before any test runs: dependencies are ordered
before their dependents, cycles are rejected and tests whose dependency is not
part of the suite are reported as orphans.
"""

import heapq
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..utils.config_manager import ConfigurationError
from .case import Test


class DependencyError(ConfigurationError):
    """Raised when the tests of a suite depend on each other in a cycle."""
    pass


@dataclass
class Plan:
    """The order in which a suite runs, plus the tests it cannot run."""

    order: List[Test] = field(default_factory=list)
    orphans: List[Test] = field(default_factory=list)


class Scheduler:
    def __init__(self, tests: Sequence[Test]):
        # The registry allows duplicates; each test is planned and counted once
        self.tests = list(dict.fromkeys(tests))
        self.logger = logging.getLogger('trialrun.scheduler')

    def plan(self) -> Plan:
        """
        Order the tests so that every dependency runs before its dependents.

        The order is otherwise the registry order.

        Raises:
            DependencyError: If the dependencies form a cycle
        """
        index: Dict[Test, int] = {test: i for i, test in enumerate(self.tests)}
        dependents: Dict[Test, List[Test]] = defaultdict(list)
        waiting: Dict[Test, int] = {}
        orphans = []

        for test in self.tests:
            dependency = test.dependency
            if dependency is not None and dependency in index:
                dependents[dependency].append(test)
                waiting[test] = 1
            else:
                waiting[test] = 0
                if dependency is not None and not dependency.state.is_terminal:
                    orphans.append(test)

        ready = [index[test] for test in self.tests if waiting[test] == 0]
        heapq.heapify(ready)

        order = []
        while ready:
            test = self.tests[heapq.heappop(ready)]
            order.append(test)
            for dependent in dependents[test]:
                waiting[dependent] -= 1
                if waiting[dependent] == 0:
                    heapq.heappush(ready, index[dependent])

        if len(order) != len(self.tests):
            cycle = ', '.join(f'"{test.name}"' for test in self.tests if waiting[test] > 0)
            raise DependencyError(f"Dependency cycle detected between tests: {cycle}")

        if orphans:
            self.logger.warning(f"{len(orphans)} test(s) depend on tests outside the suite")

        return Plan(order=order, orphans=orphans)
