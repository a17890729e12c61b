import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Tuple

from .outcome import TERMINAL_STATES, State


Listener = Callable[[], None]


class EventBus:
    """
    Synchronous dispatch of "test reached state" notifications.

    Listeners are keyed by the test object itself and the state it reached,
    and fire at most once.
    """

    def __init__(self):
        self.logger = logging.getLogger('trialrun.events')
        self._listeners: Dict[Tuple[Any, State], List[Listener]] = defaultdict(list)

    def on(self, test: Any, state: State, listener: Listener):
        """
        Register a one-shot listener for a test reaching a state.

        Args:
            test: The test being watched
            state: The terminal state to listen for
            listener: Called with no arguments when the state is reached
        """
        self._listeners[(test, state)].append(listener)

    def emit(self, test: Any, state: State) -> int:
        """
        Fire every listener waiting for ``test`` to reach ``state``.

        Listeners for the test's other states are discarded, since a test
        only ever reaches one terminal state.

        Returns:
            int: Number of listeners called
        """
        listeners = self._listeners.pop((test, state), [])
        for other in TERMINAL_STATES:
            if other is not state:
                self._listeners.pop((test, other), None)

        if listeners:
            self.logger.debug(f"Dispatching {len(listeners)} listener(s) for {state.value}")

        for listener in listeners:
            listener()

        return len(listeners)

    def pending(self, test: Any) -> int:
        """Number of listeners still waiting on ``test``."""
        return sum(len(self._listeners.get((test, state), [])) for state in TERMINAL_STATES)
