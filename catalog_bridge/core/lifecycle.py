"""Connector lifecycle: created -> initialized -> started -> stopped."""

import logging
import threading
from enum import Enum
from typing import Dict, FrozenSet

from .errors import LifecycleError

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    """Connector lifecycle states."""
    CREATED = "created"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"


_TRANSITIONS: Dict[LifecycleState, FrozenSet[LifecycleState]] = {
    LifecycleState.CREATED: frozenset({LifecycleState.INITIALIZED, LifecycleState.STOPPED}),
    LifecycleState.INITIALIZED: frozenset({LifecycleState.STARTED, LifecycleState.STOPPED}),
    LifecycleState.STARTED: frozenset({LifecycleState.STOPPED}),
    LifecycleState.STOPPED: frozenset(),
}


class Lifecycle:
    """Finite-state lifecycle driven by an external orchestrator."""

    def __init__(self, name: str = "connector"):
        self.name = name
        self._state = LifecycleState.CREATED
        self._lock = threading.Lock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._state == LifecycleState.STARTED

    def _transition(self, target: LifecycleState):
        with self._lock:
            if target not in _TRANSITIONS[self._state]:
                raise LifecycleError(
                    f"Cannot move {self.name} from {self._state.value} to {target.value}",
                    code="ILLEGAL_LIFECYCLE_TRANSITION",
                )
            logger.info(f"{self.name}: {self._state.value} -> {target.value}")
            self._state = target

    def initialize(self):
        self._transition(LifecycleState.INITIALIZED)

    def start(self):
        self._transition(LifecycleState.STARTED)

    def stop(self):
        self._transition(LifecycleState.STOPPED)

    def require_started(self):
        """
        Raises:
            LifecycleError: If the lifecycle is not in the started state
        """
        if self._state != LifecycleState.STARTED:
            raise LifecycleError(f"{self.name} is {self._state.value}, not started")
