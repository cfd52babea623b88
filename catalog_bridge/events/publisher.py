"""Destinations for outbound repository events."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List

from ..models.events import RepositoryEvent, RepositoryEventKind

logger = logging.getLogger(__name__)


class EventPublisher(ABC):
    """Receives generic-model events produced by the event mapper."""

    @abstractmethod
    def publish(self, event: RepositoryEvent):
        pass


class LoggingEventPublisher(EventPublisher):
    """Publisher that only logs events."""

    def publish(self, event: RepositoryEvent):
        subject = event.entity or event.relationship
        logger.info(f"{event.kind.value}: {subject.guid if subject else None}")


class RecordingEventPublisher(EventPublisher):
    """Publisher that keeps every event in memory, in order."""

    def __init__(self):
        self.events: List[RepositoryEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: RepositoryEvent):
        with self._lock:
            self.events.append(event)

    def kinds(self) -> List[RepositoryEventKind]:
        return [event.kind for event in self.events]

    def clear(self):
        with self._lock:
            self.events.clear()
