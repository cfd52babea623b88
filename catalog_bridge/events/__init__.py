"""Catalog change event mapping."""

from .mapper import RepositoryEventMapper
from .publisher import EventPublisher, LoggingEventPublisher, RecordingEventPublisher

__all__ = [
    'RepositoryEventMapper',
    'EventPublisher',
    'LoggingEventPublisher',
    'RecordingEventPublisher',
]
