"""Kernel DDD – entities, aggregates and domain events."""
from filevault.kernel.ddd.aggregate import AggregateRoot
from filevault.kernel.ddd.domain_event import DomainEvent
from filevault.kernel.ddd.entity import Entity
from filevault.kernel.ddd.invariant import Invariant
from filevault.kernel.ddd.publisher import EventPublisher, LoggingEventPublisher

__all__ = ["AggregateRoot", "DomainEvent", "Entity", "EventPublisher", "Invariant", "LoggingEventPublisher"]
