"""Unit tests for the DDD building blocks."""

from __future__ import annotations

import asyncio
import dataclasses

import pytest

from filevault.kernel.ddd import AggregateRoot, DomainEvent, Entity, Invariant, LoggingEventPublisher
from filevault.kernel.errors import ErrorKind, FileSystemError


@dataclasses.dataclass(frozen=True, kw_only=True)
class Renamed(DomainEvent):
    name: str


class Document(AggregateRoot):
    def rename(self, name: str) -> None:
        self._raise_event(Renamed(name=name))


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


class TestEntity:
    def test_equality_by_id(self) -> None:
        assert Entity("a") == Entity("a")
        assert Entity("a") != Entity("b")
        assert hash(Entity("a")) == hash(Entity("a"))


# ---------------------------------------------------------------------------
# AggregateRoot
# ---------------------------------------------------------------------------


class TestAggregateRoot:
    def test_events_buffered_until_drained(self) -> None:
        doc = Document("d-1")
        doc.rename("x")
        doc.rename("y")
        assert len(doc.pending_events) == 2

        events = doc.drain()
        assert [e.name for e in events] == ["x", "y"]
        assert doc.pending_events == ()

    def test_pull_events_is_drain(self) -> None:
        doc = Document("d-1")
        doc.rename("x")
        assert [e.name for e in doc.pull_events()] == ["x"]
        assert doc.drain() == []

    def test_drain_returns_copy(self) -> None:
        doc = Document("d-1")
        doc.rename("x")
        events = doc.drain()
        events.clear()
        assert doc.drain() == []

    def test_revision_counts_all_events(self) -> None:
        doc = Document("d-1")
        doc.rename("x")
        doc.drain()
        doc.rename("y")
        assert doc.revision == 2


# ---------------------------------------------------------------------------
# DomainEvent
# ---------------------------------------------------------------------------


class TestDomainEvent:
    def test_to_dict_includes_type(self) -> None:
        data = Renamed(name="x").to_dict()
        assert data["event_type"] == "Renamed"
        assert data["name"] == "x"
        assert "event_id" in data

    def test_logging_publisher_accepts_events(self) -> None:
        asyncio.run(LoggingEventPublisher().publish_events([Renamed(name="x")]))


# ---------------------------------------------------------------------------
# Invariant
# ---------------------------------------------------------------------------


class TestInvariant:
    def test_require_raises_validation(self) -> None:
        with pytest.raises(FileSystemError) as exc_info:
            Invariant.require(False, "size must be positive")
        assert exc_info.value.kind is ErrorKind.VALIDATION

    def test_not_blank(self) -> None:
        assert Invariant.not_blank("x", "name") == "x"
        with pytest.raises(FileSystemError):
            Invariant.not_blank("  ", "name")
