"""
tests/test_availability.py

Pytest unit tests for AvailabilityGuard.
"""

from __future__ import annotations

from app.availability import AvailabilityGuard
from store.memory_store import InMemoryEventStore


class _CountingProbe:
    def __init__(self, results: list[bool]) -> None:
        self._results = list(results)
        self.calls = 0

    def __call__(self) -> bool:
        self.calls += 1
        return self._results.pop(0)


class TestAvailabilityGuard:
    def test_probe_runs_once(self) -> None:
        probe = _CountingProbe([True, False])
        guard = AvailabilityGuard(probe)
        assert guard.is_ready() is True
        assert guard.is_ready() is True
        assert probe.calls == 1

    def test_reset_forces_reevaluation(self) -> None:
        probe = _CountingProbe([True, False])
        guard = AvailabilityGuard(probe)
        assert guard.is_ready() is True
        guard.reset()
        assert guard.is_ready() is False
        assert probe.calls == 2

    def test_raising_probe_is_not_ready(self) -> None:
        def boom() -> bool:
            raise RuntimeError("plugin missing")

        assert AvailabilityGuard(boom).is_ready() is False

    def test_always(self) -> None:
        assert AvailabilityGuard.always().is_ready() is True
        assert AvailabilityGuard.always(False).is_ready() is False

    def test_for_store_uses_store_probe(self) -> None:
        assert AvailabilityGuard.for_store(InMemoryEventStore()).is_ready() is True
        assert AvailabilityGuard.for_store(InMemoryEventStore(available=False)).is_ready() is False

    def test_guards_are_independent(self) -> None:
        ready = AvailabilityGuard.always(True)
        not_ready = AvailabilityGuard.always(False)
        assert ready.is_ready() and not not_ready.is_ready()
