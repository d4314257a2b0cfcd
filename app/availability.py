"""
app/availability.py

One-time readiness check for the commerce data source.

The guard is built once at startup and handed to the metrics service, so
tests can inject a stub probe instead of patching module state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from app.logging_utils import log_event
from store.base import EventStore

logger = logging.getLogger(__name__)


class AvailabilityGuard:
    """
    Caches the result of *probe* after its first evaluation.

    A probe that raises is treated as "not ready"; the exception is logged,
    never propagated, so a dashboard render cannot fail on it.

    Parameters
    ----------
    probe:
        Zero-argument callable returning ``True`` when the platform is usable.
    """

    def __init__(self, probe: Callable[[], bool]) -> None:
        self._probe = probe
        self._ready: bool | None = None

    @classmethod
    def for_store(cls, store: EventStore) -> AvailabilityGuard:
        return cls(store.probe)

    @classmethod
    def always(cls, ready: bool = True) -> AvailabilityGuard:
        return cls(lambda: ready)

    def is_ready(self) -> bool:
        if self._ready is None:
            self._ready = self._evaluate()
        return self._ready

    def reset(self) -> None:
        """Forget the cached result; the next :meth:`is_ready` re-probes."""
        self._ready = None

    def _evaluate(self) -> bool:
        try:
            ready = bool(self._probe())
        except Exception as exc:  # noqa: BLE001
            log_event(logger, logging.WARNING, "platform_probe_error", error=repr(exc))
            return False

        level = logging.INFO if ready else logging.WARNING
        log_event(logger, level, "platform_availability", ready=ready)
        return ready
