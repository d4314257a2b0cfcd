"""
app/windowing.py

Resolves caller scope parameters into concrete query scopes.

Windows
-------
``resolve_window`` accepts either a lookback in days or an explicit range.
Invalid input never raises; it yields an empty window that makes every
metric return its safe default:

* lookback <= 0            → empty window
* explicit start > end     → empty window
* neither given            → ``default_lookback_days`` ending at *now*

Statuses
--------
``status_filter`` maps business concepts to the store's concrete status
vocabulary. Concrete statuses pass through; unknown names are dropped with
a warning. A request that resolves to nothing returns an empty set, which
matches no records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from app.logging_utils import log_event
from db.models.cart_attempt import CartState
from db.models.order import OrderStatus
from store.query import Entity, TimeWindow, as_utc

logger = logging.getLogger(__name__)

_ORDER_STATES: dict[str, frozenset[str]] = {
    "completed": frozenset({OrderStatus.COMPLETED}),
    "paid": frozenset({OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.ON_HOLD}),
    "refunded": frozenset({OrderStatus.REFUNDED}),
    "abandoned": frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED, OrderStatus.FAILED}),
    "any": OrderStatus.ALL,
}

_CART_STATES: dict[str, frozenset[str]] = {
    "completed": frozenset({CartState.CONVERTED}),
    "converted": frozenset({CartState.CONVERTED}),
    "abandoned": frozenset({CartState.ABANDONED}),
    "failed": frozenset({CartState.FAILED}),
    "any": CartState.ALL,
}

_VOCABULARY: dict[Entity, tuple[dict[str, frozenset[str]], frozenset[str]]] = {
    Entity.ORDERS: (_ORDER_STATES, OrderStatus.ALL),
    Entity.ORDER_ITEMS: (_ORDER_STATES, OrderStatus.ALL),
    Entity.CART_ATTEMPTS: (_CART_STATES, CartState.ALL),
}


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def resolve_window(
    lookback_days: float | None = None,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    now: datetime | None = None,
    default_lookback_days: float = 30,
) -> TimeWindow:
    """
    Resolve a lookback or an explicit range into a half-open window.

    Parameters
    ----------
    lookback_days:
        Days back from *now*. Takes precedence over *start* / *end*.
    start, end:
        Explicit range. Either bound may be omitted; a missing *end*
        defaults to *now*.
    now:
        Reference instant; defaults to the current UTC time.
    default_lookback_days:
        Lookback applied when no scope parameter is given.

    Returns
    -------
    TimeWindow
        ``[start, end)`` in UTC, or an empty window for invalid input.
    """
    reference = as_utc(now) if now is not None else utc_now()

    if lookback_days is None and start is None and end is None:
        lookback_days = default_lookback_days

    if lookback_days is not None:
        if lookback_days <= 0:
            log_event(logger, logging.DEBUG, "empty_window", lookback_days=lookback_days)
            return TimeWindow.empty()
        return TimeWindow(start=reference - timedelta(days=lookback_days), end=reference)

    window = TimeWindow.between(start, end if end is not None else reference)
    if window.is_empty:
        log_event(logger, logging.DEBUG, "empty_window", start=start, end=end)
    return window


def status_filter(
    states: Iterable[str] | str | None,
    entity: Entity = Entity.ORDERS,
) -> frozenset[str] | None:
    """
    Map logical states to concrete status values for *entity*.

    ``None`` means "no status filter" and is returned unchanged.
    """
    if states is None:
        return None
    if isinstance(states, str):
        states = (states,)

    mapping, concrete = _VOCABULARY.get(entity, ({}, frozenset()))
    resolved: set[str] = set()
    unknown: list[str] = []
    for state in states:
        key = state.strip().lower()
        if key in mapping:
            resolved |= mapping[key]
        elif key in concrete:
            resolved.add(key)
        else:
            unknown.append(state)

    if unknown:
        log_event(
            logger,
            logging.WARNING,
            "unknown_status_dropped",
            entity=entity.value,
            states=sorted(unknown),
        )
    return frozenset(resolved)
