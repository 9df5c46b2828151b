"""Structured progress events emitted during a sync session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)


class SyncEventType(Enum):
    SYNC_STARTED = "sync.started"
    PERIOD_AGREED = "sync.period_agreed"
    PROVER_FAILED = "sync.prover_failed"
    ROUND_STARTED = "tournament.round_started"
    WINNER_JOINED = "tournament.winner_joined"
    FIGHT_STARTED = "tournament.fight_started"
    CHAMPION_REPLACED = "tournament.champion_replaced"
    PROVER_ELIMINATED = "tournament.prover_eliminated"
    PROVER_REJECTED = "sync.prover_rejected"
    SYNC_COMPLETED = "sync.completed"


@dataclass(frozen=True)
class SyncEvent:
    type: SyncEventType
    period: int | None = None
    data: dict[str, Any] = field(default_factory=dict, hash=False)


EventListener = Callable[[SyncEvent], None]


class EventEmitter:
    """Fan events out to listeners. A failing listener never affects the sync."""

    def __init__(self, listeners: Iterable[EventListener] | None = None):
        self.listeners: list[EventListener] = list(listeners or [])

    def subscribe(self, listener: EventListener) -> None:
        self.listeners.append(listener)

    def emit(self, event_type: SyncEventType, period: int | None = None, **data: Any) -> None:
        event = SyncEvent(type=event_type, period=period, data=data)
        for listener in self.listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    "Sync event listener failed: %s",
                    e,
                    extra={"event": "events.listener_failed", "sync_event": event_type.value},
                )
