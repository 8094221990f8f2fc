"""Ledger notifications and the in-process sink that delivers them.

Events are published after the unit of work that produced them has committed.
Subscribers exist for observability and cache invalidation only; the ledger,
the cached set score and the stats projection are all written inside the
command's own transaction and never depend on a subscriber running.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from ..cache import match_stats_cache

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Score:
    points_a: int
    points_b: int

    def as_dict(self) -> dict[str, int]:
        return {"pointsA": self.points_a, "pointsB": self.points_b}


@dataclass(frozen=True)
class ActionRecorded:
    action_id: str
    match_id: str
    set_id: str
    team_id: str
    player_id: str
    action_type: str
    outcome: str
    point_delta: int
    sequence: int
    rally: int
    occurred_at: datetime
    score: Score
    metadata: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class ActionDeleted:
    action_id: str
    match_id: str
    set_id: str
    team_id: str
    player_id: str
    score: Score


@dataclass(frozen=True)
class StartingRotationSet:
    set_id: str
    team_id: str
    positions: tuple[str, ...]
    libero_id: str


@dataclass(frozen=True)
class StartingRotationDeleted:
    set_id: str
    team_id: str


Handler = Callable[[Any], Awaitable[None]]


@dataclass
class EventSink:
    _handlers: dict[type, list[Handler]] = field(default_factory=dict)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Any) -> None:
        LOGGER.debug("Publishing %s %s", type(event).__name__, asdict(event))
        for handler in list(self._handlers.get(type(event), [])):
            try:
                await handler(event)
            except Exception:
                # The command that produced the event has already committed.
                LOGGER.exception(
                    "Subscriber %r failed for %s", handler, type(event).__name__
                )


sink = EventSink()


async def _invalidate_match_stats(event: ActionRecorded | ActionDeleted) -> None:
    await match_stats_cache.invalidate_match(event.match_id)


sink.subscribe(ActionRecorded, _invalidate_match_stats)
sink.subscribe(ActionDeleted, _invalidate_match_stats)
