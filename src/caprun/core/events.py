from __future__ import annotations

from collections import defaultdict
from typing import Callable, DefaultDict

from caprun.contracts import NarrativeEvent

NarrativeHandler = Callable[[NarrativeEvent], None]


class EventBus:
    """Fan-out for run narrative events with per-scope counters."""

    def __init__(self, keep_history: bool = True) -> None:
        self._handlers: list[tuple[str | None, NarrativeHandler]] = []
        self._counter: DefaultDict[str, int] = defaultdict(int)
        self._keep_history = keep_history
        self._history: list[NarrativeEvent] = []

    def subscribe_narrative(self, handler: NarrativeHandler, scope: str | None = None) -> None:
        self._handlers.append((scope, handler))

    def publish_narrative(self, event: NarrativeEvent) -> None:
        self._counter[event.scope] += 1
        if self._keep_history:
            self._history.append(event)
        for scope, handler in self._handlers:
            if scope is None or scope == event.scope:
                handler(event)

    def emitted_count(self, scope: str | None = None) -> int:
        if scope is None:
            return sum(self._counter.values())
        return self._counter[scope]

    def history(self, event_type: str | None = None) -> list[NarrativeEvent]:
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.event_type == event_type]
