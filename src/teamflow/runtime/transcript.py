"""
Transcript - The ordered conversation log of one workflow run.

Events are only ever appended; the log is cleared when a run is reset or a
new run starts. Observers can subscribe to receive each event as it lands.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, overload

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


logger = logging.getLogger(__name__)

# Speaker used for run-level and failure events
SYSTEM_LABEL = "System"


class EventKind(str, Enum):
    """What produced a run event."""
    MESSAGE = "message"
    SYSTEM = "system"


class RunEvent(BaseModel):
    """One timestamped unit of run output. Immutable once created."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    event_id: str
    run_id: str
    sequence: int = Field(..., ge=0, description="Position within the run")
    node_id: Optional[str] = Field(None, description="Node the event concerns, if any")
    agent_label: str
    kind: EventKind
    content: str
    timestamp: datetime


EventCallback = Callable[[RunEvent], None]


class TranscriptView(Sequence[RunEvent]):
    """
    Immutable snapshot of a transcript.

    Safe to iterate any number of times; later appends are not visible.
    """

    def __init__(self, events: Tuple[RunEvent, ...]):
        self._events = events

    @overload
    def __getitem__(self, index: int) -> RunEvent: ...

    @overload
    def __getitem__(self, index: slice) -> Tuple[RunEvent, ...]: ...

    def __getitem__(self, index):
        return self._events[index]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[RunEvent]:
        return iter(self._events)

    def __repr__(self) -> str:
        return f"TranscriptView({len(self._events)} events)"


class Transcript:
    """
    Append-only run event log with subscribers.

    Usage:
        transcript = Transcript()
        unsubscribe = transcript.subscribe(lambda event: print(event.content))
        ...
        for event in transcript.snapshot():
            print(event.agent_label, event.content)
    """

    def __init__(self) -> None:
        self._events: List[RunEvent] = []
        self._subscribers: List[EventCallback] = []

    def append(self, event: RunEvent) -> None:
        """Append an event and notify subscribers."""
        self._events.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Transcript subscriber failed on event {event.event_id}")

    def snapshot(self) -> TranscriptView:
        """Get the current events in order."""
        return TranscriptView(tuple(self._events))

    def clear(self) -> None:
        """Discard all events."""
        self._events.clear()

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """
        Register a callback invoked for every appended event.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def render(self) -> str:
        """Format the conversation as ``[HH:MM] Speaker: content`` lines."""
        return "\n".join(
            f"[{event.timestamp:%H:%M}] {event.agent_label}: {event.content}"
            for event in self._events
        )

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[RunEvent]:
        return iter(self.snapshot())


__all__ = [
    "EventKind",
    "RunEvent",
    "SYSTEM_LABEL",
    "Transcript",
    "TranscriptView",
]
