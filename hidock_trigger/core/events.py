"""
Structured events emitted by the supervisor and hotplug layers.

The UI layer (menu bar, notifications) subscribes to an EventBus and renders
these; the core never talks to the UI directly.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .asyncio_utils import create_logged_task
from .logging_utils import get_module_logger


class EventType(Enum):
    """Events the core emits."""
    # Process lifecycle
    STARTING = "starting"
    STARTED = "started"
    STOPPED = "stopped"
    CRASHED = "crashed"
    RESTART_SCHEDULED = "restart_scheduled"
    GAVE_UP = "gave_up"
    ERROR = "error"

    # Parsed from monitor output
    MIC_ACTIVE = "mic_active"
    MIC_INACTIVE = "mic_inactive"

    # Device selection
    DEVICE_SWITCHED = "device_switched"
    PREFERRED_SWITCHED = "preferred_switched"
    FALLBACK_SELECTED = "fallback_selected"
    NO_DEVICE = "no_device"


@dataclass
class TriggerEvent:
    """A single notification for observers."""
    type: EventType
    message: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)
    terminal: bool = False
    timestamp: datetime = field(default_factory=datetime.now)


EventObserver = Callable[[TriggerEvent], Union[None, Awaitable[None]]]


class EventBus:
    """Fan-out of TriggerEvents to sync or async observers."""

    def __init__(self) -> None:
        self.logger = get_module_logger("EventBus")
        self._observers: List[EventObserver] = []
        self.history: List[TriggerEvent] = []
        self.history_limit = 200

    def subscribe(self, observer: EventObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: EventObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def emit(
        self,
        event_type: EventType,
        message: str = "",
        *,
        terminal: bool = False,
        **payload: Any,
    ) -> TriggerEvent:
        event = TriggerEvent(type=event_type, message=message, payload=payload, terminal=terminal)
        self.publish(event)
        return event

    def publish(self, event: TriggerEvent) -> None:
        level = "error" if event.terminal else "info"
        getattr(self.logger, level)("%s: %s", event.type.value, event.message or "-")

        self.history.append(event)
        if len(self.history) > self.history_limit:
            del self.history[: len(self.history) - self.history_limit]

        for observer in list(self._observers):
            try:
                result = observer(event)
            except Exception:
                self.logger.exception("Observer %r failed for %s", observer, event.type.value)
                continue
            if inspect.isawaitable(result):
                create_logged_task(result, logger=self.logger, context=f"observer:{event.type.value}")

    def last(self, event_type: Optional[EventType] = None) -> Optional[TriggerEvent]:
        for event in reversed(self.history):
            if event_type is None or event.type == event_type:
                return event
        return None


__all__ = ["EventType", "TriggerEvent", "EventObserver", "EventBus"]
