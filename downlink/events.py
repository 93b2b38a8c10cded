"""Synchronous publish/subscribe used by every game object."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

Listener = Callable[..., Any]


class Signal:
    """Ordered listener list for a single event name."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.listeners: List[Listener] = []

    def connect(self, listener: Listener) -> None:
        self.listeners.append(listener)

    def disconnect(self, listener: Listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def emit(self, *args: Any) -> None:
        # listeners added during delivery wait for the next emit
        for listener in list(self.listeners):
            listener(*args)

    def __len__(self) -> int:
        return len(self.listeners)


class EventEmitter:
    """Mixin giving an object case-insensitive named signals."""

    def __init__(self) -> None:
        self._signals: Dict[str, Signal] = {}

    def signal(self, event_name: str) -> Signal:
        key = event_name.lower()
        found = self._signals.get(key)
        if found is None:
            found = Signal(key)
            self._signals[key] = found
        return found

    def on(self, event_name: str, listener: Listener) -> "EventEmitter":
        self.signal(event_name).connect(listener)
        return self

    def remove_listener(self, event_name: str, listener: Listener) -> "EventEmitter":
        found = self._signals.get(event_name.lower())
        if found is not None:
            found.disconnect(listener)
        return self

    def off(self, event_name: Optional[str] = None) -> "EventEmitter":
        if event_name is None:
            self._signals = {}
        else:
            self._signals.pop(event_name.lower(), None)
        return self

    def trigger(self, event_name: str, *args: Any) -> None:
        found = self._signals.get(event_name.lower())
        if found is not None:
            found.emit(*args)

    def listener_count(self, event_name: str) -> int:
        found = self._signals.get(event_name.lower())
        return len(found) if found is not None else 0


__all__ = ["Signal", "EventEmitter", "Listener"]
