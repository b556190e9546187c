"""
In-memory event hub for sync sessions.

Handlers are plain callables keyed by event name. Emission is synchronous,
in registration order, and isolated: a failing handler is logged and the
remaining handlers still run.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=str)

Handler = Callable[[Any], None]


@dataclass(eq=False)
class _Listener:
    callback: Handler
    once: bool = False
    fired: bool = False


class EventHub(Generic[E]):
    """
    Typed publish/subscribe registry.

    ``E`` is the set of event names (usually a ``Literal``). Handlers may
    register or remove listeners, including themselves, while an event is
    being emitted; emission always works on the listeners that were
    registered when it started.
    """

    def __init__(self):
        self._listeners: Dict[str, List[_Listener]] = {}

    def on(self, event: E, handler: Handler) -> None:
        """Register a persistent handler. Registering the same handler twice is a no-op."""
        listeners = self._listeners.setdefault(event, [])
        if any(item.callback == handler and not item.once for item in listeners):
            return
        listeners.append(_Listener(handler))
        logger.debug(f"Registered handler '{_name(handler)}' for '{event}'")

    def once(self, event: E, handler: Handler) -> None:
        """Register a handler that is removed after its first invocation."""
        self._listeners.setdefault(event, []).append(_Listener(handler, once=True))

    def off(self, event: E, handler: Optional[Handler] = None) -> None:
        """Remove one handler, or every handler for ``event`` when omitted."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        if handler is None:
            listeners.clear()
            return
        self._listeners[event] = [item for item in listeners if item.callback != handler]

    def emit(self, event: E, payload: Any) -> None:
        """Invoke every handler currently registered for ``event``."""
        listeners = list(self._listeners.get(event, ()))
        if not listeners:
            return

        for listener in listeners:
            if listener.once:
                if listener.fired:
                    continue
                listener.fired = True
                self._remove(event, listener)
            try:
                listener.callback(payload)
            except Exception as exc:
                logger.exception(
                    f"Error in event handler '{_name(listener.callback)}' for '{event}': {exc}"
                )

    def listener_count(self, event: E) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self, event: Optional[E] = None) -> None:
        """Clear handlers for an event or all events."""
        if event:
            self._listeners.pop(event, None)
        else:
            self._listeners.clear()

    def _remove(self, event: str, listener: _Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)


def _name(handler: Handler) -> str:
    return getattr(handler, "__name__", repr(handler))


__all__ = ["EventHub", "Handler"]
