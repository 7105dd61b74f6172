"""
Per-controller event emitter.

Every SpinLifecycleController owns (or is handed) its own EventBus, so several
controllers can live in one process without hearing each other.
"""
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class GameEventType:
    GAME_INITIALIZED = 'game:initialized'
    SPIN_QUEUED = 'spin:queued'
    SPIN_SUBMITTED = 'spin:submitted'
    SPIN_WAITING = 'spin:waiting'
    SPIN_COMPLETED = 'spin:completed'
    SPIN_FAILED = 'spin:failed'
    SPIN_CLAIMED = 'spin:claimed'
    BALANCE_UPDATED = 'balance:updated'
    WIN_SMALL = 'win:small'
    WIN_MEDIUM = 'win:medium'
    WIN_LARGE = 'win:large'
    WIN_JACKPOT = 'win:jackpot'
    ERROR_OCCURRED = 'error:occurred'

    WIN_EVENTS = {
        'small': WIN_SMALL,
        'medium': WIN_MEDIUM,
        'large': WIN_LARGE,
        'jackpot': WIN_JACKPOT,
    }


class GameEvent:
    __slots__ = ('type', 'payload', 'timestamp')

    def __init__(self, event_type: str, payload: Optional[Dict[str, Any]] = None):
        self.type = event_type
        self.payload = payload or {}
        self.timestamp = time.time()

    def __repr__(self):
        return f"<GameEvent {self.type} {self.payload}>"


class EventBus:
    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._any_listeners: List[Callable] = []
        self._lock = threading.Lock()

    def on(self, event_type: str, listener: Callable) -> Callable[[], None]:
        """Subscribes to one event type. Returns a callable that unsubscribes."""
        with self._lock:
            self._listeners.setdefault(event_type, []).append(listener)
        return lambda: self.off(event_type, listener)

    def on_any(self, listener: Callable) -> Callable[[], None]:
        with self._lock:
            self._any_listeners.append(listener)
        return lambda: self._remove_any(listener)

    def once(self, event_type: str, listener: Callable) -> Callable[[], None]:
        def wrapper(event):
            unsubscribe()
            listener(event)
        unsubscribe = self.on(event_type, wrapper)
        return unsubscribe

    def off(self, event_type: str, listener: Callable) -> None:
        with self._lock:
            listeners = self._listeners.get(event_type, [])
            if listener in listeners:
                listeners.remove(listener)

    def _remove_any(self, listener: Callable) -> None:
        with self._lock:
            if listener in self._any_listeners:
                self._any_listeners.remove(listener)

    def emit(self, event_type: str, payload: Optional[Dict[str, Any]] = None) -> GameEvent:
        """
        Delivers an event synchronously on the calling thread.

        A failing listener is logged and does not stop delivery to the others.
        """
        event = GameEvent(event_type, payload)
        with self._lock:
            listeners = list(self._listeners.get(event_type, [])) + list(self._any_listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener for '{event_type}' raised: {e}", exc_info=True)
        return event

    def listener_count(self, event_type: Optional[str] = None) -> int:
        with self._lock:
            if event_type is None:
                return sum(len(v) for v in self._listeners.values()) + len(self._any_listeners)
            return len(self._listeners.get(event_type, []))

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()
            self._any_listeners.clear()
