import threading
from collections import OrderedDict

from fairspin_be.game_types import SpinStatus

DEFAULT_TERMINAL_RETENTION = 50


class SpinArena:
    """
    Wager records addressed by spin id.

    Every non-terminal spin is kept. Of the terminal ones only the most recent
    ``terminal_retention`` survive; older ones are evicted when a spin finishes.
    """

    def __init__(self, terminal_retention=DEFAULT_TERMINAL_RETENTION):
        if terminal_retention < 0:
            raise ValueError("terminal_retention must be >= 0")
        self.terminal_retention = terminal_retention
        self._records = OrderedDict()
        # spin ids in the order they reached a terminal state
        self._terminal_order = []
        self._lock = threading.RLock()

    def add(self, spin):
        with self._lock:
            if spin.id in self._records:
                raise KeyError(f"Spin {spin.id} already exists")
            self._records[spin.id] = spin
            if spin.is_terminal:
                self._mark_terminal(spin.id)

    def get(self, spin_id):
        with self._lock:
            return self._records.get(spin_id)

    def __contains__(self, spin_id):
        with self._lock:
            return spin_id in self._records

    def __len__(self):
        with self._lock:
            return len(self._records)

    def update(self, spin_id, **changes):
        """Applies field changes to a record. Returns the record, or None if it was evicted."""
        with self._lock:
            spin = self._records.get(spin_id)
            if spin is None:
                return None
            was_terminal = spin.is_terminal
            for key, value in changes.items():
                setattr(spin, key, value)
            if not was_terminal and spin.is_terminal:
                self._mark_terminal(spin_id)
            return spin

    def _mark_terminal(self, spin_id):
        self._terminal_order.append(spin_id)
        while len(self._terminal_order) > self.terminal_retention:
            evicted = self._terminal_order.pop(0)
            self._records.pop(evicted, None)

    def all(self):
        with self._lock:
            return list(self._records.values())

    def pending(self):
        """Spins that have been handed to the chain but are not finished."""
        with self._lock:
            return [s for s in self._records.values() if s.status in SpinStatus.IN_FLIGHT]

    def active(self):
        with self._lock:
            return [s for s in self._records.values() if not s.is_terminal]

    def reserved_balance(self):
        """Total bet plus spin fee of every non-terminal spin."""
        with self._lock:
            return sum(s.reserved_amount for s in self._records.values())

    def clear(self):
        with self._lock:
            self._records.clear()
            self._terminal_order.clear()
