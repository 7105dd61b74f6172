"""
Lookup of indexed spin events, used as the replay fallback.

A stored event carries the fields of the bet key except the identifier, which
is recovered from the sender address.
"""
import logging
import threading
from abc import ABC, abstractmethod

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from fairspin_be.exceptions import ChainQueryException
from fairspin_be.models import SpinEvent, db
from fairspin_be.utils.tx_ids import tx_id_variants

logger = logging.getLogger(__name__)


class SpinEventStore(ABC):
    @abstractmethod
    def find_spin_event(self, tx_id):
        """Event dict for ``tx_id`` (any accepted id form), or None."""
        ...

    @abstractmethod
    def record_spin_event(self, txid, sender, amount, max_payline_index, index_value, round):
        ...


class InMemorySpinEventStore(SpinEventStore):
    def __init__(self):
        self._events = {}
        self._lock = threading.Lock()

    def find_spin_event(self, tx_id):
        with self._lock:
            for candidate in tx_id_variants(tx_id):
                event = self._events.get(candidate)
                if event is not None:
                    return dict(event)
        return None

    def record_spin_event(self, txid, sender, amount, max_payline_index, index_value, round):
        event = {
            'txid': txid,
            'sender': sender,
            'amount': int(amount),
            'max_payline_index': int(max_payline_index),
            'index_value': int(index_value),
            'round': int(round),
        }
        with self._lock:
            self._events[txid] = event
        return dict(event)


class SqlSpinEventStore(SpinEventStore):
    """Reads the ``spin_event`` table. Needs an active Flask app context."""

    def find_spin_event(self, tx_id):
        candidates = tx_id_variants(tx_id)
        try:
            event = db.session.scalar(
                select(SpinEvent)
                .where(SpinEvent.txid.in_(candidates))
                .order_by(SpinEvent.id.desc())
                .limit(1)
            )
        except SQLAlchemyError as e:
            logger.error(f"Spin event lookup for {tx_id} failed: {e}", exc_info=True)
            raise ChainQueryException("Spin event lookup failed", details={'tx_id': tx_id})
        return event.to_dict() if event is not None else None

    def record_spin_event(self, txid, sender, amount, max_payline_index, index_value, round):
        event = SpinEvent(
            txid=txid,
            sender=sender,
            amount=int(amount),
            max_payline_index=int(max_payline_index),
            index_value=int(index_value),
            round=int(round),
        )
        try:
            db.session.add(event)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to record spin event {txid}: {e}", exc_info=True)
            raise
        return event.to_dict()
