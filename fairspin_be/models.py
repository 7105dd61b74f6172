from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone
from sqlalchemy import BigInteger

db = SQLAlchemy()

class SpinEvent(db.Model):
    """
    Indexed copy of a contract spin event.

    Filled by whatever ingests the contract's event stream; replay falls back to
    it when a transaction's logs no longer carry the bet key.
    """
    __tablename__ = 'spin_event'
    id = db.Column(db.Integer, primary_key=True)
    txid = db.Column(db.String(128), nullable=False, index=True)
    sender = db.Column(db.String(58), nullable=False, index=True)
    amount = db.Column(BigInteger, nullable=False)
    max_payline_index = db.Column(BigInteger, nullable=False, default=0)
    index_value = db.Column(BigInteger, nullable=False, default=0)
    round = db.Column(BigInteger, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def to_dict(self):
        return {
            'txid': self.txid,
            'sender': self.sender,
            'amount': self.amount,
            'max_payline_index': self.max_payline_index,
            'index_value': self.index_value,
            'round': self.round,
        }

    def __repr__(self):
        return f"<SpinEvent {self.txid} (Round: {self.round}, Amount: {self.amount})>"
