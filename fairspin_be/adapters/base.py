"""
Chain adapter interfaces.

The lifecycle controller only ever talks to a ChainAdapter; the replay
reconstructor only needs the narrower ChainReader.
"""
from abc import ABC, abstractmethod
from typing import Optional

from fairspin_be.game_types import ClaimConfirmation, GameConfig, SpinOutcome, SubmittedSpin


class ChainReader(ABC):
    """Read-only ledger access."""

    @abstractmethod
    def get_current_block(self) -> int:
        ...

    @abstractmethod
    def get_block_seed(self, round_number: int) -> bytes:
        """32-byte seed of ``round_number``."""
        ...

    @abstractmethod
    def lookup_transaction(self, tx_id: str) -> Optional[dict]:
        """
        Indexer-shaped transaction dict, or None when the ledger does not know it.

        Keys used: ``id``, ``sender``, ``confirmed-round``, ``logs`` (base64 strings),
        ``inner-txns`` and ``application-transaction``.
        """
        ...


class TransactionSubmitter(ABC):
    """
    Builds, signs and sends contract calls on behalf of a wallet.

    Signing lives outside this package; adapters that write to a real ledger are
    handed one of these.
    """

    @abstractmethod
    def submit_spin(self, bet_per_line: int, max_payline_index: int, player_index: int,
                    payment_amount: int, party: str) -> dict:
        """Sends the spin call and waits for confirmation. Returns the confirmed app call (``id``, ``confirmed-round``, ``logs``)."""
        ...

    @abstractmethod
    def submit_claim(self, bet_key: bytes, party: str) -> dict:
        """Sends the claim call. Returns ``id``, ``confirmed-round`` and the decoded ``payout``."""
        ...


class ChainAdapter(ChainReader):
    """Everything the spin lifecycle needs from a chain backend."""

    @abstractmethod
    def initialize(self) -> None:
        ...

    @abstractmethod
    def submit_spin(self, bet_per_line: int, paylines: int, party: str) -> SubmittedSpin:
        ...

    @abstractmethod
    def calculate_outcome_from_seed(self, bet_key: str, claim_block: int, bet_per_line: int,
                                    paylines: int) -> SpinOutcome:
        """Fetches the claim block seed and derives + scores the grid."""
        ...

    @abstractmethod
    def claim_spin(self, bet_key: str, claim_block: int, bet_per_line: int,
                   paylines: int) -> ClaimConfirmation:
        ...

    @abstractmethod
    def get_balance(self, party: str) -> int:
        ...

    @abstractmethod
    def get_contract_config(self) -> GameConfig:
        ...
