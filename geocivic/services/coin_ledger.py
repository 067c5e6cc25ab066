"""
Coin Ledger - append-only civic coin accounting.

DESIGN PRINCIPLES:
- Entries are only ever appended, never updated or deleted
- A balance is always the sum of a user's entries; no stored balance field
- Writes for the same user are serialized so debits see every prior credit
"""

from geocivic.config.firebase import get_db
from geocivic.models.ledger import LedgerReason
from geocivic.services.errors import InsufficientBalance
from geocivic.utils.firestore_helpers import where_filter, utc_now, snapshot_to_dict
from geocivic.utils.locks import KeyedLocks
from firebase_admin import firestore
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional
import logging

logger = logging.getLogger(__name__)


def _check_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError(f"Ledger amount must be a positive integer, got {amount!r}")
    return amount


class CoinLedger:
    """Per-user civic coin ledger stored in the ledger_entries collection."""

    COLLECTION = "ledger_entries"

    def __init__(self, db=None, locks: Optional[KeyedLocks] = None):
        self.db = db if db is not None else get_db()
        self._locks = locks if locks is not None else KeyedLocks()

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        """Serialize ledger writes for one user (used by staged credits)."""
        with self._locks.hold(user_id):
            yield

    def _entries_query(self, user_id: str):
        return where_filter(self.db.collection(self.COLLECTION), "user_id", "==", user_id)

    def balance(self, user_id: str) -> int:
        """Sum of every entry for the user."""
        return sum(int(doc.to_dict().get("delta", 0)) for doc in self._entries_query(user_id).stream())

    def history(self, user_id: str) -> List[Dict]:
        """All entries for the user, newest first."""
        query = self._entries_query(user_id).order_by("created_at", direction=firestore.Query.DESCENDING)
        return [snapshot_to_dict(doc) for doc in query.stream()]

    def stage_entry(
        self,
        batch,
        user_id: str,
        delta: int,
        reason: LedgerReason,
        report_id: Optional[str] = None,
        note: Optional[str] = None
    ) -> Dict:
        """
        Add a ledger entry to a caller-owned write batch.

        The caller commits the batch, so the entry lands atomically with the
        caller's other writes. Callers should hold(user_id) until commit.
        """
        entry_ref = self.db.collection(self.COLLECTION).document()
        entry = {
            "user_id": user_id,
            "delta": delta,
            "reason": LedgerReason(reason).value,
            "report_id": report_id,
            "note": note,
            "created_at": utc_now(),
        }
        batch.set(entry_ref, entry)
        entry["id"] = entry_ref.id
        return entry

    def stage_credit(self, batch, user_id: str, amount: int, reason: LedgerReason, **kwargs) -> Dict:
        return self.stage_entry(batch, user_id, _check_amount(amount), reason, **kwargs)

    def credit(
        self,
        user_id: str,
        amount: int,
        reason: LedgerReason,
        report_id: Optional[str] = None,
        note: Optional[str] = None
    ) -> int:
        """
        Credit coins to a user.

        Returns:
            The user's new balance
        """
        with self.hold(user_id):
            batch = self.db.batch()
            self.stage_credit(batch, user_id, amount, reason, report_id=report_id, note=note)
            batch.commit()
            new_balance = self.balance(user_id)

        logger.info(f"🪙 Credited {amount} to {user_id} ({LedgerReason(reason).value}); balance {new_balance}")
        return new_balance

    def debit(
        self,
        user_id: str,
        amount: int,
        reason: LedgerReason = LedgerReason.REWARD_REDEEMED,
        note: Optional[str] = None
    ) -> int:
        """
        Debit coins from a user.

        Returns:
            The user's new balance

        Raises:
            InsufficientBalance: If amount exceeds the current balance (nothing is written)
        """
        _check_amount(amount)
        with self.hold(user_id):
            current = self.balance(user_id)
            if amount > current:
                logger.warning(f"Debit of {amount} refused for {user_id}: balance {current}")
                raise InsufficientBalance(user_id, current, amount)

            batch = self.db.batch()
            self.stage_entry(batch, user_id, -amount, reason, note=note)
            batch.commit()
            new_balance = current - amount

        logger.info(f"🪙 Debited {amount} from {user_id} ({LedgerReason(reason).value}); balance {new_balance}")
        return new_balance


# Global service instance
_coin_ledger = None


def get_coin_ledger() -> CoinLedger:
    """Get or create CoinLedger singleton."""
    global _coin_ledger
    if _coin_ledger is None:
        _coin_ledger = CoinLedger()
    return _coin_ledger
