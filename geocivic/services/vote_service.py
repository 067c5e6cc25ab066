"""
Vote Service - one upvote per user per report.

Votes live in the report_votes collection under a deterministic
"<report_id>_<user_id>" document id, so a second vote by the same user
targets the same document and can be detected before it is written.
"""

from geocivic.config.firebase import get_db
from geocivic.utils.firestore_helpers import utc_now
from typing import Dict
import logging

logger = logging.getLogger(__name__)


class VoteService:
    """Service for managing upvotes on reports."""

    COLLECTION = "report_votes"

    def __init__(self, db=None):
        self.db = db if db is not None else get_db()

    def _vote_ref(self, report_id: str, user_id: str):
        return self.db.collection(self.COLLECTION).document(f"{report_id}_{user_id}")

    def has_voted(self, report_id: str, user_id: str) -> bool:
        return self._vote_ref(report_id, user_id).get().exists

    def stage_vote(self, batch, report_id: str, user_id: str) -> Dict:
        """Add the vote document to the caller's batch."""
        vote_data = {
            "report_id": report_id,
            "user_id": user_id,
            "created_at": utc_now(),
        }
        batch.set(self._vote_ref(report_id, user_id), vote_data)
        return vote_data


# Global service instance
_vote_service = None


def get_vote_service() -> VoteService:
    """Get or create VoteService singleton."""
    global _vote_service
    if _vote_service is None:
        _vote_service = VoteService()
    return _vote_service
