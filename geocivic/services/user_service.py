"""
User Service - Manage users and their roles in Firestore.
"""

from geocivic.config.firebase import get_db
from geocivic.models.user import Role
from geocivic.services.errors import UserNotFound
from geocivic.utils.firestore_helpers import where_filter, utc_now, to_datetime, snapshot_to_dict
from typing import Optional, Dict, List
import logging

logger = logging.getLogger(__name__)


class UserService:
    """
    Service for user management in Firestore.
    """

    COLLECTION = "users"
    PROFILE_FIELDS = ("name", "email", "phone", "area")

    def __init__(self, db=None):
        self.db = db if db is not None else get_db()

    def create_user(self, name: str, role: Role = Role.CITIZEN, email: Optional[str] = None) -> Dict:
        """
        Register a new user.

        Args:
            name: Display name
            role: CITIZEN, STAFF or ADMIN
            email: Optional contact email

        Returns:
            User dictionary including its generated id
        """
        user_ref = self.db.collection(self.COLLECTION).document()
        user_data = {
            "name": name.strip(),
            "role": Role(role).value,
            "email": email,
            "created_at": utc_now(),
        }
        user_ref.set(user_data)
        logger.info(f"User created: {user_ref.id} ({user_data['role']})")

        user_data["id"] = user_ref.id
        return user_data

    def get_user(self, user_id: str) -> Optional[Dict]:
        """
        Get user by id.

        Returns:
            User dict with converted timestamps or None if not found
        """
        if not user_id:
            return None
        doc = self.db.collection(self.COLLECTION).document(user_id).get()
        if not doc.exists:
            return None
        user_data = snapshot_to_dict(doc)
        user_data["created_at"] = to_datetime(user_data.get("created_at"))
        return user_data

    def require_user(self, user_id: str) -> Dict:
        """Like get_user, but raises UserNotFound instead of returning None."""
        user = self.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    def update_profile(self, user_id: str, updates: Dict) -> Dict:
        """
        Change profile fields on an existing user.

        Only name, email, phone and area are written; None values are ignored.

        Raises:
            UserNotFound: No such user
        """
        user = self.require_user(user_id)
        changes = {
            field: value for field, value in updates.items()
            if field in self.PROFILE_FIELDS and value is not None
        }
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if not changes:
            return user

        changes["updated_at"] = utc_now()
        self.db.collection(self.COLLECTION).document(user_id).update(changes)
        logger.info(f"User {user_id} updated: {', '.join(sorted(changes))}")

        user.update(changes)
        return user

    def list_staff(self) -> List[Dict]:
        """All STAFF users, for the admin assignment dropdown."""
        query = where_filter(self.db.collection(self.COLLECTION), "role", "==", Role.STAFF.value)
        return [snapshot_to_dict(doc) for doc in query.stream()]

    def get_staff(self, staff_id: str) -> Optional[Dict]:
        """User dict if staff_id resolves to a STAFF user, else None."""
        user = self.get_user(staff_id)
        if user is None or user.get("role") != Role.STAFF.value:
            return None
        return user


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.

    Returns:
        UserService: The global user service instance
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
