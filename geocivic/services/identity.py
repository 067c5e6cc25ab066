"""
Identity resolution for lifecycle calls.

Token issuance and sessions live outside this service. The HTTP layer hands
over the caller's user id; the role always comes from the user directory,
never from the client.
"""

from geocivic.models.user import Actor, Role
from geocivic.services.user_service import UserService, get_user_service
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class IdentityProvider:
    def __init__(self, user_service: Optional[UserService] = None):
        self.user_service = user_service or get_user_service()

    def current_actor(self, user_id: str) -> Actor:
        """
        Resolve the acting user.

        Raises:
            UserNotFound: If the id is unknown
        """
        user = self.user_service.require_user(user_id)
        return Actor(id=user["id"], role=Role(user["role"]))


_identity_provider = None


def get_identity_provider() -> IdentityProvider:
    """Get or create IdentityProvider singleton."""
    global _identity_provider
    if _identity_provider is None:
        _identity_provider = IdentityProvider()
    return _identity_provider
