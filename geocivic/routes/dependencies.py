"""
Shared route dependencies.
"""

from fastapi import Header, HTTPException, status

from geocivic.models.user import Actor, Role
from geocivic.services.errors import UserNotFound, WrongActor
from geocivic.services.identity import get_identity_provider


async def get_current_actor(
    x_user_id: str = Header(..., alias="X-User-ID", description="Authenticated user id")
) -> Actor:
    """
    Resolve the caller into an explicit Actor for lifecycle calls.

    Session/token validation happens upstream; this only maps the user id
    to its directory role.
    """
    try:
        return get_identity_provider().current_actor(x_user_id)
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown user {x_user_id}"
        )


def require_self_or_admin(actor: Actor, user_id: str) -> None:
    """Users may access their own profile, coins and inbox; admins may access anyone's."""
    if actor.id != user_id and actor.role != Role.ADMIN:
        raise WrongActor("You can only access your own account")
