"""Request dependencies shared by the Logistics routers."""

from fastapi import Header

from logistics.shared.actor import Actor
from logistics.shared.errors import AuthenticationRequiredError


def get_actor(
    x_actor_id: str = Header(default=""),
    x_actor_role: str = Header(default=""),
) -> Actor:
    """Credential context set by the authenticating gateway in front of the API."""
    if not x_actor_id or not x_actor_role:
        raise AuthenticationRequiredError("X-Actor-Id and X-Actor-Role headers are required")
    return Actor.of(x_actor_id, x_actor_role)
