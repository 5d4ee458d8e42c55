"""Shared FastAPI dependencies."""

from fastapi import Header

from ottalika.services.actor import Actor


async def get_actor(
    x_actor_id: str | None = Header(None, description="Verified caller id"),
    x_actor_role: str | None = Header(None, description="owner, manager or renter"),
) -> Actor:
    """Caller identity forwarded by the identity provider.

    Raises:
        MissingActor: If either header is absent
    """
    return Actor.from_values(x_actor_id, x_actor_role)
