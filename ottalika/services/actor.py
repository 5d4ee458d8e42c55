"""Actor identity passed explicitly into workflow operations."""

from dataclasses import dataclass
from enum import Enum

from ottalika.services.errors import MissingActor, ValidationError


class Role(str, Enum):
    """Portal roles supplied by the identity provider."""

    OWNER = "owner"
    MANAGER = "manager"
    RENTER = "renter"


@dataclass(frozen=True)
class Actor:
    """Verified caller identity.

    The identity provider has already authenticated the caller; workflows only
    record who acted and require that someone did.
    """

    actor_id: int
    role: Role

    @classmethod
    def from_values(cls, actor_id: int | str | None, role: str | None) -> "Actor":
        """Build an Actor from raw header values.

        Raises:
            MissingActor: If either value is absent
            ValidationError: If the id is not an integer or the role is unknown
        """
        if actor_id in (None, "") or not role:
            raise MissingActor()
        try:
            parsed_id = int(actor_id)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid actor id: {actor_id!r}") from e
        try:
            parsed_role = Role(role.lower())
        except ValueError as e:
            raise ValidationError(f"Unknown role: {role!r}") from e
        return cls(actor_id=parsed_id, role=parsed_role)


def require_actor(actor: Actor | None) -> Actor:
    """Return the actor or raise MissingActor for mutating calls."""
    if actor is None:
        raise MissingActor()
    return actor


__all__ = ["Actor", "Role", "require_actor"]
