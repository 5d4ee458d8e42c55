"""Audit log model for tracking workflow transitions."""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from ottalika.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """Audit log entry for a workflow transition.

    Records who (actor_id, actor_role) did what (action) to which entity
    (entity_type, entity_id) and an optional snapshot of changed fields.
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(String(50), index=True)
    """Entity type being audited: "payment", "complaint"."""

    entity_id: Mapped[int] = mapped_column(index=True)
    """Primary key of the entity being audited."""

    action: Mapped[str] = mapped_column(String(50))
    """Action performed: "submit", "verify", "escalate", etc."""

    actor_id: Mapped[int | None] = mapped_column(nullable=True)
    """Identity supplied by the identity provider. None for system actions."""

    actor_role: Mapped[str | None] = mapped_column(String(20), nullable=True)

    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    """Optional JSON snapshot of changed fields: {"status": "verified"}."""

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, entity_type={self.entity_type}, entity_id={self.entity_id}, "
            f"action={self.action}, actor_id={self.actor_id}, created_at={self.created_at})>"
        )


__all__ = ["AuditLog"]
