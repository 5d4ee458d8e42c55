"""Audit trail of workflow transitions.

Entries are added to the caller's session and committed with the transition
they describe; a rolled back transition leaves no entry behind.
"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ottalika.models.audit_log import AuditLog
from ottalika.services.actor import Actor

logger = logging.getLogger(__name__)


def _snapshot(changes: dict[str, Any] | None) -> dict[str, Any] | None:
    """JSON-safe copy of a change set (money, dates and enums as strings)."""
    if changes is None:
        return None
    safe = {}
    for key, value in changes.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (Decimal, date)):
            value = str(value)
        safe[key] = value
    return safe


class AuditService:
    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int,
        action: str,
        actor: Actor | None = None,
        changes: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Record that `actor` performed `action` on an entity.

        Args:
            db: Session holding the transition being recorded
            entity_type: "payment" or "complaint"
            entity_id: Primary key of the entity
            action: Transition name ("submit", "verify", "manager_resolve", ...)
            actor: Caller; None for system actions
            changes: Fields the transition changed

        Returns:
            The pending AuditLog row
        """
        entry = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor.actor_id if actor else None,
            actor_role=actor.role.value if actor else None,
            changes=_snapshot(changes),
        )
        db.add(entry)
        logger.debug(f"Audit {entity_type} {entity_id} {action} by {entry.actor_role}:{entry.actor_id}")
        return entry

    @staticmethod
    def history(db: Session, entity_type: str, entity_id: int) -> list[AuditLog]:
        """Audit entries for one entity, oldest first."""
        stmt = (
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.id)
        )
        return list(db.execute(stmt).scalars())


__all__ = ["AuditService"]
