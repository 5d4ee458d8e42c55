"""Maintenance complaint workflow service.

A complaint moves pending -> in_progress -> resolved. Resolution needs both the
manager flag and the renter flag; the renter may also close the complaint alone
through self-resolve. Every transition is a compare-and-set update guarded by
the state it was validated against.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ottalika.models import (
    ComplaintPriority,
    ComplaintStatus,
    MaintenanceRequest,
    as_utc,
    utcnow,
)
from ottalika.services.actor import Actor, require_actor
from ottalika.services.audit_service import AuditService
from ottalika.services.errors import (
    AlreadyConfirmed,
    AppError,
    ConcurrentUpdate,
    InvalidState,
    ManagerNotResolved,
    NotDeletable,
    NotFound,
    StoreFailure,
    ValidationError,
)
from ottalika.services.tenancy_service import TenancyService

logger = logging.getLogger(__name__)

OPEN_STATUSES = (ComplaintStatus.PENDING, ComplaintStatus.IN_PROGRESS)
NEEDS_CONFIRMATION = "needs_confirmation"
DEFAULT_CATEGORY = "general"


def parse_priority(value: ComplaintPriority | str | None) -> ComplaintPriority:
    if value is None or value == "":
        return ComplaintPriority.MEDIUM
    try:
        return ComplaintPriority(value)
    except ValueError as e:
        allowed = ", ".join(p.value for p in ComplaintPriority)
        raise ValidationError(f"Unknown priority {value!r}; expected one of: {allowed}") from e


class ComplaintService:
    """Complaint lifecycle operations and listings."""

    def __init__(self, db: Session):
        """Initialize complaint service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self.tenancy = TenancyService(db)

    def get_complaint(self, complaint_id: int) -> MaintenanceRequest:
        """Get complaint by ID.

        Raises:
            NotFound: If the complaint does not exist
        """
        complaint = self.db.get(MaintenanceRequest, complaint_id)
        if complaint is None:
            raise NotFound(f"Complaint {complaint_id} not found")
        return complaint

    def create_complaint(
        self,
        actor: Actor | None,
        apartment_id: int,
        title: str,
        description: str,
        category: str | None = None,
        priority: ComplaintPriority | str | None = None,
    ) -> MaintenanceRequest:
        """File a new complaint against an occupied apartment.

        Args:
            actor: Caller identity (required)
            apartment_id: Apartment the complaint concerns
            title: Short summary (required)
            description: Full description (required)
            category: Free-form category (default 'general')
            priority: Initial priority (default 'medium')

        Returns:
            Created MaintenanceRequest with status=pending and both flags false

        Raises:
            MissingActor, ValidationError, NotFound, NoActiveRenter, StoreFailure
        """
        actor = require_actor(actor)
        title = (title or "").strip()
        description = (description or "").strip()
        if not title or not description:
            raise ValidationError("Title and description are required")
        complaint_priority = parse_priority(priority)
        _, renter_id = self.tenancy.require_active_renter(apartment_id)

        complaint = MaintenanceRequest(
            apartment_id=apartment_id,
            renter_id=renter_id,
            title=title,
            description=description,
            category=(category or "").strip() or DEFAULT_CATEGORY,
            priority=complaint_priority,
            status=ComplaintStatus.PENDING,
            manager_marked_resolved=False,
            renter_marked_resolved=False,
        )
        try:
            self.db.add(complaint)
            self.db.flush()
            AuditService.log(
                self.db,
                "complaint",
                complaint.id,
                "create",
                actor=actor,
                changes={"priority": complaint_priority.value, "category": complaint.category},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating complaint for apartment {apartment_id}: {e}", exc_info=True)
            raise StoreFailure("Failed to create complaint", detail=str(e)) from e

        self.db.refresh(complaint)
        logger.info(
            f"Complaint {complaint.id} created for apartment {apartment_id} "
            f"priority={complaint_priority.value}"
        )
        return complaint

    def assign_complaint(
        self,
        actor: Actor | None,
        complaint_id: int,
        assignee: str,
        now: datetime | None = None,
    ) -> MaintenanceRequest:
        """Assign an open complaint and move it to in_progress.

        Raises:
            ValidationError: If assignee is empty
            InvalidState: If the complaint is already resolved
        """
        actor = require_actor(actor)
        assignee = (assignee or "").strip()
        if not assignee:
            raise ValidationError("Assignee is required")
        complaint = self.get_complaint(complaint_id)
        if complaint.status not in OPEN_STATUSES:
            raise InvalidState(f"Complaint {complaint_id} is already {complaint.status.value}")

        return self._transition(
            actor,
            complaint,
            action="assign",
            guard=[MaintenanceRequest.status == complaint.status],
            values={
                "status": ComplaintStatus.IN_PROGRESS,
                "assigned_to": assignee,
                "assigned_at": now or utcnow(),
            },
            changes={"assigned_to": assignee},
        )

    def manager_resolve(
        self,
        actor: Actor | None,
        complaint_id: int,
        resolution_notes: str | None = None,
        now: datetime | None = None,
    ) -> MaintenanceRequest:
        """Manager marks the complaint resolved.

        The status only becomes resolved when the renter flag is already set;
        otherwise the complaint waits for the renter's confirmation.

        Raises:
            InvalidState: If the complaint is not pending/in_progress
            AlreadyConfirmed: If the manager already marked it resolved
        """
        actor = require_actor(actor)
        complaint = self.get_complaint(complaint_id)
        if complaint.status not in OPEN_STATUSES:
            raise InvalidState(f"Complaint {complaint_id} is already {complaint.status.value}")
        if complaint.manager_marked_resolved:
            raise AlreadyConfirmed(f"Complaint {complaint_id} is already marked resolved by manager")

        values: Dict[str, Any] = {
            "manager_marked_resolved": True,
            "resolution_notes": resolution_notes,
        }
        if resolution_notes:
            values["resolution"] = resolution_notes
        if complaint.renter_marked_resolved:
            values["status"] = ComplaintStatus.RESOLVED
            values["completed_at"] = now or utcnow()

        return self._transition(
            actor,
            complaint,
            action="manager_resolve",
            guard=[
                MaintenanceRequest.status == complaint.status,
                MaintenanceRequest.manager_marked_resolved.is_(False),
                MaintenanceRequest.renter_marked_resolved.is_(complaint.renter_marked_resolved),
            ],
            values=values,
            changes={"manager_marked_resolved": True, "notes": resolution_notes},
        )

    def renter_self_resolve(
        self,
        actor: Actor | None,
        complaint_id: int,
        now: datetime | None = None,
    ) -> MaintenanceRequest:
        """Renter closes their own complaint without waiting for the manager.

        Raises:
            InvalidState: If the complaint is not pending/in_progress
        """
        actor = require_actor(actor)
        complaint = self.get_complaint(complaint_id)
        if complaint.status not in OPEN_STATUSES:
            raise InvalidState(f"Complaint {complaint_id} is already {complaint.status.value}")

        return self._transition(
            actor,
            complaint,
            action="self_resolve",
            guard=[MaintenanceRequest.status.in_(OPEN_STATUSES)],
            values={
                "manager_marked_resolved": True,
                "renter_marked_resolved": True,
                "status": ComplaintStatus.RESOLVED,
                "completed_at": now or utcnow(),
            },
            changes={"status": ComplaintStatus.RESOLVED.value, "self_resolved": True},
        )

    def renter_confirm_resolve(
        self,
        actor: Actor | None,
        complaint_id: int,
        now: datetime | None = None,
    ) -> MaintenanceRequest:
        """Renter confirms a manager-resolved complaint, closing it.

        Raises:
            ManagerNotResolved: If the manager has not marked it resolved
            AlreadyConfirmed: If the renter already confirmed
        """
        actor = require_actor(actor)
        complaint = self.get_complaint(complaint_id)
        if not complaint.manager_marked_resolved:
            raise ManagerNotResolved(f"Complaint {complaint_id} has not been resolved by the manager")
        if complaint.renter_marked_resolved:
            raise AlreadyConfirmed(f"Complaint {complaint_id} is already confirmed")

        return self._transition(
            actor,
            complaint,
            action="confirm_resolve",
            guard=[
                MaintenanceRequest.manager_marked_resolved.is_(True),
                MaintenanceRequest.renter_marked_resolved.is_(False),
            ],
            values={
                "renter_marked_resolved": True,
                "status": ComplaintStatus.RESOLVED,
                "completed_at": now or utcnow(),
            },
            changes={"status": ComplaintStatus.RESOLVED.value},
        )

    def escalate(self, actor: Actor | None, complaint_id: int) -> MaintenanceRequest:
        """Raise the priority one step. Urgent complaints are returned unchanged."""
        actor = require_actor(actor)
        complaint = self.get_complaint(complaint_id)
        current = complaint.priority
        target = current.escalated()
        if target == current:
            logger.info(f"Complaint {complaint_id} already {current.value}, escalation skipped")
            return complaint

        return self._transition(
            actor,
            complaint,
            action="escalate",
            guard=[MaintenanceRequest.priority == current],
            values={"priority": target},
            changes={"from": current.value, "to": target.value},
        )

    def delete_complaint(self, actor: Actor | None, complaint_id: int) -> None:
        """Delete a complaint that nobody has started working on.

        Raises:
            NotDeletable: If the complaint is no longer pending
        """
        actor = require_actor(actor)
        complaint = self.get_complaint(complaint_id)
        if complaint.status != ComplaintStatus.PENDING:
            raise NotDeletable(f"Only pending complaints can be deleted (is {complaint.status.value})")

        try:
            result = self.db.execute(
                delete(MaintenanceRequest)
                .where(
                    MaintenanceRequest.id == complaint_id,
                    MaintenanceRequest.status == ComplaintStatus.PENDING,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotDeletable(f"Complaint {complaint_id} changed before it could be deleted")
            AuditService.log(
                self.db,
                "complaint",
                complaint_id,
                "delete",
                actor=actor,
                changes={"title": complaint.title},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting complaint {complaint_id}: {e}", exc_info=True)
            raise StoreFailure("Failed to delete complaint", detail=str(e)) from e
        except AppError:
            self.db.rollback()
            raise

        self.db.expunge(complaint)
        logger.info(f"Complaint {complaint_id} deleted by {actor.actor_id}")

    def _transition(
        self,
        actor: Actor,
        complaint: MaintenanceRequest,
        action: str,
        guard: List[Any],
        values: Dict[str, Any],
        changes: Dict[str, Any],
    ) -> MaintenanceRequest:
        """Apply a compare-and-set update plus its audit entry in one transaction."""
        complaint_id = complaint.id
        try:
            result = self.db.execute(
                update(MaintenanceRequest)
                .where(MaintenanceRequest.id == complaint_id, *guard)
                .values(updated_at=utcnow(), **values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrentUpdate(f"Complaint {complaint_id} changed concurrently; retry")
            AuditService.log(self.db, "complaint", complaint_id, action, actor=actor, changes=changes)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error applying {action} to complaint {complaint_id}: {e}", exc_info=True)
            raise StoreFailure(f"Failed to {action.replace('_', ' ')} complaint", detail=str(e)) from e
        except AppError:
            self.db.rollback()
            logger.warning(f"Complaint {complaint_id} left its expected state during {action}")
            raise

        self.db.refresh(complaint)
        logger.info(
            f"Complaint {complaint_id} {action} by {actor.role.value} {actor.actor_id}: "
            f"status={complaint.status.value} state={complaint.resolution_state.value}"
        )
        return complaint

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_complaints(
        self,
        status: ComplaintStatus | str | None = None,
        priority: ComplaintPriority | str | None = None,
        renter_id: int | None = None,
        apartment_id: int | None = None,
    ) -> List[MaintenanceRequest]:
        """Complaints newest first, filtered by status, priority and owner.

        `status="needs_confirmation"` selects complaints the manager resolved
        that still await the renter's confirmation.
        """
        stmt = select(MaintenanceRequest)
        if status == NEEDS_CONFIRMATION:
            stmt = stmt.where(
                MaintenanceRequest.manager_marked_resolved.is_(True),
                MaintenanceRequest.renter_marked_resolved.is_(False),
            )
        elif status not in (None, "", "all"):
            try:
                stmt = stmt.where(MaintenanceRequest.status == ComplaintStatus(status))
            except ValueError as e:
                raise ValidationError(f"Unknown complaint status {status!r}") from e
        if priority not in (None, "", "all"):
            stmt = stmt.where(MaintenanceRequest.priority == parse_priority(priority))
        if renter_id is not None:
            stmt = stmt.where(MaintenanceRequest.renter_id == renter_id)
        if apartment_id is not None:
            stmt = stmt.where(MaintenanceRequest.apartment_id == apartment_id)

        return list(
            self.db.execute(
                stmt.order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id.desc())
            ).scalars()
        )

    def list_needing_confirmation(self, renter_id: int | None = None) -> List[MaintenanceRequest]:
        return self.list_complaints(status=NEEDS_CONFIRMATION, renter_id=renter_id)

    def get_complaint_stats(self, renter_id: Optional[int] = None) -> Dict[str, Any]:
        """Counts by status and priority plus average resolution time in days."""
        base = select(MaintenanceRequest)
        if renter_id is not None:
            base = base.where(MaintenanceRequest.renter_id == renter_id)
        complaints = list(self.db.execute(base).scalars())

        by_status = {s.value: 0 for s in ComplaintStatus}
        by_priority = {p.value: 0 for p in ComplaintPriority}
        needs_confirmation = 0
        resolution_days: List[float] = []
        for complaint in complaints:
            by_status[complaint.status.value] += 1
            by_priority[complaint.priority.value] += 1
            if complaint.needs_confirmation:
                needs_confirmation += 1
            if complaint.status == ComplaintStatus.RESOLVED and complaint.completed_at:
                elapsed = as_utc(complaint.completed_at) - as_utc(complaint.created_at)
                resolution_days.append(elapsed.total_seconds() / 86400)

        avg_days = round(sum(resolution_days) / len(resolution_days), 1) if resolution_days else None
        return {
            "total": len(complaints),
            "by_status": by_status,
            "by_priority": by_priority,
            "needs_confirmation": needs_confirmation,
            "avg_resolution_days": avg_days,
        }


__all__ = ["ComplaintService", "NEEDS_CONFIRMATION", "OPEN_STATUSES", "parse_priority"]
