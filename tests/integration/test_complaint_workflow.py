"""Integration tests for the maintenance complaint dual-confirmation workflow."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from ottalika.models import (
    ComplaintPriority,
    ComplaintStatus,
    MaintenanceRequest,
    ResolutionState,
)
from ottalika.services.actor import Actor, Role
from ottalika.services.audit_service import AuditService
from ottalika.services.complaint_service import ComplaintService
from ottalika.services.errors import (
    AlreadyConfirmed,
    ConcurrentUpdate,
    InvalidState,
    ManagerNotResolved,
    MissingActor,
    NoActiveRenter,
    NotDeletable,
    NotFound,
    ValidationError,
)


@pytest.fixture
def service(db_session):
    return ComplaintService(db_session)


@pytest.fixture
def complaint(service, tenancy, renter_actor):
    return service.create_complaint(
        renter_actor,
        apartment_id=tenancy.apt_101.id,
        title="No water pressure",
        description="Bathroom shower barely runs since Monday",
        category="plumbing",
    )


def assert_invariant(complaint: MaintenanceRequest) -> None:
    both = complaint.manager_marked_resolved and complaint.renter_marked_resolved
    assert (complaint.status == ComplaintStatus.RESOLVED) == both


class TestCreateComplaint:
    def test_defaults(self, complaint, tenancy):
        assert complaint.status == ComplaintStatus.PENDING
        assert complaint.priority == ComplaintPriority.MEDIUM
        assert complaint.category == "plumbing"
        assert complaint.renter_id == tenancy.alice.id
        assert complaint.manager_marked_resolved is False
        assert complaint.renter_marked_resolved is False
        assert complaint.resolution_state == ResolutionState.UNRESOLVED

    def test_category_defaults_to_general(self, service, tenancy, renter_actor):
        created = service.create_complaint(
            renter_actor, tenancy.apt_101.id, title="Door", description="Hinge broken", priority="high"
        )
        assert created.category == "general"
        assert created.priority == ComplaintPriority.HIGH

    @pytest.mark.parametrize("title, description", [("", "text"), ("Title", "   "), (None, "text")])
    def test_title_and_description_required(self, service, tenancy, renter_actor, title, description):
        with pytest.raises(ValidationError):
            service.create_complaint(renter_actor, tenancy.apt_101.id, title=title, description=description)

    def test_unknown_priority(self, service, tenancy, renter_actor):
        with pytest.raises(ValidationError):
            service.create_complaint(renter_actor, tenancy.apt_101.id, "Fan", "Noisy", priority="critical")

    def test_vacant_apartment(self, service, tenancy, renter_actor):
        with pytest.raises(NoActiveRenter):
            service.create_complaint(renter_actor, tenancy.apt_103.id, "Fan", "Noisy")

    def test_missing_actor(self, service, tenancy):
        with pytest.raises(MissingActor):
            service.create_complaint(None, tenancy.apt_101.id, "Fan", "Noisy")


class TestDualConfirmation:
    """Resolution needs both parties unless the renter self-resolves."""

    def test_manager_then_renter(self, service, complaint, manager, renter_actor):
        resolved = service.manager_resolve(manager, complaint.id, resolution_notes="Replaced pump valve")

        assert resolved.manager_marked_resolved is True
        assert resolved.renter_marked_resolved is False
        assert resolved.status == ComplaintStatus.PENDING
        assert resolved.needs_confirmation is True
        assert resolved.resolution_notes == "Replaced pump valve"
        assert_invariant(resolved)

        confirmed = service.renter_confirm_resolve(renter_actor, complaint.id)

        assert confirmed.renter_marked_resolved is True
        assert confirmed.status == ComplaintStatus.RESOLVED
        assert confirmed.completed_at is not None
        assert confirmed.resolution_state == ResolutionState.RESOLVED
        assert_invariant(confirmed)

    def test_manager_resolve_keeps_in_progress(self, service, complaint, manager):
        service.assign_complaint(manager, complaint.id, "Karim (plumber)")
        resolved = service.manager_resolve(manager, complaint.id)
        assert resolved.status == ComplaintStatus.IN_PROGRESS
        assert resolved.needs_confirmation is True

    def test_self_resolve(self, service, complaint, renter_actor):
        closed = service.renter_self_resolve(renter_actor, complaint.id)

        assert closed.manager_marked_resolved is True
        assert closed.renter_marked_resolved is True
        assert closed.status == ComplaintStatus.RESOLVED
        assert closed.completed_at is not None
        assert_invariant(closed)

    def test_self_resolve_while_awaiting_confirmation(self, service, complaint, manager, renter_actor):
        service.manager_resolve(manager, complaint.id)
        closed = service.renter_self_resolve(renter_actor, complaint.id)
        assert closed.status == ComplaintStatus.RESOLVED

    def test_confirm_before_manager(self, service, complaint, renter_actor):
        with pytest.raises(ManagerNotResolved):
            service.renter_confirm_resolve(renter_actor, complaint.id)

    def test_confirm_twice(self, service, complaint, manager, renter_actor):
        service.manager_resolve(manager, complaint.id)
        service.renter_confirm_resolve(renter_actor, complaint.id)
        with pytest.raises(AlreadyConfirmed):
            service.renter_confirm_resolve(renter_actor, complaint.id)

    def test_manager_resolve_twice(self, service, complaint, manager):
        service.manager_resolve(manager, complaint.id)
        with pytest.raises(AlreadyConfirmed):
            service.manager_resolve(manager, complaint.id)

    def test_no_transitions_after_resolution(self, service, complaint, manager, renter_actor):
        service.renter_self_resolve(renter_actor, complaint.id)

        with pytest.raises(InvalidState):
            service.renter_self_resolve(renter_actor, complaint.id)
        with pytest.raises(InvalidState):
            service.manager_resolve(manager, complaint.id)
        with pytest.raises(InvalidState):
            service.assign_complaint(manager, complaint.id, "Karim")

    def test_manager_resolve_with_renter_flag_set_resolves(self, service, complaint, manager, db_session):
        # Legacy rows may carry only the renter flag
        db_session.execute(
            update(MaintenanceRequest)
            .where(MaintenanceRequest.id == complaint.id)
            .values(renter_marked_resolved=True)
        )
        db_session.commit()
        assert service.get_complaint(complaint.id).resolution_state == ResolutionState.AWAITING_MANAGER_CONFIRMATION

        resolved = service.manager_resolve(manager, complaint.id)
        assert resolved.status == ComplaintStatus.RESOLVED
        assert_invariant(resolved)

    def test_transitions_are_audited(self, service, complaint, manager, renter_actor, db_session):
        service.manager_resolve(manager, complaint.id)
        service.renter_confirm_resolve(renter_actor, complaint.id)

        history = AuditService.history(db_session, "complaint", complaint.id)
        assert [e.action for e in history] == ["create", "manager_resolve", "confirm_resolve"]
        assert history[1].actor_role == "manager"


class TestCompareAndSet:
    def test_stale_read_is_rejected(self, service, complaint, manager, db_session):
        """A write validated against a state that has since changed is refused."""
        stale = service.get_complaint(complaint.id)
        db_session.execute(
            update(MaintenanceRequest)
            .where(MaintenanceRequest.id == complaint.id)
            .values(manager_marked_resolved=True)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConcurrentUpdate):
            service._transition(
                manager,
                stale,
                action="manager_resolve",
                guard=[MaintenanceRequest.manager_marked_resolved.is_(False)],
                values={"manager_marked_resolved": True},
                changes={},
            )
        assert AuditService.history(db_session, "complaint", complaint.id)[-1].action == "create"


class TestAssignEscalateDelete:
    def test_assign(self, service, complaint, manager):
        assigned = service.assign_complaint(manager, complaint.id, "Karim (plumber)")
        assert assigned.status == ComplaintStatus.IN_PROGRESS
        assert assigned.assigned_to == "Karim (plumber)"
        assert assigned.assigned_at is not None

    def test_assign_requires_assignee(self, service, complaint, manager):
        with pytest.raises(ValidationError):
            service.assign_complaint(manager, complaint.id, "  ")

    def test_escalate_ladder(self, service, complaint, manager):
        assert service.escalate(manager, complaint.id).priority == ComplaintPriority.HIGH
        assert service.escalate(manager, complaint.id).priority == ComplaintPriority.URGENT
        assert service.escalate(manager, complaint.id).priority == ComplaintPriority.URGENT

    def test_escalate_at_urgent_writes_nothing(self, service, tenancy, renter_actor, manager, db_session):
        urgent = service.create_complaint(
            renter_actor, tenancy.apt_101.id, "Gas smell", "Strong smell near stove", priority="urgent"
        )
        service.escalate(manager, urgent.id)
        assert [e.action for e in AuditService.history(db_session, "complaint", urgent.id)] == ["create"]

    def test_delete_pending(self, service, complaint, renter_actor):
        service.delete_complaint(renter_actor, complaint.id)
        with pytest.raises(NotFound):
            service.get_complaint(complaint.id)

    def test_delete_after_assignment_refused(self, service, complaint, manager, renter_actor):
        service.assign_complaint(manager, complaint.id, "Karim")
        with pytest.raises(NotDeletable):
            service.delete_complaint(renter_actor, complaint.id)
        assert service.get_complaint(complaint.id).status == ComplaintStatus.IN_PROGRESS

    def test_unknown_complaint(self, service, tenancy, manager):
        with pytest.raises(NotFound):
            service.escalate(manager, 777)


class TestComplaintQueries:
    @pytest.fixture
    def seeded(self, service, tenancy, renter_actor, manager):
        bob = Actor(actor_id=tenancy.bob.id, role=Role.RENTER)
        a = service.create_complaint(renter_actor, tenancy.apt_101.id, "Leak", "Ceiling leak", priority="high")
        b = service.create_complaint(renter_actor, tenancy.apt_101.id, "Light", "Corridor light out", priority="low")
        c = service.create_complaint(bob, tenancy.apt_102.id, "Lift", "Lift stuck on 3rd floor", priority="urgent")
        service.manager_resolve(manager, a.id)
        service.renter_self_resolve(renter_actor, b.id)
        return a, b, c

    def test_filter_needs_confirmation(self, service, seeded):
        a, _, _ = seeded
        assert [x.id for x in service.list_complaints(status="needs_confirmation")] == [a.id]
        assert [x.id for x in service.list_needing_confirmation()] == [a.id]

    def test_filters(self, service, seeded, tenancy):
        a, b, c = seeded
        assert [x.id for x in service.list_complaints(status="resolved")] == [b.id]
        assert [x.id for x in service.list_complaints(priority="urgent")] == [c.id]
        assert {x.id for x in service.list_complaints(renter_id=tenancy.alice.id)} == {a.id, b.id}
        assert len(service.list_complaints(status="all")) == 3
        with pytest.raises(ValidationError):
            service.list_complaints(status="closed")

    def test_stats(self, service, seeded, db_session):
        _, b, _ = seeded
        # Pin the resolution time to exactly two days
        created = datetime(2024, 3, 1, 8, tzinfo=timezone.utc)
        db_session.execute(
            update(MaintenanceRequest)
            .where(MaintenanceRequest.id == b.id)
            .values(created_at=created, completed_at=created + timedelta(days=2))
        )
        db_session.commit()

        stats = service.get_complaint_stats()
        assert stats["total"] == 3
        assert stats["by_status"] == {"pending": 2, "in_progress": 0, "resolved": 1}
        assert stats["by_priority"] == {"low": 1, "medium": 0, "high": 1, "urgent": 1}
        assert stats["needs_confirmation"] == 1
        assert stats["avg_resolution_days"] == 2.0
