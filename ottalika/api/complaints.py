"""Maintenance complaint API routes."""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ottalika.api.deps import get_actor
from ottalika.api.schemas import (
    AssignComplaintPayload,
    ComplaintResponse,
    CreateComplaintPayload,
    ResolveComplaintPayload,
    envelope,
)
from ottalika.services import get_db
from ottalika.services.actor import Actor
from ottalika.services.complaint_service import ComplaintService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/complaints", tags=["complaints"])


def _complaint(complaint) -> ComplaintResponse:
    return ComplaintResponse.model_validate(complaint)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_complaint(
    payload: CreateComplaintPayload,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    File a maintenance complaint.

    Returns:
        201: Complaint created with status 'pending'
        404: Apartment not found
        409: Apartment has no active renter
        422: Missing title or description, unknown priority
    """
    complaint = ComplaintService(db).create_complaint(
        actor,
        apartment_id=payload.apartment_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        priority=payload.priority,
    )
    return envelope("Complaint submitted successfully", data=_complaint(complaint))


@router.get("")
async def list_complaints(
    status_filter: str | None = Query(None, alias="status"),
    priority: str | None = Query(None),
    renter_id: int | None = Query(None),
    apartment_id: int | None = Query(None),
    db: Session = Depends(get_db),
):
    """List complaints; status=needs_confirmation selects those awaiting the renter."""
    complaints = ComplaintService(db).list_complaints(
        status=status_filter, priority=priority, renter_id=renter_id, apartment_id=apartment_id
    )
    logger.debug(f"Listed {len(complaints)} complaints (status={status_filter}, priority={priority})")
    return envelope(
        f"Found {len(complaints)} complaints",
        data=[_complaint(c) for c in complaints],
    )


@router.get("/stats")
async def complaint_stats(
    renter_id: int | None = Query(None),
    db: Session = Depends(get_db),
):
    return envelope("Complaint statistics", data=ComplaintService(db).get_complaint_stats(renter_id))


@router.get("/needs-confirmation")
async def needs_confirmation(
    renter_id: int | None = Query(None),
    db: Session = Depends(get_db),
):
    """Complaints the manager resolved that still await the renter's confirmation."""
    complaints = ComplaintService(db).list_needing_confirmation(renter_id=renter_id)
    return envelope(
        f"{len(complaints)} complaints awaiting confirmation",
        data=[_complaint(c) for c in complaints],
    )


@router.get("/{complaint_id}")
async def get_complaint(complaint_id: int, db: Session = Depends(get_db)):
    complaint = ComplaintService(db).get_complaint(complaint_id)
    return envelope("Complaint found", data=_complaint(complaint))


@router.put("/{complaint_id}/assign")
async def assign_complaint(
    complaint_id: int,
    payload: AssignComplaintPayload,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = ComplaintService(db).assign_complaint(actor, complaint_id, payload.assignee)
    return envelope(f"Complaint assigned to {complaint.assigned_to}", data=_complaint(complaint))


@router.put("/{complaint_id}/resolve")
async def manager_resolve(
    complaint_id: int,
    payload: ResolveComplaintPayload | None = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Manager marks a complaint resolved.

    Returns:
        200: Manager flag set; status resolved only if the renter already confirmed
        404: Complaint not found
        409: Complaint closed or already marked by the manager
    """
    notes = payload.resolution_notes if payload else None
    complaint = ComplaintService(db).manager_resolve(actor, complaint_id, resolution_notes=notes)
    message = (
        "Complaint resolved"
        if complaint.resolution_state.value == "resolved"
        else "Complaint marked as resolved. Waiting for renter confirmation."
    )
    return envelope(message, data=_complaint(complaint))


@router.put("/{complaint_id}/self-resolve")
async def renter_self_resolve(
    complaint_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = ComplaintService(db).renter_self_resolve(actor, complaint_id)
    return envelope("Complaint closed by renter", data=_complaint(complaint))


@router.put("/{complaint_id}/confirm-resolve")
async def renter_confirm_resolve(
    complaint_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Renter confirms the manager's resolution.

    Returns:
        200: Complaint resolved
        409: Manager has not resolved it yet, or already confirmed
    """
    complaint = ComplaintService(db).renter_confirm_resolve(actor, complaint_id)
    return envelope("Resolution confirmed", data=_complaint(complaint))


@router.put("/{complaint_id}/escalate")
async def escalate_complaint(
    complaint_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = ComplaintService(db).escalate(actor, complaint_id)
    return envelope(f"Complaint priority is {complaint.priority.value}", data=_complaint(complaint))


@router.delete("/{complaint_id}")
async def delete_complaint(
    complaint_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Delete a complaint that is still pending.

    Returns:
        200: Deleted
        404: Complaint not found
        409: Complaint already in progress or resolved
    """
    ComplaintService(db).delete_complaint(actor, complaint_id)
    return envelope("Complaint deleted successfully", id=complaint_id)
