"""Payment workflow API routes."""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ottalika.api.deps import get_actor
from ottalika.api.schemas import (
    ConfirmationResponse,
    DisputePaymentPayload,
    GenerateBillsPayload,
    MonthResponse,
    PaymentResponse,
    SubmitPaymentPayload,
    VerifyPaymentPayload,
    envelope,
)
from ottalika.models import utcnow
from ottalika.services import get_db
from ottalika.services.actor import Actor
from ottalika.services.locale_service import format_amount
from ottalika.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])
renter_router = APIRouter(prefix="/renters", tags=["payments"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_payment(
    payload: SubmitPaymentPayload,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Submit a rent payment for an apartment and month.

    Returns:
        201: Payment submitted, awaiting manager verification
        400: Amount below contracted rent
        404: Apartment not found
        409: Duplicate payment or vacant apartment
        422: Malformed input
    """
    payment = PaymentService(db).submit_payment(
        actor,
        apartment_id=payload.apartment_id,
        month=payload.month,
        amount=payload.amount,
        method=payload.payment_method,
        reference=payload.transaction_reference,
    )
    return envelope(
        "Payment submitted successfully. Awaiting manager verification.",
        data=PaymentResponse.from_payment(payment, utcnow().date()),
    )


@router.get("")
async def list_payments(
    month: str | None = Query(None, description="YYYY-MM"),
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
):
    """Paginated payment listing with month-wide totals."""
    today = utcnow().date()
    result = PaymentService(db).list_payments(
        month=month, status=status_filter, page=page, limit=limit, today=today
    )
    logger.debug(f"Listed {len(result.items)} of {result.total} payments (page={page}, status={status_filter})")
    summary = dict(result.summary)
    for key in ("total_paid", "total_pending", "total_overdue"):
        summary[f"{key}_display"] = format_amount(summary[key])
    return envelope(
        f"Found {result.total} payments",
        data=[PaymentResponse.from_payment(p, today) for p in result.items],
        pagination={
            "page": result.page,
            "limit": result.limit,
            "total": result.total,
            "pages": result.total_pages,
        },
        summary=summary,
    )


@router.get("/pending")
async def list_pending_verification(db: Session = Depends(get_db)):
    """Submitted payments awaiting manager review."""
    today = utcnow().date()
    payments = PaymentService(db).list_pending_verification()
    return envelope(
        f"{len(payments)} payments awaiting verification",
        data=[PaymentResponse.from_payment(p, today) for p in payments],
    )


@router.get("/months")
async def list_payment_months(
    limit: int = Query(12, ge=1, le=120),
    db: Session = Depends(get_db),
):
    months = PaymentService(db).list_payment_months(limit=limit)
    return envelope("Payment months", data=[MonthResponse.from_key(m) for m in months])


@router.post("/generate-monthly", status_code=status.HTTP_201_CREATED)
async def generate_monthly_bills(
    payload: GenerateBillsPayload,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Issue unpaid rent bills for occupied apartments lacking one."""
    bills = PaymentService(db).generate_monthly_bills(
        actor, month=payload.month, building_id=payload.building_id
    )
    today = utcnow().date()
    return envelope(
        f"Generated {len(bills)} bills",
        count=len(bills),
        data=[PaymentResponse.from_payment(b, today) for b in bills],
    )


@router.get("/{payment_id}")
async def get_payment(payment_id: int, db: Session = Depends(get_db)):
    payment = PaymentService(db).get_payment(payment_id)
    return envelope("Payment found", data=PaymentResponse.from_payment(payment, utcnow().date()))


@router.post("/{payment_id}/verify")
async def verify_payment(
    payment_id: int,
    payload: VerifyPaymentPayload,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Verify or reject a submitted payment.

    Returns:
        200: Confirmation updated
        404: Payment not found
        409: Already verified, or payment never submitted
        422: Decision is not 'verified' or 'rejected'
    """
    confirmation = PaymentService(db).verify_payment(
        actor, payment_id, decision=payload.status, notes=payload.notes
    )
    return envelope(
        f"Payment {confirmation.status.value} successfully",
        data=ConfirmationResponse.model_validate(confirmation),
    )


@router.post("/{payment_id}/dispute")
async def dispute_payment(
    payment_id: int,
    payload: DisputePaymentPayload,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    confirmation = PaymentService(db).dispute_payment(actor, payment_id, notes=payload.notes)
    return envelope(
        "Payment marked as disputed",
        data=ConfirmationResponse.model_validate(confirmation),
    )


@renter_router.get("/{renter_id}/payments")
async def get_renter_payments(renter_id: int, db: Session = Depends(get_db)):
    """Payment history of one renter, newest month first."""
    today = utcnow().date()
    payments = PaymentService(db).get_renter_payments(renter_id)
    return envelope(
        f"Found {len(payments)} payments",
        data=[PaymentResponse.from_payment(p, today) for p in payments],
    )
