"""Payment workflow service.

Provides methods for:
- Submitting rent payments (renter side)
- Verifying, rejecting and disputing submitted payments (manager side)
- Generating monthly rent bills for occupied apartments
- Payment listings used by the manager and renter views

State machine per (apartment, month):
    no_payment -> pending (bill issued, unpaid) -> paid + pending_review -> verified | rejected
An unpaid bill past its due date is reported as overdue; that status is never stored.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ottalika.config import settings
from ottalika.models import (
    ConfirmationStatus,
    MonthKey,
    Payment,
    PaymentConfirmation,
    PaymentMethod,
    PaymentStatus,
    utcnow,
)
from ottalika.services.actor import Actor, require_actor
from ottalika.services.audit_service import AuditService
from ottalika.services.errors import (
    AlreadyVerified,
    AppError,
    ConcurrentUpdate,
    DuplicatePayment,
    InsufficientAmount,
    InvalidState,
    NotFound,
    StoreFailure,
    ValidationError,
)
from ottalika.services.tenancy_service import TenancyService

logger = logging.getLogger(__name__)

VERIFICATION_DECISIONS = (ConfirmationStatus.VERIFIED, ConfirmationStatus.REJECTED)
MAX_PAGE_SIZE = 100


def parse_month(value: MonthKey | date | str) -> MonthKey:
    """Parse a month value, mapping bad input to ValidationError."""
    try:
        return MonthKey.parse(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def parse_amount(value: Decimal | float | int | str) -> Decimal:
    """Parse a positive money amount rounded to cents."""
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be a positive number")
    return amount


def parse_method(value: PaymentMethod | str) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(f"Unknown payment method {value!r}; expected one of: {allowed}") from e


@dataclass
class PaymentPage:
    """One page of a payment listing plus month-wide totals."""

    items: List[Payment]
    total: int
    page: int
    limit: int
    summary: dict = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


class PaymentService:
    """Rent payment workflow operations."""

    def __init__(self, db: Session, grace_days: Optional[int] = None):
        """Initialize payment service.

        Args:
            db: SQLAlchemy database session
            grace_days: Days after month start before rent is due (default from settings)
        """
        self.db = db
        self.grace_days = settings.payment_grace_days if grace_days is None else grace_days
        self.tenancy = TenancyService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_payment(self, payment_id: int) -> Payment:
        """Get payment by ID.

        Raises:
            NotFound: If the payment does not exist
        """
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFound(f"Payment {payment_id} not found")
        return payment

    def find_payment(self, apartment_id: int, month: MonthKey) -> Payment | None:
        """Payment row for an (apartment, month) pair, if any."""
        return self.db.execute(
            select(Payment).where(Payment.apartment_id == apartment_id, Payment.month == month)
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Renter actions
    # ------------------------------------------------------------------

    def submit_payment(
        self,
        actor: Actor | None,
        apartment_id: int,
        month: MonthKey | date | str,
        amount: Decimal | float | int | str,
        method: PaymentMethod | str,
        reference: str | None = None,
        now: datetime | None = None,
    ) -> Payment:
        """Submit the rent payment of an apartment for a month.

        Creates the Payment (status=paid) and its PaymentConfirmation
        (status=pending_review) in one transaction. If the manager already
        issued an unpaid bill for the month, that row is settled in place.

        Args:
            actor: Caller identity (required)
            apartment_id: Apartment being paid for
            month: Billing month ('YYYY-MM', 'YYYY-MM-DD' or date)
            amount: Paid amount, must cover the contracted rent
            method: Payment channel
            reference: Transaction reference from the payment channel
            now: Submission time (default: current UTC time)

        Returns:
            The submitted Payment

        Raises:
            MissingActor, ValidationError, NotFound, NoActiveRenter,
            InsufficientAmount, DuplicatePayment, StoreFailure
        """
        actor = require_actor(actor)
        month_key = parse_month(month)
        paid_amount = parse_amount(amount)
        payment_method = parse_method(method)
        apartment, renter_id = self.tenancy.require_active_renter(apartment_id)

        if paid_amount < apartment.rent_amount:
            logger.warning(
                f"Insufficient amount for apartment {apartment_id} {month_key}: "
                f"{paid_amount} < {apartment.rent_amount}"
            )
            raise InsufficientAmount(f"Payment amount must be at least {apartment.rent_amount}")

        existing = self.find_payment(apartment_id, month_key)
        if existing is not None and existing.status == PaymentStatus.PAID:
            logger.warning(f"Duplicate payment for apartment {apartment_id} {month_key}")
            raise DuplicatePayment(f"Payment already exists for {month_key}")

        now = now or utcnow()
        try:
            if existing is None:
                payment = Payment(
                    apartment_id=apartment_id,
                    renter_id=renter_id,
                    month=month_key,
                    amount=paid_amount,
                    due_date=month_key.due_date(self.grace_days),
                    status=PaymentStatus.PAID,
                    payment_method=payment_method,
                    transaction_reference=reference,
                    paid_at=now,
                )
                self.db.add(payment)
                self.db.flush()
            else:
                # Settle the issued bill only if it is still unpaid
                result = self.db.execute(
                    update(Payment)
                    .where(Payment.id == existing.id, Payment.status == PaymentStatus.PENDING)
                    .values(
                        renter_id=renter_id,
                        amount=paid_amount,
                        status=PaymentStatus.PAID,
                        payment_method=payment_method,
                        transaction_reference=reference,
                        paid_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise DuplicatePayment(f"Payment already exists for {month_key}")
                payment = existing

            self.db.add(
                PaymentConfirmation(
                    payment_id=payment.id,
                    status=ConfirmationStatus.PENDING_REVIEW,
                )
            )
            AuditService.log(
                self.db,
                "payment",
                payment.id,
                "submit",
                actor=actor,
                changes={
                    "month": str(month_key),
                    "amount": str(paid_amount),
                    "method": payment_method.value,
                },
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Concurrent payment insert for apartment {apartment_id} {month_key}: {e}")
            raise DuplicatePayment(f"Payment already exists for {month_key}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recording payment for apartment {apartment_id}: {e}", exc_info=True)
            raise StoreFailure("Failed to record payment", detail=str(e)) from e
        except AppError:
            self.db.rollback()
            raise

        self.db.refresh(payment)
        logger.info(
            f"Payment {payment.id} submitted for apartment {apartment_id} {month_key} "
            f"amount={paid_amount} by actor {actor.actor_id}"
        )
        return payment

    # ------------------------------------------------------------------
    # Manager actions
    # ------------------------------------------------------------------

    def verify_payment(
        self,
        actor: Actor | None,
        payment_id: int,
        decision: ConfirmationStatus | str,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> PaymentConfirmation:
        """Verify or reject a submitted payment. One-shot.

        Raises:
            ValidationError: If decision is not 'verified' or 'rejected'
            NotFound: If the payment does not exist
            InvalidState: If the payment was never submitted
            AlreadyVerified: If the confirmation already left pending_review
        """
        actor = require_actor(actor)
        try:
            decision = ConfirmationStatus(decision)
        except ValueError as e:
            raise ValidationError('Invalid decision. Must be "verified" or "rejected"') from e
        if decision not in VERIFICATION_DECISIONS:
            raise ValidationError('Invalid decision. Must be "verified" or "rejected"')

        payment = self.get_payment(payment_id)
        confirmation = payment.confirmation
        if confirmation is None:
            raise InvalidState(f"Payment {payment_id} has not been submitted")
        if confirmation.status != ConfirmationStatus.PENDING_REVIEW:
            logger.warning(f"Payment {payment_id} already {confirmation.status.value}")
            raise AlreadyVerified(f"Payment {payment_id} is already {confirmation.status.value}")

        now = now or utcnow()
        try:
            result = self.db.execute(
                update(PaymentConfirmation)
                .where(
                    PaymentConfirmation.id == confirmation.id,
                    PaymentConfirmation.status == ConfirmationStatus.PENDING_REVIEW,
                )
                .values(status=decision, verifier_id=actor.actor_id, verified_at=now, notes=notes)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise AlreadyVerified(f"Payment {payment_id} was already reviewed")
            AuditService.log(
                self.db,
                "payment",
                payment_id,
                "verify",
                actor=actor,
                changes={"status": decision.value, "notes": notes},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error verifying payment {payment_id}: {e}", exc_info=True)
            raise StoreFailure("Failed to verify payment", detail=str(e)) from e
        except AppError:
            self.db.rollback()
            raise

        self.db.refresh(confirmation)
        logger.info(f"Payment {payment_id} {decision.value} by manager {actor.actor_id}")
        return confirmation

    def dispute_payment(
        self,
        actor: Actor | None,
        payment_id: int,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> PaymentConfirmation:
        """Manually move a reviewed payment into the disputed state.

        Raises:
            InvalidState: If the payment is unsubmitted or still pending review
            AlreadyVerified: If the payment is already disputed
        """
        actor = require_actor(actor)
        payment = self.get_payment(payment_id)
        confirmation = payment.confirmation
        if confirmation is None or confirmation.status == ConfirmationStatus.PENDING_REVIEW:
            raise InvalidState(f"Payment {payment_id} has not been reviewed yet")
        if confirmation.status == ConfirmationStatus.DISPUTED:
            raise AlreadyVerified(f"Payment {payment_id} is already disputed")

        previous = confirmation.status
        now = now or utcnow()
        try:
            result = self.db.execute(
                update(PaymentConfirmation)
                .where(
                    PaymentConfirmation.id == confirmation.id,
                    PaymentConfirmation.status == previous,
                )
                .values(
                    status=ConfirmationStatus.DISPUTED,
                    verifier_id=actor.actor_id,
                    verified_at=now,
                    notes=notes,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrentUpdate(f"Payment {payment_id} changed while disputing")
            AuditService.log(
                self.db,
                "payment",
                payment_id,
                "dispute",
                actor=actor,
                changes={"from": previous.value, "status": ConfirmationStatus.DISPUTED.value},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error disputing payment {payment_id}: {e}", exc_info=True)
            raise StoreFailure("Failed to dispute payment", detail=str(e)) from e
        except AppError:
            self.db.rollback()
            raise

        self.db.refresh(confirmation)
        logger.info(f"Payment {payment_id} disputed by {actor.actor_id} (was {previous.value})")
        return confirmation

    def generate_monthly_bills(
        self,
        actor: Actor | None,
        month: MonthKey | date | str,
        building_id: int | None = None,
    ) -> List[Payment]:
        """Issue unpaid rent bills for every occupied apartment lacking one.

        Returns:
            Newly created Payment rows (status=pending)
        """
        actor = require_actor(actor)
        month_key = parse_month(month)
        if building_id is not None:
            self.tenancy.get_building(building_id)

        billed = set(
            self.db.execute(select(Payment.apartment_id).where(Payment.month == month_key)).scalars()
        )
        created: List[Payment] = []
        try:
            for apartment in self.tenancy.occupied_apartments(building_id):
                if apartment.id in billed:
                    continue
                bill = Payment(
                    apartment_id=apartment.id,
                    renter_id=apartment.current_renter_id,
                    month=month_key,
                    amount=apartment.rent_amount,
                    due_date=month_key.due_date(self.grace_days),
                    status=PaymentStatus.PENDING,
                )
                self.db.add(bill)
                created.append(bill)
            self.db.flush()
            for bill in created:
                AuditService.log(
                    self.db, "payment", bill.id, "bill", actor=actor, changes={"month": str(month_key)}
                )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Concurrent bill generation for {month_key}: {e}")
            raise ConcurrentUpdate(f"Bills for {month_key} changed concurrently; retry") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error generating bills for {month_key}: {e}", exc_info=True)
            raise StoreFailure("Failed to generate monthly bills", detail=str(e)) from e

        logger.info(f"Generated {len(created)} rent bills for {month_key}")
        return created

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_payments(
        self,
        month: MonthKey | date | str | None = None,
        status: PaymentStatus | str | None = None,
        page: int = 1,
        limit: int = 20,
        today: date | None = None,
    ) -> PaymentPage:
        """Paginated payment listing filtered by month and reported status.

        The summary covers the whole month filter, independent of status and page.
        """
        if page < 1 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"page must be >= 1 and limit within 1..{MAX_PAGE_SIZE}")
        today = today or utcnow().date()

        stmt = select(Payment)
        if month is not None:
            stmt = stmt.where(Payment.month == parse_month(month))
        summary = self._summarize(self.db.execute(stmt).scalars().all(), today)

        if status is not None and status != "all":
            try:
                status = PaymentStatus(status)
            except ValueError as e:
                raise ValidationError(f"Unknown payment status {status!r}") from e
            if status == PaymentStatus.PAID:
                stmt = stmt.where(Payment.status == PaymentStatus.PAID)
            elif status == PaymentStatus.OVERDUE:
                stmt = stmt.where(Payment.status == PaymentStatus.PENDING, Payment.due_date < today)
            else:
                stmt = stmt.where(Payment.status == PaymentStatus.PENDING, Payment.due_date >= today)

        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        items = (
            self.db.execute(
                stmt.order_by(Payment.due_date.desc(), Payment.apartment_id)
                .limit(limit)
                .offset((page - 1) * limit)
            )
            .scalars()
            .all()
        )
        return PaymentPage(items=list(items), total=total, page=page, limit=limit, summary=summary)

    @staticmethod
    def _summarize(payments: List[Payment], today: date) -> dict:
        totals = {status: Decimal("0") for status in PaymentStatus}
        for payment in payments:
            totals[payment.effective_status(today)] += payment.amount
        return {
            "total_count": len(payments),
            "total_paid": totals[PaymentStatus.PAID],
            "total_pending": totals[PaymentStatus.PENDING],
            "total_overdue": totals[PaymentStatus.OVERDUE],
        }

    def list_pending_verification(self) -> List[Payment]:
        """Submitted payments still awaiting manager review, newest first."""
        return list(
            self.db.execute(
                select(Payment)
                .join(PaymentConfirmation, PaymentConfirmation.payment_id == Payment.id)
                .where(
                    Payment.status == PaymentStatus.PAID,
                    PaymentConfirmation.status == ConfirmationStatus.PENDING_REVIEW,
                )
                .order_by(Payment.paid_at.desc(), Payment.id.desc())
            ).scalars()
        )

    def list_payment_months(self, limit: int = 12) -> List[MonthKey]:
        """Distinct billed months, newest first."""
        return list(
            self.db.execute(
                select(Payment.month).distinct().order_by(Payment.month.desc()).limit(limit)
            ).scalars()
        )

    def get_renter_payments(self, renter_id: int) -> List[Payment]:
        """Full payment history of a renter, newest month first."""
        self.tenancy.get_renter(renter_id)
        return list(
            self.db.execute(
                select(Payment).where(Payment.renter_id == renter_id).order_by(Payment.month.desc())
            ).scalars()
        )


__all__ = [
    "PaymentPage",
    "PaymentService",
    "parse_amount",
    "parse_method",
    "parse_month",
]
