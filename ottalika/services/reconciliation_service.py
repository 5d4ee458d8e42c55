"""Monthly rent reconciliation for a building.

Every apartment of the building lands in exactly one collection class for the
month. Nothing here is cached: each call reads the current ledger rows.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ottalika.models import (
    Apartment,
    ConfirmationStatus,
    MonthKey,
    Payment,
    PaymentStatus,
    utcnow,
)
from ottalika.services.payment_service import parse_month
from ottalika.services.tenancy_service import TenancyService

logger = logging.getLogger(__name__)


class CollectionClass(str, Enum):
    """Reconciliation bucket of one apartment for one month."""

    VERIFIED = "verified"
    PENDING_VERIFICATION = "pending_verification"
    PENDING = "pending"
    OVERDUE = "overdue"
    NO_PAYMENT = "no_payment"


@dataclass
class ReconciliationEntry:
    apartment_id: int
    apartment_number: str
    renter_id: Optional[int]
    rent_amount: Decimal
    collection_class: CollectionClass
    payment_id: Optional[int] = None
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    paid_at: Optional[datetime] = None
    confirmation_status: Optional[ConfirmationStatus] = None


@dataclass
class MonthlyReconciliation:
    building_id: int
    month: MonthKey
    entries: List[ReconciliationEntry] = field(default_factory=list)
    counts: Dict[CollectionClass, int] = field(default_factory=dict)
    collected: Decimal = Decimal("0")
    expected: Decimal = Decimal("0")
    collection_rate: float = 0.0

    @property
    def outstanding(self) -> Decimal:
        return max(self.expected - self.collected, Decimal("0"))


def classify_payment(payment: Payment | None, today: date) -> CollectionClass:
    """Map a ledger row (or its absence) to its collection class."""
    if payment is None:
        return CollectionClass.NO_PAYMENT

    confirmation = payment.confirmation
    if payment.status == PaymentStatus.PAID and confirmation is not None:
        if confirmation.status == ConfirmationStatus.VERIFIED:
            return CollectionClass.VERIFIED
        if confirmation.status in (ConfirmationStatus.PENDING_REVIEW, ConfirmationStatus.DISPUTED):
            return CollectionClass.PENDING_VERIFICATION

    # Unpaid bill or rejected submission
    if today > payment.due_date:
        return CollectionClass.OVERDUE
    return CollectionClass.PENDING


def collection_rate(collected: Decimal, expected: Decimal) -> float:
    """Percentage collected, rounded to one decimal; 0.0 with nothing expected."""
    if not expected:
        return 0.0
    return round(float(collected / expected * 100), 1)


class ReconciliationService:
    """Read-only reconciliation over the payment ledger."""

    def __init__(self, db: Session):
        self.db = db
        self.tenancy = TenancyService(db)

    def get_monthly_reconciliation(
        self,
        building_id: int,
        month: MonthKey | date | str,
        today: date | None = None,
    ) -> MonthlyReconciliation:
        """Classify every apartment of a building for one month.

        Args:
            building_id: Building to reconcile
            month: Billing month
            today: Reference date for overdue classification (default: today UTC)

        Returns:
            MonthlyReconciliation with entries, per-class counts and totals

        Raises:
            NotFound: If the building does not exist
            ValidationError: If the month is malformed
        """
        month_key = parse_month(month)
        today = today or utcnow().date()
        apartments = self.tenancy.apartments_in_building(building_id)

        payments = self._payments_by_apartment([a.id for a in apartments], month_key)
        report = MonthlyReconciliation(
            building_id=building_id,
            month=month_key,
            counts={c: 0 for c in CollectionClass},
        )

        for apartment in apartments:
            payment = payments.get(apartment.id)
            if apartment.is_occupied:
                klass = classify_payment(payment, today)
                report.expected += apartment.rent_amount
                if klass == CollectionClass.VERIFIED:
                    report.collected += payment.amount
            else:
                # Rows left by a former renter do not count for a vacant apartment
                klass = CollectionClass.NO_PAYMENT
            report.counts[klass] += 1
            report.entries.append(self._entry(apartment, payment, klass))

        report.collection_rate = collection_rate(report.collected, report.expected)
        logger.debug(
            f"Reconciled building {building_id} {month_key}: "
            f"collected={report.collected} expected={report.expected} rate={report.collection_rate}"
        )
        return report

    def _payments_by_apartment(
        self, apartment_ids: List[int], month: MonthKey
    ) -> Dict[int, Payment]:
        if not apartment_ids:
            return {}
        rows = self.db.execute(
            select(Payment)
            .options(selectinload(Payment.confirmation))
            .where(Payment.apartment_id.in_(apartment_ids), Payment.month == month)
        ).scalars()
        return {p.apartment_id: p for p in rows}

    @staticmethod
    def _entry(
        apartment: Apartment, payment: Payment | None, klass: CollectionClass
    ) -> ReconciliationEntry:
        entry = ReconciliationEntry(
            apartment_id=apartment.id,
            apartment_number=apartment.apartment_number,
            renter_id=apartment.current_renter_id,
            rent_amount=apartment.rent_amount,
            collection_class=klass,
        )
        if payment is not None:
            entry.payment_id = payment.id
            entry.amount = payment.amount
            entry.due_date = payment.due_date
            entry.paid_at = payment.paid_at
            if payment.confirmation is not None:
                entry.confirmation_status = payment.confirmation.status
        return entry


__all__ = [
    "CollectionClass",
    "MonthlyReconciliation",
    "ReconciliationEntry",
    "ReconciliationService",
    "classify_payment",
    "collection_rate",
]
