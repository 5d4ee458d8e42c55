"""Payment ORM model: one rent payment per apartment and billing month."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ottalika.models import Base, BaseModel
from ottalika.models.month_key import MonthKey, MonthKeyType


class PaymentStatus(str, PyEnum):
    """Stored payment status.

    OVERDUE is part of the reported vocabulary but is never written: it is
    derived at read time from the due date (see Payment.effective_status).
    """

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(str, PyEnum):
    """Accepted payment channels."""

    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    BKASH = "bkash"
    NAGAD = "nagad"
    ROCKET = "rocket"
    CARD = "card"


class Payment(Base, BaseModel):
    """Model representing the rent payment of one apartment for one month.

    The (apartment_id, month) unique constraint is what serializes concurrent
    submissions: the first writer wins, the second hits an IntegrityError.
    """

    __tablename__ = "payments"

    apartment_id: Mapped[int] = mapped_column(
        ForeignKey("apartments.id"),
        nullable=False,
        index=True,
    )
    renter_id: Mapped[int] = mapped_column(
        ForeignKey("renters.id"),
        nullable=False,
        index=True,
    )

    month: Mapped[MonthKey] = mapped_column(
        MonthKeyType,
        nullable=False,
        index=True,
        comment="Billing month stored as first-of-month date",
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[PaymentStatus] = mapped_column(
        Enum(
            PaymentStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_method: Mapped[PaymentMethod | None] = mapped_column(
        Enum(
            PaymentMethod,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=True,
    )
    transaction_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    apartment: Mapped["Apartment"] = relationship("Apartment")  # noqa: F821
    renter: Mapped["Renter"] = relationship("Renter")  # noqa: F821
    confirmation: Mapped["PaymentConfirmation | None"] = relationship(  # noqa: F821
        "PaymentConfirmation",
        back_populates="payment",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("apartment_id", "month", name="uq_payment_apartment_month"),
        Index("idx_payment_renter_month", "renter_id", "month"),
    )

    def effective_status(self, today: date) -> PaymentStatus:
        """Status as reported to callers: unpaid past the due date is OVERDUE."""
        if self.status == PaymentStatus.PAID:
            return PaymentStatus.PAID
        if today > self.due_date:
            return PaymentStatus.OVERDUE
        return PaymentStatus.PENDING

    @property
    def days_delay(self) -> int | None:
        """Signed days between payment and due date (negative = early)."""
        if self.paid_at is None:
            return None
        return (self.paid_at.date() - self.due_date).days

    @property
    def is_paid_late(self) -> bool:
        delay = self.days_delay
        return delay is not None and delay > 0

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, apartment_id={self.apartment_id}, month={self.month}, "
            f"amount={self.amount}, status={self.status.value})>"
        )


__all__ = ["Payment", "PaymentMethod", "PaymentStatus"]
