"""PaymentConfirmation ORM model: manager review of a submitted payment."""

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ottalika.models import Base, BaseModel


class ConfirmationStatus(str, PyEnum):
    """Review status of a submitted payment."""

    PENDING_REVIEW = "pending_review"
    VERIFIED = "verified"
    REJECTED = "rejected"
    DISPUTED = "disputed"


class PaymentConfirmation(Base, BaseModel):
    """One-to-one review record created when a payment is submitted.

    Lifecycle: created PENDING_REVIEW, moved once to VERIFIED or REJECTED by a
    manager. DISPUTED is only reachable through the manual dispute override.
    """

    __tablename__ = "payment_confirmations"

    payment_id: Mapped[int] = mapped_column(
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    status: Mapped[ConfirmationStatus] = mapped_column(
        Enum(
            ConfirmationStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ConfirmationStatus.PENDING_REVIEW,
        nullable=False,
        index=True,
    )
    verifier_id: Mapped[int | None] = mapped_column(nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    payment: Mapped["Payment"] = relationship(  # noqa: F821
        "Payment",
        back_populates="confirmation",
    )

    @property
    def is_resolved(self) -> bool:
        return self.status != ConfirmationStatus.PENDING_REVIEW

    def __repr__(self) -> str:
        return (
            f"<PaymentConfirmation(id={self.id}, payment_id={self.payment_id}, "
            f"status={self.status.value}, verifier_id={self.verifier_id})>"
        )


__all__ = ["ConfirmationStatus", "PaymentConfirmation"]
