"""Pydantic schemas for the HTTP surface."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, computed_field, field_validator

from ottalika.models import MonthKey, Payment
from ottalika.services.locale_service import format_amount

# Money travels as a JSON number
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def envelope(message: str, **fields: Any) -> dict[str, Any]:
    """Standard success envelope."""
    return {"success": True, "message": message, **fields}


# ----------------------------------------------------------------------
# Payloads
# ----------------------------------------------------------------------


class SubmitPaymentPayload(BaseModel):
    """Request payload for POST /payments."""

    apartment_id: int = Field(..., description="Apartment being paid for")
    month: str = Field(..., description="Billing month, YYYY-MM or YYYY-MM-DD")
    amount: Decimal = Field(..., description="Paid amount")
    payment_method: str = Field(..., description="cash, bank_transfer, bkash, nagad, rocket or card")
    transaction_reference: str | None = Field(None, max_length=100)


class VerifyPaymentPayload(BaseModel):
    """Request payload for POST /payments/{id}/verify."""

    status: str = Field(..., description="'verified' or 'rejected'")
    notes: str | None = None


class DisputePaymentPayload(BaseModel):
    notes: str | None = None


class GenerateBillsPayload(BaseModel):
    month: str
    building_id: int | None = None


class CreateComplaintPayload(BaseModel):
    """Request payload for POST /complaints."""

    apartment_id: int
    title: str = Field(..., max_length=200)
    description: str
    category: str | None = Field(None, max_length=50)
    priority: str | None = None


class AssignComplaintPayload(BaseModel):
    assignee: str = Field(..., max_length=100)


class ResolveComplaintPayload(BaseModel):
    resolution_notes: str | None = None


# ----------------------------------------------------------------------
# Responses
# ----------------------------------------------------------------------


class PaymentResponse(BaseModel):
    """Payment with its reported status and verification state."""

    id: int
    apartment_id: int
    renter_id: int
    month: str
    amount: Money
    due_date: date
    status: str
    stored_status: str
    payment_method: str | None = None
    transaction_reference: str | None = None
    paid_at: datetime | None = None
    verification_status: str | None = None
    verified_by: int | None = None
    verified_at: datetime | None = None
    verification_notes: str | None = None

    @computed_field
    @property
    def amount_display(self) -> str:
        return format_amount(self.amount)

    @classmethod
    def from_payment(cls, payment: Payment, today: date) -> "PaymentResponse":
        confirmation = payment.confirmation
        return cls(
            id=payment.id,
            apartment_id=payment.apartment_id,
            renter_id=payment.renter_id,
            month=str(payment.month),
            amount=payment.amount,
            due_date=payment.due_date,
            status=payment.effective_status(today).value,
            stored_status=payment.status.value,
            payment_method=payment.payment_method.value if payment.payment_method else None,
            transaction_reference=payment.transaction_reference,
            paid_at=payment.paid_at,
            verification_status=confirmation.status.value if confirmation else None,
            verified_by=confirmation.verifier_id if confirmation else None,
            verified_at=confirmation.verified_at if confirmation else None,
            verification_notes=confirmation.notes if confirmation else None,
        )


class ConfirmationResponse(BaseModel):
    id: int
    payment_id: int
    status: str
    verifier_id: int | None = None
    verified_at: datetime | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("status", mode="before")
    @classmethod
    def _enum_value(cls, value: Any) -> Any:
        return getattr(value, "value", value)


class MonthResponse(BaseModel):
    month: str
    label: str

    @classmethod
    def from_key(cls, key: MonthKey) -> "MonthResponse":
        return cls(month=str(key), label=key.label())


class ComplaintResponse(BaseModel):
    """Complaint with its derived resolution state."""

    id: int
    apartment_id: int
    renter_id: int
    title: str
    description: str
    category: str
    priority: str
    status: str
    manager_marked_resolved: bool
    renter_marked_resolved: bool
    resolution_state: str
    needs_confirmation: bool
    resolution: str | None = None
    resolution_notes: str | None = None
    assigned_to: str | None = None
    assigned_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("priority", "status", "resolution_state", mode="before")
    @classmethod
    def _enum_value(cls, value: Any) -> Any:
        return getattr(value, "value", value)


class ReconciliationEntryResponse(BaseModel):
    apartment_id: int
    apartment_number: str
    renter_id: int | None = None
    rent_amount: Money
    collection_class: str
    payment_id: int | None = None
    amount: Money | None = None
    due_date: date | None = None
    paid_at: datetime | None = None
    confirmation_status: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("collection_class", "confirmation_status", mode="before")
    @classmethod
    def _enum_value(cls, value: Any) -> Any:
        return getattr(value, "value", value)


class ReconciliationResponse(BaseModel):
    building_id: int
    month: str
    label: str
    counts: dict[str, int]
    entries: list[ReconciliationEntryResponse]
    collected: Money
    expected: Money
    outstanding: Money
    collection_rate: float

    @computed_field
    @property
    def collected_display(self) -> str:
        return format_amount(self.collected)

    @computed_field
    @property
    def expected_display(self) -> str:
        return format_amount(self.expected)

    @classmethod
    def from_report(cls, report) -> "ReconciliationResponse":
        return cls(
            building_id=report.building_id,
            month=str(report.month),
            label=report.month.label(),
            counts={klass.value: count for klass, count in report.counts.items()},
            entries=[ReconciliationEntryResponse.model_validate(e) for e in report.entries],
            collected=report.collected,
            expected=report.expected,
            outstanding=report.outstanding,
            collection_rate=report.collection_rate,
        )
