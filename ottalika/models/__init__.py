"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from ottalika.models.month_key import MonthKey, MonthKeyType  # noqa: E402
from ottalika.models.building import Building  # noqa: E402
from ottalika.models.renter import Renter  # noqa: E402
from ottalika.models.apartment import Apartment  # noqa: E402
from ottalika.models.payment import Payment, PaymentMethod, PaymentStatus  # noqa: E402
from ottalika.models.payment_confirmation import (  # noqa: E402
    ConfirmationStatus,
    PaymentConfirmation,
)
from ottalika.models.maintenance_request import (  # noqa: E402
    ComplaintPriority,
    ComplaintStatus,
    MaintenanceRequest,
    ResolutionState,
)
from ottalika.models.audit_log import AuditLog  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "utcnow",
    "as_utc",
    "MonthKey",
    "MonthKeyType",
    "Building",
    "Renter",
    "Apartment",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentConfirmation",
    "ConfirmationStatus",
    "MaintenanceRequest",
    "ComplaintPriority",
    "ComplaintStatus",
    "ResolutionState",
    "AuditLog",
]
