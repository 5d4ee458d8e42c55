"""MaintenanceRequest ORM model with dual manager/renter resolution flags."""

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ottalika.models import Base, BaseModel


class ComplaintStatus(str, PyEnum):
    """Stored complaint status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class ComplaintPriority(str, PyEnum):
    """Priority ladder, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    def escalated(self) -> "ComplaintPriority":
        """Next priority up; URGENT stays URGENT."""
        ladder = list(ComplaintPriority)
        index = ladder.index(self)
        return ladder[min(index + 1, len(ladder) - 1)]


class ResolutionState(str, PyEnum):
    """Tagged view of the two resolution flags. Never persisted."""

    UNRESOLVED = "unresolved"
    AWAITING_RENTER_CONFIRMATION = "awaiting_renter_confirmation"
    AWAITING_MANAGER_CONFIRMATION = "awaiting_manager_confirmation"
    RESOLVED = "resolved"

    @classmethod
    def from_flags(cls, manager_marked: bool, renter_marked: bool) -> "ResolutionState":
        if manager_marked and renter_marked:
            return cls.RESOLVED
        if manager_marked:
            return cls.AWAITING_RENTER_CONFIRMATION
        if renter_marked:
            return cls.AWAITING_MANAGER_CONFIRMATION
        return cls.UNRESOLVED


class MaintenanceRequest(Base, BaseModel):
    """A renter complaint moving through pending -> in_progress -> resolved.

    `status == RESOLVED` holds exactly when both resolution flags are true. The
    flags are the persisted projection; `resolution_state` and
    `needs_confirmation` are always recomputed from them.
    """

    __tablename__ = "maintenance_requests"

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

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")

    priority: Mapped[ComplaintPriority] = mapped_column(
        Enum(
            ComplaintPriority,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ComplaintPriority.MEDIUM,
        nullable=False,
        index=True,
    )
    status: Mapped[ComplaintStatus] = mapped_column(
        Enum(
            ComplaintStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ComplaintStatus.PENDING,
        nullable=False,
        index=True,
    )

    manager_marked_resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    renter_marked_resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    resolution: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    apartment: Mapped["Apartment"] = relationship("Apartment")  # noqa: F821
    renter: Mapped["Renter"] = relationship("Renter")  # noqa: F821

    __table_args__ = (
        Index("idx_complaint_flags", "manager_marked_resolved", "renter_marked_resolved"),
    )

    @property
    def resolution_state(self) -> ResolutionState:
        return ResolutionState.from_flags(
            bool(self.manager_marked_resolved), bool(self.renter_marked_resolved)
        )

    @property
    def needs_confirmation(self) -> bool:
        return self.resolution_state == ResolutionState.AWAITING_RENTER_CONFIRMATION

    @property
    def is_open(self) -> bool:
        return self.status in (ComplaintStatus.PENDING, ComplaintStatus.IN_PROGRESS)

    def __repr__(self) -> str:
        return (
            f"<MaintenanceRequest(id={self.id}, apartment_id={self.apartment_id}, "
            f"status={self.status.value}, priority={self.priority.value}, "
            f"flags=({self.manager_marked_resolved}, {self.renter_marked_resolved}))>"
        )


__all__ = ["ComplaintPriority", "ComplaintStatus", "MaintenanceRequest", "ResolutionState"]
