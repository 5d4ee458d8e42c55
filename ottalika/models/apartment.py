"""Apartment ORM model with contracted rent and current occupancy."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ottalika.models import Base, BaseModel


class Apartment(Base, BaseModel):
    """Model representing a rentable unit.

    `current_renter_id` is the single source of occupancy: NULL means vacant.
    The column is unique, so a renter occupies at most one apartment and an
    apartment has at most one active renter.
    """

    __tablename__ = "apartments"

    building_id: Mapped[int] = mapped_column(
        ForeignKey("buildings.id"),
        nullable=False,
        index=True,
    )
    apartment_number: Mapped[str] = mapped_column(String(20), nullable=False)
    floor: Mapped[int | None] = mapped_column(nullable=True)

    rent_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Contracted monthly rent",
    )

    current_renter_id: Mapped[int | None] = mapped_column(
        ForeignKey("renters.id"),
        nullable=True,
        unique=True,
        comment="Active renter; NULL when vacant",
    )

    # Relationships
    building: Mapped["Building"] = relationship(  # noqa: F821
        "Building",
        back_populates="apartments",
    )
    current_renter: Mapped["Renter | None"] = relationship(  # noqa: F821
        "Renter",
        back_populates="apartment",
        foreign_keys=[current_renter_id],
    )

    __table_args__ = (Index("idx_apartment_building_number", "building_id", "apartment_number"),)

    @property
    def is_occupied(self) -> bool:
        return self.current_renter_id is not None

    def __repr__(self) -> str:
        return (
            f"<Apartment(id={self.id}, building_id={self.building_id}, "
            f"number={self.apartment_number!r}, rent={self.rent_amount}, "
            f"renter_id={self.current_renter_id})>"
        )


__all__ = ["Apartment"]
