"""Building ORM model (tenancy directory, read-only for the workflows)."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ottalika.models import Base, BaseModel


class Building(Base, BaseModel):
    """A building grouping apartments for reconciliation."""

    __tablename__ = "buildings"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)

    apartments: Mapped[list["Apartment"]] = relationship(  # noqa: F821
        "Apartment",
        back_populates="building",
        order_by="Apartment.apartment_number",
    )

    def __repr__(self) -> str:
        return f"<Building(id={self.id}, name={self.name!r})>"


__all__ = ["Building"]
