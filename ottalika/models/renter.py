"""Renter ORM model (tenancy directory, read-only for the workflows)."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ottalika.models import Base, BaseModel


class Renter(Base, BaseModel):
    """A person renting an apartment."""

    __tablename__ = "renters"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    apartment: Mapped["Apartment | None"] = relationship(  # noqa: F821
        "Apartment",
        back_populates="current_renter",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<Renter(id={self.id}, name={self.name!r})>"


__all__ = ["Renter"]
