"""Read-only access to the tenancy directory (buildings, apartments, renters)."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ottalika.models import Apartment, Building, Renter
from ottalika.services.errors import NoActiveRenter, NotFound

logger = logging.getLogger(__name__)


class TenancyService:
    """Apartment -> active renter mapping and contracted rent lookups."""

    def __init__(self, db: Session):
        self.db = db

    def get_apartment(self, apartment_id: int) -> Apartment:
        """Get apartment by ID.

        Raises:
            NotFound: If the apartment does not exist
        """
        apartment = self.db.get(Apartment, apartment_id)
        if apartment is None:
            raise NotFound(f"Apartment {apartment_id} not found")
        return apartment

    def require_active_renter(self, apartment_id: int) -> tuple[Apartment, int]:
        """Return the apartment and its active renter id.

        Raises:
            NotFound: If the apartment does not exist
            NoActiveRenter: If the apartment is vacant
        """
        apartment = self.get_apartment(apartment_id)
        if apartment.current_renter_id is None:
            logger.warning(f"Apartment {apartment_id} has no active renter")
            raise NoActiveRenter(f"Apartment {apartment.apartment_number} has no active renter")
        return apartment, apartment.current_renter_id

    def get_building(self, building_id: int) -> Building:
        building = self.db.get(Building, building_id)
        if building is None:
            raise NotFound(f"Building {building_id} not found")
        return building

    def apartments_in_building(self, building_id: int) -> list[Apartment]:
        """All apartments of a building ordered by apartment number.

        Raises:
            NotFound: If the building does not exist
        """
        self.get_building(building_id)
        return list(
            self.db.execute(
                select(Apartment)
                .where(Apartment.building_id == building_id)
                .order_by(Apartment.apartment_number)
            ).scalars()
        )

    def occupied_apartments(self, building_id: int | None = None) -> list[Apartment]:
        """Apartments with an active renter, optionally limited to one building."""
        stmt = select(Apartment).where(Apartment.current_renter_id.is_not(None))
        if building_id is not None:
            stmt = stmt.where(Apartment.building_id == building_id)
        return list(self.db.execute(stmt.order_by(Apartment.id)).scalars())

    def get_renter(self, renter_id: int) -> Renter:
        renter = self.db.get(Renter, renter_id)
        if renter is None:
            raise NotFound(f"Renter {renter_id} not found")
        return renter


__all__ = ["TenancyService"]
