"""Room availability search for the reservation wizard."""

from typing import Protocol

import httpx

from frontdesk.models.hotel import AvailableRoom
from frontdesk.models.reservation import RoomSearchCriteria
from frontdesk.services.hotel_api import HotelApiError
from frontdesk.utils.logger import get_logger

logger = get_logger(__name__)


class RoomSearchBackend(Protocol):
    """Anything that can answer an availability query (HotelApiClient)."""

    async def search_available_rooms(self, criteria: RoomSearchCriteria) -> list[AvailableRoom]:
        ...


class RoomSearchError(Exception):
    """Availability search failed; the operator may retry."""

    def __init__(self, message: str = "Failed to search available rooms", cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class AvailabilityQueryAdapter:
    """
    Runs one availability search per call.

    Results keep the backend's order and are never paged or retried here.
    """

    def __init__(self, backend: RoomSearchBackend):
        self.backend = backend

    async def search(self, criteria: RoomSearchCriteria) -> list[AvailableRoom]:
        """
        Search rooms for the given criteria.

        Raises:
            RoomSearchError: If the backend call fails for any transport or service reason
        """
        logger.info(
            "room_search_started",
            check_in=criteria.check_in.isoformat(),
            check_out=criteria.check_out.isoformat(),
            occupants=criteria.occupant_count,
        )

        try:
            rooms = await self.backend.search_available_rooms(criteria)
        except (HotelApiError, httpx.HTTPError) as e:
            logger.error("room_search_failed", error=str(e))
            raise RoomSearchError(cause=e) from e

        rooms = list(rooms)
        logger.info("room_search_complete", count=len(rooms))
        return rooms
