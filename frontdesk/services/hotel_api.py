"""Async client for the hotel back-office REST API."""

from collections.abc import Callable
from functools import partial
from typing import Any, TypeVar

import httpx

from frontdesk.models.hotel import AvailableRoom, BookingRecord, Guest, Hotel, RoomType
from frontdesk.models.reservation import RoomSearchCriteria
from frontdesk.utils.logger import get_logger, mask_sensitive

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Exceptions
# =============================================================================


class HotelApiError(Exception):
    """Base exception for back-office API errors."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class HotelApiAuthError(HotelApiError):
    """Token missing, expired or lacking permission."""

    pass


class HotelApiValidationError(HotelApiError):
    """Request rejected by the API (4xx or ``success: false``)."""

    pass


# =============================================================================
# Helpers
# =============================================================================


def _unwrap_items(data: Any) -> list[dict]:
    """Dig the record list out of ``{"data": [...]}`` or ``{"data": {"data": [...]}}``."""
    items = data
    while isinstance(items, dict) and "data" in items:
        items = items["data"]
    return items if isinstance(items, list) else []


def _unwrap_record(data: Any) -> dict:
    record = data
    while isinstance(record, dict) and isinstance(record.get("data"), dict):
        record = record["data"]
    if isinstance(record, dict) and "data" in record and record.get("data") is None:
        return {}
    return record if isinstance(record, dict) else {}


def parse_records(parser: Callable[[dict], T], items: list[dict], kind: str) -> list[T]:
    """
    Turn raw API records into models.

    A record the models cannot read means the API answered with something
    other than what it documents, so it is reported as an API error.
    """
    try:
        return [parser(item) for item in items]
    except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as e:
        logger.error("hotel_api_unexpected_record", kind=kind, error=str(e))
        raise HotelApiError(f"Unexpected {kind} record in API response") from e


def clean_params(filters: dict[str, Any] | None) -> dict[str, str]:
    """Drop unset filters and stringify the rest for the query string."""
    if not filters:
        return {}
    return {
        key: str(value).lower() if isinstance(value, bool) else str(value)
        for key, value in filters.items()
        if value is not None and value != ""
    }


# =============================================================================
# Client
# =============================================================================


class HotelApiClient:
    """
    Async client for the back-office API.

    Usage:
        async with HotelApiClient(base_url, token) as client:
            rooms = await client.search_available_rooms(criteria)
            booking = await client.create_booking(payload)
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: int = 30,
    ):
        """
        Initialize API client.

        Args:
            base_url: API base URL (e.g., http://localhost:5000/api)
            token: Bearer token sent with every request
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HotelApiClient":
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers)
        logger.debug(
            "hotel_api_client_opened",
            base_url=self.base_url,
            token=mask_sensitive(self.token),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, raise if not initialized."""
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with HotelApiClient(...)' context.")
        return self._client

    # =========================================================================
    # Transport
    # =========================================================================

    def _handle_response(self, response: httpx.Response, endpoint: str) -> Any:
        """Map HTTP status and the response envelope to data or an exception."""
        try:
            data = response.json()
        except ValueError:
            data = {}

        message = data.get("message") if isinstance(data, dict) else None
        status = response.status_code

        if status in (401, 403):
            logger.warning("hotel_api_auth_error", endpoint=endpoint, status=status)
            raise HotelApiAuthError(
                message or "Not authorized", status_code=status, response=data
            )

        if 400 <= status < 500:
            logger.warning("hotel_api_rejected", endpoint=endpoint, status=status, message=message)
            raise HotelApiValidationError(
                message or "An error occurred", status_code=status, response=data
            )

        if status >= 500:
            logger.error("hotel_api_server_error", endpoint=endpoint, status=status, message=message)
            raise HotelApiError(
                message or f"Server error ({status})", status_code=status, response=data
            )

        if isinstance(data, dict) and data.get("success") is False:
            logger.warning("hotel_api_unsuccessful", endpoint=endpoint, message=message)
            raise HotelApiValidationError(
                message or "An error occurred", status_code=status, response=data
            )

        return data

    async def _get(self, endpoint: str, params: dict[str, str] | None = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            response = await self.client.get(url, params=params or None)
        except httpx.HTTPError as e:
            logger.error("hotel_api_transport_error", endpoint=endpoint, error=str(e))
            raise HotelApiError(f"Request to {endpoint} failed: {e}") from e
        return self._handle_response(response, endpoint)

    async def _post(
        self,
        endpoint: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            response = await self.client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("hotel_api_transport_error", endpoint=endpoint, error=str(e))
            raise HotelApiError(f"Request to {endpoint} failed: {e}") from e
        return self._handle_response(response, endpoint)

    # =========================================================================
    # Rooms & Catalog
    # =========================================================================

    async def search_available_rooms(self, criteria: RoomSearchCriteria) -> list[AvailableRoom]:
        """
        Search rooms free for the whole stay.

        Args:
            criteria: Dates, occupant count and optional filters

        Returns:
            Rooms in the order the API returned them
        """
        params = criteria.to_query_params()
        logger.info("hotel_api_search_rooms", **params)

        data = await self._get("/bookings/available-rooms", params)
        rooms = parse_records(AvailableRoom.from_api, _unwrap_items(data), "room")

        logger.info("hotel_api_rooms_found", count=len(rooms))
        return rooms

    async def list_room_types(self) -> list[RoomType]:
        """Get the room-type catalog."""
        data = await self._get("/room-types")
        room_types = parse_records(RoomType.from_api, _unwrap_items(data), "room type")

        logger.info("hotel_api_room_types_loaded", count=len(room_types))
        return room_types

    # =========================================================================
    # Guests
    # =========================================================================

    async def list_guests(
        self,
        page_size: int = 100,
        filters: dict[str, Any] | None = None,
    ) -> list[Guest]:
        """
        Get one page of guests.

        Args:
            page_size: Maximum number of guests to return
            filters: Extra query filters (search, vip, ...)

        Returns:
            List of Guest summaries
        """
        params = clean_params({**(filters or {}), "limit": page_size})
        data = await self._get("/guests", params)
        guests = parse_records(Guest.from_api, _unwrap_items(data), "guest")

        logger.info("hotel_api_guests_loaded", count=len(guests))
        return guests

    # =========================================================================
    # Bookings
    # =========================================================================

    async def create_booking(
        self,
        payload: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BookingRecord:
        """
        Create a booking.

        Args:
            payload: Create-booking body (see DraftReservation.to_payload)
            idempotency_key: Sent as the Idempotency-Key header when given

        Returns:
            The created BookingRecord

        Raises:
            HotelApiValidationError: If the API rejects the booking
            HotelApiError: On transport or server failure
        """
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None

        logger.info(
            "hotel_api_create_booking",
            room=payload.get("room"),
            guest=payload.get("guest"),
            check_in=payload.get("check_in"),
            check_out=payload.get("check_out"),
        )

        data = await self._post("/bookings", payload, headers=headers)
        # the API sometimes echoes only part of the created record
        [booking] = parse_records(
            partial(BookingRecord.from_api, defaults=payload),
            [_unwrap_record(data)],
            "booking",
        )

        logger.info(
            "hotel_api_booking_created",
            booking_id=booking.id,
            confirmation=booking.confirmation_number,
        )
        return booking

    async def list_bookings(self, filters: dict[str, Any] | None = None) -> list[BookingRecord]:
        """Get bookings for the reservation list view."""
        data = await self._get("/bookings", clean_params(filters))
        bookings = parse_records(BookingRecord.from_api, _unwrap_items(data), "booking")

        logger.info("hotel_api_bookings_loaded", count=len(bookings))
        return bookings

    # =========================================================================
    # Hotels
    # =========================================================================

    async def get_hotel(self, hotel_id: str) -> Hotel | None:
        """Get a hotel by id, or None when the API has no record."""
        data = await self._get(f"/hotels/{hotel_id}")
        record = _unwrap_record(data)
        if not record.get("_id", record.get("id")):
            return None
        [hotel] = parse_records(Hotel.from_api, [record], "hotel")
        return hotel
