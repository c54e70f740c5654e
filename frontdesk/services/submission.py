"""Booking submission for the reservation wizard."""

import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from frontdesk.models.hotel import AvailableRoom, BookingRecord
from frontdesk.models.reservation import DraftReservation, PricingBreakdown
from frontdesk.services.hotel_api import HotelApiError
from frontdesk.utils.logger import get_logger

logger = get_logger(__name__)

GENERIC_FAILURE = "Failed to create reservation"
ALREADY_SUBMITTING = "Submission already in progress"
MISSING_FIELDS = "Please fill in all required fields"


class BookingBackend(Protocol):
    """Anything that can create a booking (HotelApiClient)."""

    async def create_booking(
        self,
        payload: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> BookingRecord:
        ...


@dataclass
class SubmissionOutcome:
    """Result of one submit click."""

    success: bool
    booking: BookingRecord | None = None
    message: str | None = None
    missing_fields: list[str] = field(default_factory=list)
    idempotency_key: str | None = None
    redirect_to: str | None = None


class SubmissionCoordinator:
    """
    Sends a completed draft to the booking backend.

    Only one submission may be in flight; while it is, further submits are
    refused without touching the network. Each attempt carries its own
    idempotency key.
    """

    def __init__(self, backend: BookingBackend, redirect_to: str = "/frontdesk/reservations"):
        self.backend = backend
        self.redirect_to = redirect_to
        self._in_flight = False

    @property
    def is_submitting(self) -> bool:
        return self._in_flight

    async def submit(
        self,
        draft: DraftReservation,
        room: AvailableRoom | None,
        pricing: PricingBreakdown,
    ) -> SubmissionOutcome:
        """
        Create the booking described by the draft.

        The draft is never modified, so a failed attempt can be corrected
        and resubmitted.
        """
        if self._in_flight:
            logger.warning("booking_submit_refused", reason="in_flight")
            return SubmissionOutcome(success=False, message=ALREADY_SUBMITTING)

        missing = draft.missing_for_submission()
        if room is None and "room_id" not in missing:
            missing.append("room_id")
        if missing:
            logger.warning("booking_submit_incomplete", missing=missing)
            return SubmissionOutcome(success=False, message=MISSING_FIELDS, missing_fields=missing)

        idempotency_key = str(uuid.uuid4())
        payload = draft.to_payload(pricing.total, idempotency_key=idempotency_key)

        self._in_flight = True
        try:
            logger.info(
                "booking_submit_started",
                room_id=draft.room_id,
                guest_id=draft.guest_id,
                total=str(pricing.total),
                idempotency_key=idempotency_key,
            )
            booking = await self.backend.create_booking(payload, idempotency_key=idempotency_key)

        except HotelApiError as e:
            logger.error("booking_submit_failed", error=e.message, status=e.status_code)
            return SubmissionOutcome(
                success=False,
                message=e.message or GENERIC_FAILURE,
                idempotency_key=idempotency_key,
            )
        except httpx.HTTPError as e:
            logger.error("booking_submit_transport_error", error=str(e))
            return SubmissionOutcome(
                success=False,
                message=GENERIC_FAILURE,
                idempotency_key=idempotency_key,
            )
        finally:
            self._in_flight = False

        logger.info("booking_submit_success", booking_id=booking.id)
        return SubmissionOutcome(
            success=True,
            booking=booking,
            message="Reservation created successfully",
            idempotency_key=idempotency_key,
            redirect_to=self.redirect_to,
        )
