"""Pydantic models for the reservation wizard."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class BookingSource(str, Enum):
    """Channel the reservation came in through."""

    DIRECT = "direct"
    WEBSITE = "website"
    PHONE = "phone"
    EMAIL = "email"
    WALK_IN = "walk_in"
    AGENT = "agent"
    OTA = "ota"
    OTHER = "other"


class PaymentStatus(str, Enum):
    """Payment state recorded at booking time."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


# =============================================================================
# Draft Reservation
# =============================================================================


class DraftReservation(BaseModel):
    """Reservation accumulated across the wizard steps.

    Date ordering and the room occupancy limit are checked by the wizard
    gates, so a draft may hold an inconsistent mid-edit state.
    """

    model_config = ConfigDict(validate_assignment=True)

    # Step 1: dates & guests
    check_in: date | None = None
    check_out: date | None = None
    occupant_count: int = Field(default=1, ge=1)
    booking_source: BookingSource = BookingSource.DIRECT

    # Step 2: room
    room_id: str | None = None

    # Step 3: guest & details
    guest_id: str | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: str | None = None
    rate_plan: str | None = None
    tax_rate_percent: Decimal = Field(default=Decimal("10"), ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_reason: str | None = None
    special_requests: str = ""
    group_booking: bool = False
    group_id: str | None = None
    corporate_booking: bool = False
    corporate_id: str | None = None
    assigned_staff: str | None = None

    def missing_for_submission(self) -> list[str]:
        """Names of the fields a booking cannot be created without."""
        required = ("guest_id", "room_id", "check_in", "check_out")
        return [name for name in required if getattr(self, name) in (None, "")]

    def to_payload(self, total_amount: Decimal, idempotency_key: str | None = None) -> dict[str, Any]:
        """Render the create-booking request body."""
        payload: dict[str, Any] = {
            "guest": self.guest_id,
            "room": self.room_id,
            "check_in": self.check_in.isoformat() if self.check_in else None,
            "check_out": self.check_out.isoformat() if self.check_out else None,
            "number_of_guests": self.occupant_count,
            "booking_source": self.booking_source.value,
            "payment_status": self.payment_status.value,
            "payment_method": self.payment_method,
            "total_amount": float(total_amount),
            "special_requests": self.special_requests,
            "rate_plan": self.rate_plan,
            "discount": float(self.discount_amount),
            "discount_reason": self.discount_reason,
            "tax_rate": float(self.tax_rate_percent),
            "is_group_booking": self.group_booking,
            "group_id": self.group_id if self.group_booking else None,
            "is_corporate": self.corporate_booking,
            "corporate_id": self.corporate_id if self.corporate_booking else None,
            "assigned_staff": self.assigned_staff,
            "idempotency_key": idempotency_key,
        }
        return {k: v for k, v in payload.items() if v is not None and v != ""}


# =============================================================================
# Room Search
# =============================================================================


class RoomSearchFilters(BaseModel):
    """Optional filters the operator sets before searching."""

    model_config = ConfigDict(validate_assignment=True)

    room_type_id: str | None = None
    floor: str | None = None
    building: str | None = None
    view: str | None = None


class RoomSearchCriteria(BaseModel):
    """Query for one availability search. Built fresh for every search."""

    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date
    occupant_count: int = Field(ge=1)
    room_type_id: str | None = None
    floor: str | None = None
    building: str | None = None
    view: str | None = None

    @classmethod
    def from_draft(
        cls,
        draft: DraftReservation,
        filters: RoomSearchFilters | None = None,
    ) -> "RoomSearchCriteria":
        filters = filters or RoomSearchFilters()
        return cls(
            check_in=draft.check_in,
            check_out=draft.check_out,
            occupant_count=draft.occupant_count,
            **filters.model_dump(),
        )

    def to_query_params(self) -> dict[str, str]:
        """Query string for the available-rooms endpoint; unset filters are dropped."""
        params = {
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "capacity": str(self.occupant_count),
            "room_type": self.room_type_id,
            "floor": self.floor,
            "building": self.building,
            "view": self.view,
        }
        return {k: v for k, v in params.items() if v not in (None, "")}


# =============================================================================
# Pricing
# =============================================================================


CENT = Decimal("0.01")


class PricingBreakdown(BaseModel):
    """Derived price of a draft. Recomputed on demand, never stored."""

    model_config = ConfigDict(frozen=True)

    nights: int = 0
    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    def display(self) -> dict[str, Any]:
        """Values rounded to cents for presentation."""
        return {
            "nights": self.nights,
            "subtotal": self.subtotal.quantize(CENT, rounding=ROUND_HALF_UP),
            "tax_amount": self.tax_amount.quantize(CENT, rounding=ROUND_HALF_UP),
            "discount_amount": self.discount_amount.quantize(CENT, rounding=ROUND_HALF_UP),
            "total": self.total.quantize(CENT, rounding=ROUND_HALF_UP),
        }
