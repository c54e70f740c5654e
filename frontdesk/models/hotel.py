"""Pydantic models for records owned by the back-office API."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _record_id(item: dict[str, Any]) -> str:
    """API records carry their id as ``_id`` (Mongo style) or ``id``."""
    return str(item.get("_id", item.get("id", "")))


class Hotel(BaseModel):
    """Hotel the operator is working on."""

    id: str
    name: str
    code: str | None = None
    city: str | None = None
    chain_id: str | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Hotel":
        address = item.get("address") or {}
        chain = item.get("chain")
        return cls(
            id=_record_id(item),
            name=item.get("name", ""),
            code=item.get("code"),
            city=item.get("city", address.get("city") if isinstance(address, dict) else None),
            chain_id=_record_id(chain) if isinstance(chain, dict) else chain,
        )


class RoomType(BaseModel):
    """Room type from the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = ""
    base_price_per_night: Decimal = Field(default=Decimal("0"), ge=0)
    max_occupancy: int = Field(default=1, ge=1)
    amenities: tuple[str, ...] = ()
    description: str | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "RoomType":
        return cls(
            id=_record_id(item),
            name=item.get("name", ""),
            category=item.get("category") or "",
            base_price_per_night=Decimal(str(item.get("base_price") or 0)),
            max_occupancy=item.get("max_occupancy") or 1,
            amenities=tuple(item.get("amenities") or ()),
            description=item.get("description"),
        )


class AvailableRoom(BaseModel):
    """Room returned by the availability search. Read-only."""

    model_config = ConfigDict(frozen=True)

    id: str
    number: str
    floor: str = ""
    building: str | None = None
    view: str | None = None
    status: str | None = None
    max_occupancy: int = Field(default=1, ge=1)
    amenities: tuple[str, ...] = ()
    room_type: RoomType

    @property
    def base_price_per_night(self) -> Decimal:
        return self.room_type.base_price_per_night

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "AvailableRoom":
        raw_type = item.get("room_type") or {}
        if isinstance(raw_type, dict):
            room_type = RoomType.from_api(raw_type)
        else:
            room_type = RoomType(id=str(raw_type), name="")

        return cls(
            id=_record_id(item),
            number=str(item.get("number", item.get("room_number", ""))),
            floor=str(item.get("floor") or ""),
            building=item.get("building"),
            view=item.get("view"),
            status=item.get("status"),
            max_occupancy=item.get("max_occupancy") or room_type.max_occupancy,
            amenities=tuple(item.get("amenities") or room_type.amenities),
            room_type=room_type,
        )


class Guest(BaseModel):
    """Guest summary used by the guest picker."""

    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str
    email: str | None = None
    phone: str | None = None
    nationality: str | None = None
    vip: bool = False
    blacklisted: bool = False

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Guest":
        return cls(
            id=_record_id(item),
            full_name=item.get("full_name", ""),
            email=item.get("email"),
            phone=item.get("phone"),
            nationality=item.get("nationality"),
            vip=bool(item.get("vip", False)),
            blacklisted=bool(item.get("blacklisted", False)),
        )


class BookingRecord(BaseModel):
    """Booking as stored by the API."""

    id: str
    confirmation_number: str | None = None
    guest_id: str
    guest_name: str | None = None
    room_id: str
    room_number: str | None = None
    check_in: date
    check_out: date
    number_of_guests: int = 1
    status: str = "confirmed"
    payment_status: str = "pending"
    booking_source: str = "direct"
    total_amount: Decimal = Decimal("0")
    created_at: datetime | None = None

    @property
    def nights(self) -> int:
        return max(0, (self.check_out - self.check_in).days)

    @classmethod
    def from_api(cls, item: dict[str, Any], defaults: dict[str, Any] | None = None) -> "BookingRecord":
        """
        Parse an API booking.

        ``defaults`` fills fields the API left out, e.g. the create-booking
        payload when the created record is echoed back partially.
        """
        defaults = defaults or {}
        # guest and room come back either populated or as bare ids
        guest = item.get("guest") or defaults.get("guest")
        room = item.get("room") or defaults.get("room")
        return cls(
            id=_record_id(item),
            confirmation_number=item.get("confirmation_number"),
            guest_id=_record_id(guest) if isinstance(guest, dict) else str(guest or ""),
            guest_name=guest.get("full_name") if isinstance(guest, dict) else None,
            room_id=_record_id(room) if isinstance(room, dict) else str(room or ""),
            room_number=str(room.get("number")) if isinstance(room, dict) and room.get("number") else None,
            check_in=str(item.get("check_in") or defaults.get("check_in") or "")[:10],
            check_out=str(item.get("check_out") or defaults.get("check_out") or "")[:10],
            number_of_guests=item.get("number_of_guests") or defaults.get("number_of_guests") or 1,
            status=item.get("status") or "confirmed",
            payment_status=item.get("payment_status") or "pending",
            booking_source=item.get("booking_source") or "direct",
            total_amount=Decimal(str(item.get("total_amount") or defaults.get("total_amount") or 0)),
            created_at=item.get("createdAt", item.get("created_at")),
        )
