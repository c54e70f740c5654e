"""Models module."""

from .hotel import AvailableRoom, BookingRecord, Guest, Hotel, RoomType
from .reservation import (
    BookingSource,
    DraftReservation,
    PaymentStatus,
    PricingBreakdown,
    RoomSearchCriteria,
    RoomSearchFilters,
)

__all__ = [
    "AvailableRoom",
    "BookingRecord",
    "Guest",
    "Hotel",
    "RoomType",
    "BookingSource",
    "DraftReservation",
    "PaymentStatus",
    "PricingBreakdown",
    "RoomSearchCriteria",
    "RoomSearchFilters",
]
