"""Reservation list: server query filters plus in-memory search, tabs and sorting."""

from collections import Counter
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from frontdesk.models.hotel import BookingRecord
from frontdesk.services.hotel_api import clean_params

TABS = ("all", "confirmed", "checked_in", "checked_out", "cancelled", "no_show", "arrivals", "departures")

SORTABLE_FIELDS = frozenset({
    "created_at",
    "check_in",
    "check_out",
    "total_amount",
    "guest_name",
    "room_number",
    "status",
    "confirmation_number",
})


class BookingListFilters(BaseModel):
    """Server-side filters of the reservation list."""

    guest: str | None = None
    room: str | None = None
    status: str | None = None
    payment_status: str | None = None
    booking_source: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    sort: str = "-createdAt"

    def to_query_params(self) -> dict[str, str]:
        return clean_params(self.model_dump(mode="json"))


def search_bookings(records: Iterable[BookingRecord], query: str) -> list[BookingRecord]:
    """Case-insensitive match on confirmation number, guest name and room number."""
    needle = query.strip().lower()
    if not needle:
        return list(records)

    return [
        record for record in records
        if any(
            needle in (value or "").lower()
            for value in (record.confirmation_number, record.guest_name, record.room_number)
        )
    ]


def filter_by_tab(
    records: Iterable[BookingRecord],
    tab: str,
    today: date | None = None,
) -> list[BookingRecord]:
    """Bookings shown under a status tab; arrivals/departures are relative to today."""
    if tab not in TABS:
        raise ValueError(f"Unknown tab: {tab}")

    today = today or date.today()
    if tab == "all":
        return list(records)
    if tab == "arrivals":
        return [r for r in records if r.check_in == today and r.status == "confirmed"]
    if tab == "departures":
        return [r for r in records if r.check_out == today and r.status == "checked_in"]
    return [r for r in records if r.status == tab]


def sort_bookings(records: Iterable[BookingRecord], sort: str = "-created_at") -> list[BookingRecord]:
    """
    Sort by one field; a leading '-' sorts descending.

    Missing values go last in either direction. ``createdAt`` is accepted as
    an alias of ``created_at`` since that is how the API spells it.
    """
    descending = sort.startswith("-")
    key = sort.lstrip("-+")
    key = {"createdAt": "created_at"}.get(key, key)
    if key not in SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by: {key}")

    records = list(records)
    present = [r for r in records if getattr(r, key) is not None]
    missing = [r for r in records if getattr(r, key) is None]

    def sort_key(record: BookingRecord) -> Any:
        value = getattr(record, key)
        return value.lower() if isinstance(value, str) else value

    return sorted(present, key=sort_key, reverse=descending) + missing


def summarize(records: Iterable[BookingRecord]) -> dict[str, Any]:
    """Counts per status and revenue, excluding cancelled and no-show bookings."""
    records = list(records)
    by_status = Counter(record.status for record in records)
    revenue = sum(
        (r.total_amount for r in records if r.status not in ("cancelled", "no_show")),
        Decimal("0"),
    )
    billable = len(records) - by_status["cancelled"] - by_status["no_show"]

    return {
        "total_bookings": len(records),
        "by_status": dict(by_status),
        "total_revenue": revenue,
        "avg_booking_value": (revenue / billable) if billable else Decimal("0"),
    }
