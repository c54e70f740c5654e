"""Command-line entry point for the front-desk reservation core."""

import asyncio
import sys
from datetime import date

from frontdesk.config import get_settings
from frontdesk.models.reservation import RoomSearchCriteria
from frontdesk.services.availability import AvailabilityQueryAdapter, RoomSearchError
from frontdesk.services.booking_list import BookingListFilters, filter_by_tab, sort_bookings, summarize
from frontdesk.services.hotel_api import HotelApiClient, HotelApiError
from frontdesk.services.pricing import calculate_pricing
from frontdesk.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

USAGE = """Usage: python -m frontdesk.main <command> [args]

Commands:
  quote <rate> <check_in> <check_out> [tax_rate] [discount]
  rooms <check_in> <check_out> [guests]
  bookings [tab]
  test
"""


def create_client() -> HotelApiClient:
    """Build an API client from settings."""
    settings = get_settings()
    return HotelApiClient(
        base_url=settings.api_base_url,
        token=settings.api_token,
        timeout=settings.api_timeout_seconds,
    )


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_quote(args: list[str]) -> None:
    """Print the price breakdown of a stay."""
    if len(args) < 3:
        print(USAGE)
        sys.exit(1)

    tax_rate = args[3] if len(args) > 3 else get_settings().wizard.default_tax_rate
    discount = args[4] if len(args) > 4 else "0"

    pricing = calculate_pricing(
        base_price_per_night=args[0],
        check_in=date.fromisoformat(args[1]),
        check_out=date.fromisoformat(args[2]),
        tax_rate_percent=tax_rate,
        discount_amount=discount,
    ).display()

    print("\n" + "=" * 40)
    print(f"🛏️  Nights:    {pricing['nights']}")
    print(f"💵 Subtotal:  {pricing['subtotal']}")
    print(f"🧾 Tax:       {pricing['tax_amount']}")
    print(f"🏷️  Discount:  -{pricing['discount_amount']}")
    print(f"✅ Total:     {pricing['total']}")
    print("=" * 40 + "\n")


async def cmd_rooms(args: list[str]) -> None:
    """Search available rooms."""
    if len(args) < 2:
        print(USAGE)
        sys.exit(1)

    criteria = RoomSearchCriteria(
        check_in=date.fromisoformat(args[0]),
        check_out=date.fromisoformat(args[1]),
        occupant_count=int(args[2]) if len(args) > 2 else 1,
    )

    async with create_client() as client:
        try:
            rooms = await AvailabilityQueryAdapter(client).search(criteria)
        except RoomSearchError as e:
            print(f"❌ {e.message}")
            sys.exit(1)

    if not rooms:
        print("\nNo rooms match your criteria for the selected dates.\n")
        return

    print(f"\n📋 {len(rooms)} rooms available\n")
    for room in rooms:
        print(
            f"  {room.number:>6}  floor {room.floor or '-':>3}  "
            f"{room.room_type.name:<20} {room.base_price_per_night:>10}/night  "
            f"max {room.max_occupancy}"
        )
    print()


async def cmd_bookings(args: list[str]) -> None:
    """List bookings under a status tab."""
    tab = args[0] if args else "all"

    async with create_client() as client:
        try:
            records = await client.list_bookings(BookingListFilters(limit=100).to_query_params())
        except HotelApiError as e:
            print(f"❌ Failed to load reservations: {e.message}")
            sys.exit(1)

    records = sort_bookings(filter_by_tab(records, tab), "-created_at")
    stats = summarize(records)

    print(f"\n📋 {stats['total_bookings']} bookings ({tab}), revenue {stats['total_revenue']}\n")
    for record in records:
        print(
            f"  {record.confirmation_number or record.id:<14} {record.guest_name or record.guest_id:<24} "
            f"{record.check_in} → {record.check_out}  {record.status}"
        )
    print()


async def cmd_test_connection() -> None:
    """Check that the API answers catalog and guest queries."""
    settings = get_settings()
    print(f"\n🔍 Testing connection to {settings.api_base_url}...\n")

    try:
        async with create_client() as client:
            room_types = await client.list_room_types()
            print(f"   ✅ Room types: {len(room_types)}")
            guests = await client.list_guests(page_size=5)
            print(f"   ✅ Guests reachable ({len(guests)} on first page)")
    except HotelApiError as e:
        print(f"   ❌ API failed: {e.message}")
        sys.exit(1)

    print("\n✅ Connection test complete!\n")


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    """Main entry point."""
    settings = get_settings()
    setup_logging(settings.app.log_level, settings.app.log_format)

    command = sys.argv[1] if len(sys.argv) > 1 else ""
    args = sys.argv[2:]

    if command == "quote":
        cmd_quote(args)
    elif command == "rooms":
        asyncio.run(cmd_rooms(args))
    elif command == "bookings":
        asyncio.run(cmd_bookings(args))
    elif command == "test":
        asyncio.run(cmd_test_connection())
    else:
        print(f"Unknown command: {command}" if command else USAGE)
        if command:
            print(USAGE)
        sys.exit(1)


if __name__ == "__main__":
    main()
