"""Tests for the reservation wizard."""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import date
from decimal import Decimal

from frontdesk.config import WizardSettings
from frontdesk.models.hotel import AvailableRoom, BookingRecord, Guest, RoomType
from frontdesk.models.reservation import BookingSource, PaymentStatus
from frontdesk.services.hotel_api import HotelApiError, HotelApiValidationError
from frontdesk.services.wizard import ReservationWizard, WizardStep


# =============================================================================
# Fixtures
# =============================================================================


def make_room(room_id: str, number: str, price: str = "100", max_occupancy: int = 2) -> AvailableRoom:
    return AvailableRoom(
        id=room_id,
        number=number,
        floor="1",
        max_occupancy=max_occupancy,
        room_type=RoomType(
            id="rt-deluxe",
            name="Deluxe",
            category="deluxe",
            base_price_per_night=Decimal(price),
            max_occupancy=max_occupancy,
        ),
    )


@pytest.fixture
def rooms():
    return [make_room("r101", "101"), make_room("r102", "102", price="150", max_occupancy=4)]


@pytest.fixture
def booking():
    return BookingRecord(
        id="b1",
        confirmation_number="CNF-0001",
        guest_id="g1",
        room_id="r101",
        check_in=date(2024, 1, 1),
        check_out=date(2024, 1, 4),
        number_of_guests=2,
        total_amount=Decimal("330"),
    )


@pytest.fixture
def backend(rooms, booking):
    """Fake API satisfying every collaborator protocol."""
    api = MagicMock()
    api.search_available_rooms = AsyncMock(return_value=rooms)
    api.create_booking = AsyncMock(return_value=booking)
    api.list_guests = AsyncMock(return_value=[
        Guest(id="g1", full_name="Jane Doe", email="jane@example.com"),
        Guest(id="g2", full_name="John Roe"),
    ])
    api.list_room_types = AsyncMock(return_value=[
        RoomType(id="rt-deluxe", name="Deluxe", base_price_per_night=Decimal("100")),
    ])
    return api


@pytest.fixture
def settings():
    return WizardSettings(
        default_tax_rate=Decimal("10"),
        guest_page_size=100,
        max_occupants=10,
        reservations_path="/frontdesk/reservations",
    )


@pytest.fixture
def wizard(backend, settings):
    return ReservationWizard(
        rooms=backend,
        bookings=backend,
        guests=backend,
        room_types=backend,
        settings=settings,
    )


def fill_dates(wizard: ReservationWizard, check_in="2024-01-01", check_out="2024-01-04", guests=2) -> None:
    assert wizard.set_field("check_in", check_in).ok
    assert wizard.set_field("check_out", check_out).ok
    assert wizard.set_field("occupant_count", guests).ok


async def reach_confirmation(wizard: ReservationWizard) -> None:
    """Walk the wizard to step 4 with room 101 and guest g1."""
    fill_dates(wizard)
    assert (await wizard.search_rooms()).ok
    assert wizard.select_room(wizard.candidates[0]).ok
    assert wizard.select_guest("g1").ok
    assert (await wizard.go_next()).ok
    assert wizard.step == WizardStep.CONFIRMATION


# =============================================================================
# Initial State
# =============================================================================


def test_initial_state(wizard):
    assert wizard.step == WizardStep.DATES_AND_GUESTS
    assert wizard.status == "open"
    assert wizard.draft.tax_rate_percent == Decimal("10")
    assert wizard.draft.discount_amount == 0
    assert wizard.draft.booking_source == BookingSource.DIRECT
    assert wizard.draft.payment_status == PaymentStatus.PENDING
    assert wizard.draft.occupant_count == 1
    assert wizard.candidates == []
    assert wizard.pricing.total == 0


def test_default_tax_rate_comes_from_settings(backend):
    wizard = ReservationWizard(
        rooms=backend,
        bookings=backend,
        settings=WizardSettings(default_tax_rate=Decimal("7.5")),
    )

    assert wizard.draft.tax_rate_percent == Decimal("7.5")


@pytest.mark.asyncio
async def test_load_lookups(wizard, backend):
    await wizard.load_lookups()

    assert [guest.id for guest in wizard.guests] == ["g1", "g2"]
    assert wizard.room_types[0].name == "Deluxe"
    backend.list_guests.assert_awaited_once_with(page_size=100)


@pytest.mark.asyncio
async def test_load_lookups_failure_is_not_fatal(wizard, backend):
    backend.list_guests = AsyncMock(side_effect=HotelApiError("down", status_code=503))

    await wizard.load_lookups()

    assert wizard.guests == []
    assert wizard.room_types
    assert wizard.notice == "Failed to load guests"


# =============================================================================
# Step 1: Dates & Guests
# =============================================================================


@pytest.mark.asyncio
async def test_missing_check_out_blocks_search(wizard, backend):
    wizard.set_field("check_in", "2024-01-01")

    result = await wizard.go_next()

    assert not result.ok
    assert wizard.step == WizardStep.DATES_AND_GUESTS
    assert "check_out" in result.errors
    backend.search_available_rooms.assert_not_awaited()


@pytest.mark.asyncio
async def test_same_day_stay_is_blocked(wizard, backend):
    """Zero-night stays are a validation error, not a zero-priced booking."""
    fill_dates(wizard, "2024-01-01", "2024-01-01")

    result = await wizard.search_rooms()

    assert not result.ok
    assert result.errors["check_out"] == "Check-out date must be after check-in date"
    assert wizard.step == WizardStep.DATES_AND_GUESTS
    assert wizard.pricing.nights == 0
    assert wizard.pricing.total == 0
    backend.search_available_rooms.assert_not_awaited()


@pytest.mark.asyncio
async def test_too_many_guests_blocks_search(wizard):
    fill_dates(wizard, guests=11)

    result = await wizard.search_rooms()

    assert not result.ok
    assert "occupant_count" in result.errors


@pytest.mark.asyncio
async def test_search_advances_with_candidates(wizard, backend, rooms):
    fill_dates(wizard)
    wizard.set_filter("floor", "1")
    wizard.set_filter("room_type_id", "rt-deluxe")
    wizard.set_filter("building", "")

    result = await wizard.go_next()

    assert result.ok
    assert wizard.step == WizardStep.ROOM_SELECTION
    assert wizard.candidates == rooms
    assert not wizard.is_searching

    criteria = backend.search_available_rooms.call_args.args[0]
    assert criteria.check_in == date(2024, 1, 1)
    assert criteria.check_out == date(2024, 1, 4)
    assert criteria.occupant_count == 2
    assert criteria.floor == "1"
    assert criteria.room_type_id == "rt-deluxe"
    assert criteria.building is None


@pytest.mark.asyncio
async def test_empty_search_is_not_an_error(wizard, backend):
    backend.search_available_rooms = AsyncMock(return_value=[])
    fill_dates(wizard)

    result = await wizard.search_rooms()

    assert result.ok
    assert wizard.step == WizardStep.ROOM_SELECTION
    assert not wizard.has_candidates
    assert wizard.notice.startswith("No rooms match your criteria")


@pytest.mark.asyncio
async def test_search_failure_stays_on_step_one(wizard, backend, rooms):
    backend.search_available_rooms = AsyncMock(side_effect=HotelApiError("boom", status_code=503))
    fill_dates(wizard)

    result = await wizard.search_rooms()

    assert not result.ok
    assert result.message == "Failed to search available rooms"
    assert wizard.step == WizardStep.DATES_AND_GUESTS
    assert wizard.draft.check_in == date(2024, 1, 1)

    # manual retry
    backend.search_available_rooms = AsyncMock(return_value=rooms)
    assert (await wizard.search_rooms()).ok
    assert wizard.step == WizardStep.ROOM_SELECTION


@pytest.mark.asyncio
async def test_stale_search_result_is_discarded(wizard, backend, rooms):
    release = asyncio.Event()

    async def slow_search(criteria):
        await release.wait()
        return rooms

    backend.search_available_rooms = slow_search
    fill_dates(wizard)

    task = asyncio.create_task(wizard.search_rooms())
    await asyncio.sleep(0)
    assert wizard.is_searching

    # operator changes the dates while the search is in flight
    wizard.set_field("check_out", "2024-01-06")
    release.set()
    result = await task

    assert result.stale
    assert not result.ok
    assert wizard.step == WizardStep.DATES_AND_GUESTS
    assert wizard.candidates == []
    assert not wizard.is_searching


# =============================================================================
# Field Updates
# =============================================================================


def test_invalid_field_value_leaves_draft_unchanged(wizard):
    result = wizard.set_field("occupant_count", 0)

    assert not result.ok
    assert "occupant_count" in result.errors
    assert wizard.draft.occupant_count == 1


def test_negative_discount_rejected(wizard):
    result = wizard.set_field("discount_amount", "-5")

    assert not result.ok
    assert wizard.draft.discount_amount == 0


def test_unknown_field_rejected(wizard):
    result = wizard.set_field("branding", "blue")

    assert not result.ok
    assert result.errors == {"branding": "Unknown field: branding"}


def test_booking_source_must_be_known(wizard):
    assert wizard.set_field("booking_source", "walk_in").ok
    assert wizard.draft.booking_source == BookingSource.WALK_IN
    assert not wizard.set_field("booking_source", "carrier_pigeon").ok


# =============================================================================
# Step 2: Room Selection
# =============================================================================


@pytest.mark.asyncio
async def test_select_room_recomputes_pricing(wizard):
    fill_dates(wizard)
    await wizard.search_rooms()

    result = wizard.select_room(wizard.candidates[0])

    assert result.ok
    assert wizard.step == WizardStep.GUEST_AND_DETAILS
    assert wizard.draft.room_id == "r101"
    assert wizard.pricing.nights == 3
    assert wizard.pricing.subtotal == Decimal("300")
    assert wizard.pricing.tax_amount == Decimal("30")
    assert wizard.pricing.total == Decimal("330")

    wizard.set_field("discount_amount", 50)
    assert wizard.pricing.total == Decimal("280")

    wizard.set_field("discount_amount", 1000)
    assert wizard.pricing.total == Decimal("0")

    wizard.set_field("tax_rate_percent", 0)
    wizard.set_field("discount_amount", 0)
    assert wizard.pricing.total == Decimal("300")


@pytest.mark.asyncio
async def test_select_room_requires_a_room(wizard):
    fill_dates(wizard)
    await wizard.search_rooms()

    result = wizard.select_room(None)

    assert not result.ok
    assert "room_id" in result.errors
    assert wizard.step == WizardStep.ROOM_SELECTION


@pytest.mark.asyncio
async def test_select_room_must_be_a_candidate(wizard):
    fill_dates(wizard)
    await wizard.search_rooms()

    result = wizard.select_room(make_room("r999", "999"))

    assert not result.ok
    assert wizard.draft.room_id is None


@pytest.mark.asyncio
async def test_go_next_on_step_two_needs_selection(wizard):
    fill_dates(wizard)
    await wizard.search_rooms()

    result = await wizard.go_next()

    assert not result.ok
    assert wizard.step == WizardStep.ROOM_SELECTION


# =============================================================================
# Step 3: Guest & Details
# =============================================================================


@pytest.mark.asyncio
async def test_guest_required_for_review(wizard):
    fill_dates(wizard)
    await wizard.search_rooms()
    wizard.select_room(wizard.candidates[0])

    result = await wizard.go_next()

    assert not result.ok
    assert "guest_id" in result.errors
    assert wizard.step == WizardStep.GUEST_AND_DETAILS


@pytest.mark.asyncio
async def test_select_guest_fills_register(wizard):
    await wizard.load_lookups()

    assert wizard.select_guest("g2").ok
    assert wizard.selected_guest.full_name == "John Roe"

    # unknown to the picker list but still recorded
    assert wizard.select_guest("g77").ok
    assert wizard.draft.guest_id == "g77"
    assert wizard.selected_guest is None


@pytest.mark.asyncio
async def test_selection_fields_stay_in_step_with_registers(wizard):
    await wizard.load_lookups()
    fill_dates(wizard)
    await wizard.search_rooms()
    wizard.select_room(wizard.candidates[0])
    wizard.select_guest("g1")

    assert wizard.set_field("guest_id", "g2").ok
    assert wizard.draft.guest_id == "g2"
    assert wizard.selected_guest.full_name == "John Roe"

    result = wizard.set_field("room_id", "r102")
    assert not result.ok
    assert "room_id" in result.errors
    assert wizard.draft.room_id == "r101"
    assert wizard.selected_room.id == "r101"


@pytest.mark.asyncio
async def test_occupancy_checked_against_selected_room(wizard):
    fill_dates(wizard, guests=3)
    await wizard.search_rooms()
    wizard.select_room(wizard.candidates[0])
    wizard.select_guest("g1")

    result = await wizard.go_next()

    assert not result.ok
    assert result.errors["occupant_count"] == "Room 101 holds at most 2 guests"

    wizard.set_field("occupant_count", 2)
    assert (await wizard.go_next()).ok


# =============================================================================
# Backward Navigation
# =============================================================================


@pytest.mark.asyncio
async def test_go_back_keeps_draft(wizard):
    await reach_confirmation(wizard)
    before = wizard.draft.model_dump()

    for expected in (WizardStep.GUEST_AND_DETAILS, WizardStep.ROOM_SELECTION, WizardStep.DATES_AND_GUESTS):
        assert wizard.go_back().ok
        assert wizard.step == expected
        assert wizard.draft.model_dump() == before

    # already on the first step
    assert wizard.go_back().ok
    assert wizard.step == WizardStep.DATES_AND_GUESTS
    assert wizard.selected_room is not None


@pytest.mark.asyncio
async def test_go_to_step_only_backwards(wizard):
    await reach_confirmation(wizard)

    assert wizard.go_to_step(2).ok
    assert wizard.step == WizardStep.ROOM_SELECTION
    assert not wizard.go_to_step(4).ok
    assert not wizard.go_to_step(9).ok
    assert wizard.step == WizardStep.ROOM_SELECTION

    # room kept from before, so the gate lets us through
    assert (await wizard.go_next()).ok
    assert wizard.step == WizardStep.GUEST_AND_DETAILS


# =============================================================================
# Step 4: Submission
# =============================================================================


@pytest.mark.asyncio
async def test_submit_success(wizard, backend, booking):
    await reach_confirmation(wizard)

    outcome = await wizard.submit()

    assert outcome.success
    assert outcome.booking == booking
    assert outcome.redirect_to == "/frontdesk/reservations"
    assert wizard.status == "completed"
    assert wizard.is_closed

    payload = backend.create_booking.call_args.args[0]
    key = backend.create_booking.call_args.kwargs["idempotency_key"]
    assert payload["guest"] == "g1"
    assert payload["room"] == "r101"
    assert payload["check_in"] == "2024-01-01"
    assert payload["number_of_guests"] == 2
    assert payload["total_amount"] == 330.0
    assert payload["idempotency_key"] == key

    # closed wizards ignore further actions
    assert not wizard.set_field("occupant_count", 3).ok


@pytest.mark.asyncio
async def test_submit_rejected_keeps_draft(wizard, backend):
    backend.create_booking = AsyncMock(
        side_effect=HotelApiValidationError("Room no longer available", status_code=409)
    )
    await reach_confirmation(wizard)
    before = wizard.draft.model_dump()

    outcome = await wizard.submit()

    assert not outcome.success
    assert outcome.message == "Room no longer available"
    assert wizard.notice == "Room no longer available"
    assert wizard.step == WizardStep.CONFIRMATION
    assert wizard.status == "open"
    assert wizard.draft.model_dump() == before


@pytest.mark.asyncio
async def test_each_attempt_has_its_own_idempotency_key(wizard, backend):
    backend.create_booking = AsyncMock(side_effect=HotelApiError("Service unavailable", status_code=503))
    await reach_confirmation(wizard)

    await wizard.submit()
    await wizard.submit()

    keys = [call.kwargs["idempotency_key"] for call in backend.create_booking.call_args_list]
    assert len(keys) == 2
    assert keys[0] != keys[1]


@pytest.mark.asyncio
async def test_double_submit_makes_one_call(wizard, booking):
    release = asyncio.Event()
    calls = []

    async def slow_create(payload, idempotency_key=None):
        calls.append(idempotency_key)
        await release.wait()
        return booking

    await reach_confirmation(wizard)
    wizard.submission.backend.create_booking = slow_create

    first = asyncio.create_task(wizard.submit())
    await asyncio.sleep(0)
    assert wizard.is_submitting

    second = await wizard.submit()
    assert not second.success
    assert second.message == "Submission already in progress"

    release.set()
    assert (await first).success
    assert len(calls) == 1
    assert not wizard.is_submitting


@pytest.mark.asyncio
async def test_cancel_during_submit_ignores_result(wizard, booking):
    release = asyncio.Event()

    async def slow_create(payload, idempotency_key=None):
        await release.wait()
        return booking

    await reach_confirmation(wizard)
    wizard.submission.backend.create_booking = slow_create

    task = asyncio.create_task(wizard.submit())
    await asyncio.sleep(0)
    wizard.cancel()
    release.set()
    await task

    assert wizard.status == "cancelled"
    assert wizard.outcome is None


@pytest.mark.asyncio
async def test_edits_refused_while_submitting(wizard, booking):
    release = asyncio.Event()
    calls = []

    async def slow_create(payload, idempotency_key=None):
        calls.append(idempotency_key)
        await release.wait()
        return booking

    await reach_confirmation(wizard)
    wizard.submission.backend.create_booking = slow_create

    task = asyncio.create_task(wizard.submit())
    await asyncio.sleep(0)

    for result in (
        wizard.go_back(),
        wizard.go_to_step(1),
        wizard.set_field("special_requests", "Quiet room"),
        wizard.set_filter("view", "sea"),
        wizard.select_guest("g2"),
    ):
        assert not result.ok
        assert result.message == "Submission already in progress"
    assert wizard.step == WizardStep.CONFIRMATION

    release.set()
    assert (await task).success
    assert wizard.status == "completed"

    assert not (await wizard.go_next()).ok
    assert not (await wizard.submit()).success
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_submit_only_from_confirmation(wizard, backend):
    fill_dates(wizard)

    outcome = await wizard.submit()

    assert not outcome.success
    backend.create_booking.assert_not_awaited()


# =============================================================================
# Snapshot
# =============================================================================


@pytest.mark.asyncio
async def test_snapshot(wizard):
    fill_dates(wizard)
    await wizard.search_rooms()
    wizard.select_room(wizard.candidates[1])

    snapshot = wizard.snapshot()

    assert snapshot["step"] == 3
    assert snapshot["status"] == "open"
    assert snapshot["draft"]["room_id"] == "r102"
    assert snapshot["draft"]["check_in"] == "2024-01-01"
    assert snapshot["selected_room"]["number"] == "102"
    assert snapshot["pricing"]["total"] == Decimal("495.00")
    assert len(snapshot["candidates"]) == 2
    assert snapshot["is_submitting"] is False
