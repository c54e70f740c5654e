"""Four-step reservation wizard: dates, room, guest & details, confirmation."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from frontdesk.config import WizardSettings, get_settings
from frontdesk.models.hotel import AvailableRoom, Guest, RoomType
from frontdesk.models.reservation import (
    DraftReservation,
    PricingBreakdown,
    RoomSearchCriteria,
    RoomSearchFilters,
)
from frontdesk.services.availability import (
    AvailabilityQueryAdapter,
    RoomSearchBackend,
    RoomSearchError,
)
from frontdesk.services.hotel_api import HotelApiError
from frontdesk.services.pricing import price_draft
from frontdesk.services.submission import BookingBackend, SubmissionCoordinator, SubmissionOutcome
from frontdesk.utils.logger import get_logger

logger = get_logger(__name__)

# Changing any of these invalidates an in-flight room search
SEARCH_INPUTS = frozenset({"check_in", "check_out", "occupant_count"})


# =============================================================================
# Protocols
# =============================================================================


class GuestDirectory(Protocol):
    async def list_guests(self, page_size: int = 100, filters: dict[str, Any] | None = None) -> list[Guest]:
        ...


class RoomTypeCatalog(Protocol):
    async def list_room_types(self) -> list[RoomType]:
        ...


# =============================================================================
# Data Models
# =============================================================================


class WizardStep(IntEnum):
    """Wizard steps, in order."""

    DATES_AND_GUESTS = 1
    ROOM_SELECTION = 2
    GUEST_AND_DETAILS = 3
    CONFIRMATION = 4


@dataclass
class ValidationIssue:
    """Field-level validation message."""

    field: str
    message: str


@dataclass
class StepResult:
    """Outcome of a wizard action."""

    ok: bool
    step: WizardStep
    issues: list[ValidationIssue] = field(default_factory=list)
    message: str | None = None
    stale: bool = False

    @property
    def errors(self) -> dict[str, str]:
        return {issue.field: issue.message for issue in self.issues}


# =============================================================================
# Wizard
# =============================================================================


class ReservationWizard:
    """
    State machine behind the new-reservation screen.

    Forward moves pass through the current step's gate; backward moves are
    always allowed and never clear draft data. A room search records the
    generation it started from and its result is dropped when the wizard
    has moved on in the meantime. While a booking is being created every
    edit is refused, so a created booking always closes the wizard unless
    it was cancelled.
    """

    def __init__(
        self,
        rooms: RoomSearchBackend,
        bookings: BookingBackend,
        guests: GuestDirectory | None = None,
        room_types: RoomTypeCatalog | None = None,
        settings: WizardSettings | None = None,
    ):
        """
        Initialize wizard.

        Args:
            rooms: Availability search backend
            bookings: Booking creation backend
            guests: Guest lookup for the guest picker
            room_types: Room-type catalog for the search filter
            settings: Wizard defaults (from config if not provided)
        """
        self.settings = settings or get_settings().wizard
        self.availability = AvailabilityQueryAdapter(rooms)
        self.submission = SubmissionCoordinator(bookings, redirect_to=self.settings.reservations_path)
        self.guest_directory = guests
        self.room_type_catalog = room_types

        self.draft = DraftReservation(tax_rate_percent=self.settings.default_tax_rate)
        self.filters = RoomSearchFilters()

        self.candidates: list[AvailableRoom] = []
        self.guests: list[Guest] = []
        self.room_types: list[RoomType] = []
        self.selected_room: AvailableRoom | None = None
        self.selected_guest: Guest | None = None
        self.notice: str | None = None
        self.outcome: SubmissionOutcome | None = None

        self._step = WizardStep.DATES_AND_GUESTS
        self._generation = 0
        self._searching = False
        self._closed: str | None = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def step(self) -> WizardStep:
        return self._step

    @property
    def pricing(self) -> PricingBreakdown:
        """Price of the current draft, recomputed on every read."""
        return price_draft(self.draft, self.selected_room)

    @property
    def is_searching(self) -> bool:
        return self._searching

    @property
    def is_submitting(self) -> bool:
        return self.submission.is_submitting

    @property
    def is_closed(self) -> bool:
        return self._closed is not None

    @property
    def status(self) -> str:
        return self._closed or "open"

    @property
    def has_candidates(self) -> bool:
        return bool(self.candidates)

    def snapshot(self) -> dict[str, Any]:
        """Everything the hosting screen renders, as plain data."""
        return {
            "step": int(self._step),
            "status": self.status,
            "draft": self.draft.model_dump(mode="json"),
            "filters": self.filters.model_dump(),
            "pricing": self.pricing.display(),
            "candidates": [room.model_dump(mode="json") for room in self.candidates],
            "selected_room": self.selected_room.model_dump(mode="json") if self.selected_room else None,
            "selected_guest": self.selected_guest.model_dump(mode="json") if self.selected_guest else None,
            "is_searching": self.is_searching,
            "is_submitting": self.is_submitting,
            "notice": self.notice,
        }

    def _result(self, ok: bool, issues: list[ValidationIssue] | None = None,
                message: str | None = None, stale: bool = False) -> StepResult:
        issues = issues or []
        if not ok and not stale:
            self.notice = message or (issues[0].message if issues else None)
        return StepResult(ok=ok, step=self._step, issues=issues, message=message, stale=stale)

    def _closed_result(self) -> StepResult:
        return StepResult(ok=False, step=self._step, message=f"Wizard is {self._closed}")

    def _blocked_result(self) -> StepResult | None:
        """Refusal for edits made while the wizard is closed or a booking is being created."""
        if self.is_closed:
            return self._closed_result()
        if self.is_submitting:
            return StepResult(ok=False, step=self._step, message="Submission already in progress")
        return None

    def _is_stale(self, generation: int, step: WizardStep) -> bool:
        return self.is_closed or generation != self._generation or step != self._step

    # =========================================================================
    # Lookups
    # =========================================================================

    async def load_lookups(self) -> None:
        """Load the guest list and room-type catalog once, at mount."""
        if self.guest_directory is not None:
            try:
                self.guests = await self.guest_directory.list_guests(page_size=self.settings.guest_page_size)
            except (HotelApiError, httpx.HTTPError) as e:
                logger.error("wizard_guests_load_failed", error=str(e))
                self.notice = "Failed to load guests"

        if self.room_type_catalog is not None:
            try:
                self.room_types = await self.room_type_catalog.list_room_types()
            except (HotelApiError, httpx.HTTPError) as e:
                logger.error("wizard_room_types_load_failed", error=str(e))
                self.notice = "Failed to load room types"

    # =========================================================================
    # Field Updates
    # =========================================================================

    def set_field(self, key: str, value: Any) -> StepResult:
        """Set one draft field; invalid values leave the draft unchanged."""
        blocked = self._blocked_result()
        if blocked:
            return blocked

        if key not in DraftReservation.model_fields:
            return self._result(False, [ValidationIssue(key, f"Unknown field: {key}")])

        # the registers own these two; the draft only mirrors them
        if key == "guest_id":
            return self.select_guest(value)
        if key == "room_id":
            return self._result(False, [ValidationIssue(key, "Choose the room from the search results")])

        try:
            setattr(self.draft, key, value)
        except ValidationError as e:
            message = e.errors()[0]["msg"]
            logger.debug("wizard_field_rejected", field=key, error=message)
            return self._result(False, [ValidationIssue(key, message)])

        if key in SEARCH_INPUTS:
            self._generation += 1

        return self._result(True)

    def set_filter(self, key: str, value: Any) -> StepResult:
        """Set one optional room-search filter."""
        blocked = self._blocked_result()
        if blocked:
            return blocked

        if key not in RoomSearchFilters.model_fields:
            return self._result(False, [ValidationIssue(key, f"Unknown filter: {key}")])

        try:
            setattr(self.filters, key, value or None)
        except ValidationError as e:
            return self._result(False, [ValidationIssue(key, e.errors()[0]["msg"])])

        self._generation += 1
        return self._result(True)

    # =========================================================================
    # Gates
    # =========================================================================

    def _dates_and_guests_issues(self) -> list[ValidationIssue]:
        draft = self.draft
        issues = []

        if draft.check_in is None:
            issues.append(ValidationIssue("check_in", "Please select a check-in date"))
        if draft.check_out is None:
            issues.append(ValidationIssue("check_out", "Please select a check-out date"))
        if draft.check_in and draft.check_out and draft.check_in >= draft.check_out:
            issues.append(ValidationIssue("check_out", "Check-out date must be after check-in date"))
        if draft.occupant_count > self.settings.max_occupants:
            issues.append(ValidationIssue(
                "occupant_count",
                f"Number of guests cannot exceed {self.settings.max_occupants}",
            ))

        return issues

    def _occupancy_issues(self) -> list[ValidationIssue]:
        room = self.selected_room
        if room and self.draft.occupant_count > room.max_occupancy:
            return [ValidationIssue(
                "occupant_count",
                f"Room {room.number} holds at most {room.max_occupancy} guests",
            )]
        return []

    def _guest_and_details_issues(self) -> list[ValidationIssue]:
        issues = []
        if not self.draft.guest_id:
            issues.append(ValidationIssue("guest_id", "Please select a guest"))
        return issues + self._occupancy_issues()

    # =========================================================================
    # Transitions
    # =========================================================================

    async def search_rooms(self) -> StepResult:
        """Step 1 -> 2: validate dates, search rooms, show candidates."""
        if self.is_closed:
            return self._closed_result()

        if self._step != WizardStep.DATES_AND_GUESTS:
            return self._result(False, message="Go back to step 1 to change the search")

        if self._searching:
            return self._result(False, message="Search already in progress")

        issues = self._dates_and_guests_issues()
        if issues:
            return self._result(False, issues)

        criteria = RoomSearchCriteria.from_draft(self.draft, self.filters)
        generation, step = self._generation, self._step

        self._searching = True
        try:
            rooms = await self.availability.search(criteria)
        except RoomSearchError as e:
            if self._is_stale(generation, step):
                return self._result(False, message=e.message, stale=True)
            return self._result(False, message=e.message)
        finally:
            self._searching = False

        if self._is_stale(generation, step):
            logger.info("wizard_stale_search_discarded", generation=generation)
            return self._result(False, message="Search result discarded", stale=True)

        self.candidates = rooms
        self._step = WizardStep.ROOM_SELECTION
        self.notice = None if rooms else (
            "No rooms match your criteria for the selected dates. "
            "Please try different dates or preferences."
        )

        logger.info("wizard_rooms_listed", count=len(rooms))
        return self._result(True)

    def select_room(self, room: AvailableRoom | None) -> StepResult:
        """Step 2 -> 3: pick one of the candidate rooms."""
        blocked = self._blocked_result()
        if blocked:
            return blocked

        if self._step != WizardStep.ROOM_SELECTION:
            return self._result(False, message="Rooms can only be selected on step 2")

        if room is None:
            return self._result(False, [ValidationIssue("room_id", "Please select a room")])

        if room.id not in {candidate.id for candidate in self.candidates}:
            return self._result(False, [ValidationIssue("room_id", "Room is not in the current search results")])

        self.selected_room = room
        self.draft.room_id = room.id
        self._step = WizardStep.GUEST_AND_DETAILS

        logger.info("wizard_room_selected", room_id=room.id, number=room.number)
        return self._result(True)

    def select_guest(self, guest_id: str | None) -> StepResult:
        """Record the guest; the register holds the full record when the guest list has it."""
        blocked = self._blocked_result()
        if blocked:
            return blocked

        if not guest_id:
            return self._result(False, [ValidationIssue("guest_id", "Please select a guest")])

        self.draft.guest_id = guest_id
        self.selected_guest = next((guest for guest in self.guests if guest.id == guest_id), None)

        logger.debug("wizard_guest_selected", guest_id=guest_id, known=self.selected_guest is not None)
        return self._result(True)

    async def go_next(self) -> StepResult:
        """Advance one step through the current step's gate."""
        if self.is_closed:
            return self._closed_result()

        if self._step == WizardStep.DATES_AND_GUESTS:
            return await self.search_rooms()

        if self._step == WizardStep.ROOM_SELECTION:
            if self.selected_room is None or not self.draft.room_id:
                return self._result(False, [ValidationIssue("room_id", "Please select a room")])
            self._step = WizardStep.GUEST_AND_DETAILS
            return self._result(True)

        if self._step == WizardStep.GUEST_AND_DETAILS:
            issues = self._guest_and_details_issues()
            if issues:
                return self._result(False, issues)
            self._step = WizardStep.CONFIRMATION
            return self._result(True)

        return self._result(False, message="Already on the last step")

    def go_back(self) -> StepResult:
        """Return one step; draft data is kept."""
        blocked = self._blocked_result()
        if blocked:
            return blocked

        if self._step > WizardStep.DATES_AND_GUESTS:
            self._step = WizardStep(self._step - 1)
            self._generation += 1
        return self._result(True)

    def go_to_step(self, step: int) -> StepResult:
        """Jump back to an earlier step; jumping forward is not allowed."""
        blocked = self._blocked_result()
        if blocked:
            return blocked

        try:
            target = WizardStep(step)
        except ValueError:
            return self._result(False, message=f"No such step: {step}")

        if target > self._step:
            return self._result(False, message="Complete the current step first")

        if target != self._step:
            self._step = target
            self._generation += 1
        return self._result(True)

    def cancel(self) -> None:
        """Discard the wizard."""
        if not self.is_closed:
            self._closed = "cancelled"
            self._generation += 1
            logger.info("wizard_cancelled")

    async def submit(self) -> SubmissionOutcome:
        """Step 4: create the booking."""
        if self.is_closed:
            return SubmissionOutcome(success=False, message=f"Wizard is {self._closed}")

        if self._step != WizardStep.CONFIRMATION:
            return SubmissionOutcome(success=False, message="Review the reservation before confirming")

        issues = self._occupancy_issues()
        if issues:
            self.notice = issues[0].message
            return SubmissionOutcome(success=False, message=issues[0].message, missing_fields=[])

        outcome = await self.submission.submit(self.draft, self.selected_room, self.pricing)

        # edits are refused while the call is in flight, so only cancel() can intervene
        if self.is_closed:
            logger.warning("wizard_submission_after_cancel", success=outcome.success)
            return outcome

        if outcome.success:
            self.outcome = outcome
            self._closed = "completed"
            logger.info("wizard_completed", booking_id=outcome.booking.id if outcome.booking else None)
        else:
            self.notice = outcome.message

        return outcome
