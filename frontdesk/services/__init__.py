"""Services module."""

from .availability import AvailabilityQueryAdapter, RoomSearchError
from .hotel_api import HotelApiAuthError, HotelApiClient, HotelApiError, HotelApiValidationError
from .hotel_context import HotelContext
from .pricing import calculate_pricing, count_nights, price_draft
from .submission import SubmissionCoordinator, SubmissionOutcome
from .wizard import ReservationWizard, StepResult, ValidationIssue, WizardStep

__all__ = [
    "AvailabilityQueryAdapter",
    "RoomSearchError",
    "HotelApiAuthError",
    "HotelApiClient",
    "HotelApiError",
    "HotelApiValidationError",
    "HotelContext",
    "calculate_pricing",
    "count_nights",
    "price_draft",
    "SubmissionCoordinator",
    "SubmissionOutcome",
    "ReservationWizard",
    "StepResult",
    "ValidationIssue",
    "WizardStep",
]
