"""Reservation pricing: nights x rate + tax - discount."""

from datetime import date
from decimal import Decimal, InvalidOperation

from frontdesk.models.hotel import AvailableRoom
from frontdesk.models.reservation import DraftReservation, PricingBreakdown

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _non_negative(value: Decimal | int | float | str | None) -> Decimal:
    """Coerce to Decimal, mapping missing, invalid and negative input to 0."""
    if value is None or value == "":
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < ZERO:
        return ZERO
    return amount


def count_nights(check_in: date | None, check_out: date | None) -> int:
    """Whole nights between the dates; 0 when missing or out of order."""
    if check_in is None or check_out is None:
        return 0
    return max(0, (check_out - check_in).days)


def calculate_pricing(
    base_price_per_night: Decimal | int | float | str | None,
    check_in: date | None,
    check_out: date | None,
    tax_rate_percent: Decimal | int | float | str | None = ZERO,
    discount_amount: Decimal | int | float | str | None = ZERO,
) -> PricingBreakdown:
    """
    Price a stay.

    A stay with no valid nights prices at zero; date ordering is validated
    by the wizard, not here. The total never goes below zero even when the
    discount exceeds subtotal plus tax.

    Args:
        base_price_per_night: Room type nightly rate
        check_in: Arrival date
        check_out: Departure date
        tax_rate_percent: Tax rate, e.g. 10 for 10%
        discount_amount: Flat discount subtracted after tax

    Returns:
        PricingBreakdown at full precision
    """
    nights = count_nights(check_in, check_out)
    rate = _non_negative(base_price_per_night)
    tax_rate = _non_negative(tax_rate_percent)
    discount = _non_negative(discount_amount)

    if nights == 0:
        return PricingBreakdown(discount_amount=discount)

    subtotal = rate * nights
    tax_amount = subtotal * tax_rate / HUNDRED
    total = max(ZERO, subtotal + tax_amount - discount)

    return PricingBreakdown(
        nights=nights,
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount,
        total=total,
    )


def price_draft(draft: DraftReservation, room: AvailableRoom | None) -> PricingBreakdown:
    """Project a draft and its selected room into a price breakdown."""
    return calculate_pricing(
        base_price_per_night=room.base_price_per_night if room else ZERO,
        check_in=draft.check_in,
        check_out=draft.check_out,
        tax_rate_percent=draft.tax_rate_percent,
        discount_amount=draft.discount_amount,
    )
