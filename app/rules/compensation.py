"""
APPR compensation rule table and commission calculator.

Both functions are pure: identical input always yields identical output.
Amounts are Decimal CAD; commission is rounded half-up to whole dollars.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from app.models.enums import AirlineCategory, DelayDuration, DelayReason

Number = Union[int, float, Decimal, str]

MINIMUM_DELAY_HOURS = 3
COMMISSION_RATE = Decimal("0.15")

# (category) -> payout per band: [3,6), [6,9), [9,inf)
COMPENSATION_TABLE: dict[AirlineCategory, tuple[Decimal, Decimal, Decimal]] = {
    AirlineCategory.LARGE: (Decimal("400"), Decimal("700"), Decimal("1000")),
    AirlineCategory.SMALL: (Decimal("125"), Decimal("250"), Decimal("500")),
}

# code -> (compensable, label)
DELAY_REASONS: dict[DelayReason, tuple[bool, str]] = {
    DelayReason.MAINTENANCE_NON_SAFETY: (True, "Maintenance Issues (Non-Safety)"),
    DelayReason.CREW_SCHEDULING: (True, "Crew Scheduling Problems"),
    DelayReason.OVERBOOKING: (True, "Overbooking or Boarding Issues"),
    DelayReason.OPERATIONAL_DECISIONS: (True, "Operational Decisions"),
    DelayReason.IT_FAILURE: (True, "IT System Failures"),
    DelayReason.GROUND_HANDLING: (True, "Ground Handling Delays"),
    DelayReason.FUELING_DEICING: (True, "Fueling or De-Icing Delays (Non-Weather)"),
    DelayReason.WEATHER: (False, "Weather Conditions"),
    DelayReason.ATC: (False, "Air Traffic Control (ATC) Restrictions"),
    DelayReason.SECURITY: (False, "Security Incidents"),
    DelayReason.AIRPORT_FAILURE: (False, "Airport Operational Issues"),
    DelayReason.SAFETY_MAINTENANCE: (False, "Safety-Related Maintenance"),
    DelayReason.THIRD_PARTY_STRIKES: (False, "Third-Party Strikes"),
    DelayReason.GOVERNMENT_DELAYS: (False, "Government or Regulatory Delays"),
    DelayReason.MEDICAL_EMERGENCIES: (False, "Medical Emergencies"),
    DelayReason.CYBERATTACKS: (False, "Cyberattacks"),
}

EXTRAORDINARY_REASONS = frozenset(code for code, (valid, _) in DELAY_REASONS.items() if not valid)

_BUCKET_HOURS = {
    DelayDuration.THREE_TO_SIX: 3,
    DelayDuration.SIX_TO_NINE: 6,
    DelayDuration.NINE_PLUS: 9,
}

REASON_BELOW_THRESHOLD = "delay below minimum threshold."
REASON_EXTRAORDINARY = "extraordinary circumstances."


@dataclass(frozen=True)
class CompensationResult:
    eligible: bool
    amount: Decimal
    reason: str


@dataclass(frozen=True)
class CommissionBreakdown:
    gross: Decimal
    meal_voucher_deduction: Decimal
    base: Decimal
    commission: Decimal
    net: Decimal


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() avoids binary float artefacts (0.1 -> 0.1000000000000000055...)
    return Decimal(str(value))


def is_delay_reason_valid(code: Union[str, DelayReason]) -> bool:
    """True when the reason is within airline control (compensable)."""
    reason = DelayReason(code)
    return DELAY_REASONS[reason][0]


def delay_reason_label(code: Union[str, DelayReason]) -> str:
    return DELAY_REASONS[DelayReason(code)][1]


def delay_bucket_hours(bucket: Union[str, DelayDuration]) -> int:
    """Lower bound, in hours, of a delay bucket such as "6-9"."""
    return _BUCKET_HOURS[DelayDuration(bucket)]


def table_amount(airline_category: Union[str, AirlineCategory], delay_hours: Number) -> Decimal:
    """Regulated payout for a delay of at least three hours."""
    short, medium, long_ = COMPENSATION_TABLE[AirlineCategory(airline_category)]
    hours = _to_decimal(delay_hours)
    if hours >= 9:
        return long_
    if hours >= 6:
        return medium
    return short


def compute_compensation(
    airline_category: Union[str, AirlineCategory],
    delay_hours: Number,
    delay_reason_code: Union[str, DelayReason],
) -> CompensationResult:
    """
    Look up the APPR payout for a delay.

    Raises ValueError for an unknown category or reason code.
    """
    category = AirlineCategory(airline_category)
    reason = DelayReason(delay_reason_code)
    hours = _to_decimal(delay_hours)

    if hours < MINIMUM_DELAY_HOURS:
        return CompensationResult(False, Decimal("0"), REASON_BELOW_THRESHOLD)

    if reason in EXTRAORDINARY_REASONS:
        return CompensationResult(False, Decimal("0"), REASON_EXTRAORDINARY)

    return CompensationResult(
        True, table_amount(category, hours), f"Eligible for compensation under {category.value} airline rules"
    )


def compute_commission(
    amount: Number,
    meal_voucher: Optional[Number] = None,
    rate: Decimal = COMMISSION_RATE,
) -> CommissionBreakdown:
    """
    Split a payout into (commission, net).

    A meal-voucher value is deducted first, floored at zero.
    Negative amounts are rejected with ValueError.
    """
    gross = _to_decimal(amount)
    if gross < 0:
        raise ValueError(f"Compensation amount cannot be negative: {gross}")

    voucher = _to_decimal(meal_voucher) if meal_voucher is not None else Decimal("0")
    if voucher < 0:
        raise ValueError(f"Meal voucher value cannot be negative: {voucher}")

    base = max(Decimal("0"), gross - voucher)
    commission = (base * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return CommissionBreakdown(
        gross=gross,
        meal_voucher_deduction=gross - base,
        base=base,
        commission=commission,
        net=base - commission,
    )
