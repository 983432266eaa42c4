"""
Eligibility assessor.

Asks the reasoning service whether a claim qualifies under APPR. The rule
table is consulted twice: claims it already rules out never reach the
provider, and for eligible claims with a known carrier size and delay
bucket the regulated amount replaces the provider's estimate.

assess() never raises. Any failure yields FALLBACK_REASON with zero
confidence so claim creation can carry on without a verdict.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from app.integrations.reasoning import ReasoningClient
from app.models.enums import AirlineCategory, DelayDuration, DelayReason
from app.models.tables import Claim
from app.observability.metrics import eligibility_verdicts_total
from app.rules.airlines import category_for_flight
from app.rules.compensation import compute_compensation, delay_bucket_hours, table_amount
from app.schemas.claims import EligibilityVerdict

logger = structlog.get_logger(__name__)

FALLBACK_REASON = "validation error"

SOURCE_RULES = "rules"
SOURCE_PROVIDER = "provider"
SOURCE_FALLBACK = "fallback"

SYSTEM_PROMPT = (
    "You are an expert in Canadian Air Passenger Protection Regulations (APPR). "
    "Analyze flight compensation claims for eligibility and provide accurate "
    "assessments. Respond with JSON in the specified format."
)

NOT_SPECIFIED = "Not specified"


@dataclass(frozen=True)
class FlightFacts:
    flight_number: str
    flight_date: str
    departure_airport: str
    arrival_airport: str
    issue_type: str
    delay_duration: Optional[str] = None
    delay_reason: Optional[str] = None
    airline: Optional[str] = None

    @classmethod
    def from_claim(cls, claim: Claim) -> "FlightFacts":
        return cls(
            flight_number=claim.flight_number,
            flight_date=claim.flight_date,
            departure_airport=claim.departure_airport,
            arrival_airport=claim.arrival_airport,
            issue_type=claim.issue_type,
            delay_duration=claim.delay_duration,
            delay_reason=claim.delay_reason,
            airline=claim.airline,
        )

    @property
    def airline_category(self) -> Optional[AirlineCategory]:
        return category_for_flight(self.flight_number, self.airline)


def build_eligibility_prompt(facts: FlightFacts) -> str:
    """Deterministic prompt: fixed field order, absent fields spelled out."""
    return f"""Analyze this flight compensation claim for eligibility under Canadian APPR (Air Passenger Protection Regulations):

Flight Details:
- Flight: {facts.flight_number}
- Airline: {facts.airline or NOT_SPECIFIED}
- Date: {facts.flight_date}
- Route: {facts.departure_airport} to {facts.arrival_airport}
- Issue: {facts.issue_type}
- Delay Duration: {facts.delay_duration or NOT_SPECIFIED}
- Reason: {facts.delay_reason or NOT_SPECIFIED}

Evaluate eligibility based on APPR criteria:
1. Flight must be within/to/from Canada
2. Delay/cancellation must be within airline control
3. Minimum delay thresholds apply
4. Weather and extraordinary circumstances are excluded

Provide assessment in JSON format with:
- isEligible: boolean
- confidence: number (0-1)
- reason: detailed explanation
- compensationAmount: estimated CAD amount if eligible"""


def fallback_verdict() -> EligibilityVerdict:
    return EligibilityVerdict(
        is_eligible=False, confidence=0.0, reason=FALLBACK_REASON, source=SOURCE_FALLBACK
    )


def _clamp(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if confidence != confidence:  # NaN
        return 0.0
    return max(0.0, min(1.0, confidence))


def _amount(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() and amount > 0 else None


class EligibilityAssessor:
    def __init__(self, client: ReasoningClient):
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client.configured

    def rule_verdict(self, facts: FlightFacts) -> Optional[EligibilityVerdict]:
        """A definite 'not eligible' from the rule table, or None when undecided."""
        if not facts.delay_duration or not facts.delay_reason:
            return None
        try:
            hours = delay_bucket_hours(DelayDuration(facts.delay_duration))
            result = compute_compensation(
                facts.airline_category or AirlineCategory.LARGE,
                hours,
                DelayReason(facts.delay_reason),
            )
        except ValueError:
            return None
        if result.eligible:
            return None
        return EligibilityVerdict(
            is_eligible=False, confidence=1.0, reason=result.reason, source=SOURCE_RULES
        )

    def _parse(self, facts: FlightFacts, data: dict) -> EligibilityVerdict:
        is_eligible = data.get("isEligible") is True
        amount = _amount(data.get("compensationAmount")) if is_eligible else None

        category = facts.airline_category
        if is_eligible and category and facts.delay_duration:
            try:
                amount = table_amount(category, delay_bucket_hours(facts.delay_duration))
            except ValueError:
                pass

        reason = data.get("reason")
        return EligibilityVerdict(
            is_eligible=is_eligible,
            confidence=_clamp(data.get("confidence")),
            reason=reason if isinstance(reason, str) and reason else "Unable to determine eligibility",
            compensation_amount=amount,
            source=SOURCE_PROVIDER,
        )

    async def assess(self, facts: FlightFacts) -> EligibilityVerdict:
        verdict = self.rule_verdict(facts)
        if verdict is None:
            try:
                data = await self.client.complete_json(
                    SYSTEM_PROMPT, build_eligibility_prompt(facts), operation="assess_eligibility"
                )
                verdict = self._parse(facts, data)
            except Exception as e:
                logger.warning(
                    "eligibility_assessment_failed",
                    flight_number=facts.flight_number,
                    error=str(e),
                )
                verdict = fallback_verdict()

        eligibility_verdicts_total.labels(
            eligible=str(verdict.is_eligible).lower(), source=verdict.source
        ).inc()
        logger.info(
            "eligibility_assessed",
            flight_number=facts.flight_number,
            eligible=verdict.is_eligible,
            confidence=verdict.confidence,
            source=verdict.source,
        )
        return verdict
