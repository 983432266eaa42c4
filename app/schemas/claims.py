"""
Pydantic request/response schemas for the claims endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.enums import (
    ClaimStatus,
    DelayDuration,
    DelayReason,
    IssueType,
    PaymentStatus,
    SideEffectOutcome,
)


# ── Request Schemas ──────────────────────────────────────────

class ClaimCreate(BaseModel):
    """Claim form payload (the ``claim`` field of the multipart request)."""
    passenger_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    flight_number: str = Field(min_length=2, max_length=10)
    flight_date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    airline: Optional[str] = Field(default=None, max_length=100)
    departure_airport: str = Field(min_length=3, max_length=10)
    arrival_airport: str = Field(min_length=3, max_length=10)
    issue_type: IssueType
    delay_duration: Optional[DelayDuration] = None
    delay_reason: Optional[DelayReason] = None
    meal_voucher_amount: Optional[Decimal] = Field(default=None, ge=0)
    poa_requested: bool = False

    @field_validator("passenger_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("passenger name is required")
        return v

    @field_validator("flight_number", "departure_airport", "arrival_airport")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()


class StatusUpdateRequest(BaseModel):
    status: ClaimStatus
    notes: Optional[str] = Field(default=None, max_length=2000)


class CompensationDecision(BaseModel):
    """Admin override of the assessed compensation."""
    compensation_amount: Decimal = Field(ge=0)
    meal_voucher_amount: Optional[Decimal] = Field(default=None, ge=0)


# ── Response Schemas ─────────────────────────────────────────

class StatusHistoryEntry(BaseModel):
    status: ClaimStatus
    timestamp: datetime
    notes: Optional[str] = None


class EligibilityVerdict(BaseModel):
    """Outcome of an eligibility assessment; not a guarantee of payout."""
    is_eligible: bool
    confidence: float = Field(ge=0, le=1)
    reason: str
    compensation_amount: Optional[Decimal] = None
    source: str = "provider"


class SideEffectResultOut(BaseModel):
    name: str
    outcome: SideEffectOutcome
    detail: Optional[str] = None

    model_config = {"from_attributes": True}


class ClaimResponse(BaseModel):
    claim_id: str
    passenger_name: str
    email: str
    flight_number: str
    flight_date: str
    airline: Optional[str] = None
    departure_airport: str
    arrival_airport: str
    issue_type: str
    delay_duration: Optional[str] = None
    delay_reason: Optional[str] = None
    documents_urls: list[str] = []
    status: str
    status_history: list[StatusHistoryEntry] = []
    compensation_amount: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    meal_voucher_amount: Optional[Decimal] = None
    eligibility_validation: Optional[EligibilityVerdict] = None
    poa_requested: bool
    poa_signed: bool
    poa_document_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClaimActionResponse(ClaimResponse):
    """Claim plus what happened to its best-effort side effects."""
    warnings: list[str] = []
    side_effects: list[SideEffectResultOut] = []


class ClaimStatusResponse(BaseModel):
    claim_id: str
    status: str
    status_history: list[StatusHistoryEntry] = []
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClaimListResponse(BaseModel):
    """Paginated claim list for the admin surface."""
    claims: list[ClaimResponse]
    total: int
    limit: int
    offset: int


class PaymentResponse(BaseModel):
    id: int
    claim_id: str
    compensation_amount: Decimal
    commission_amount: Decimal
    net_amount: Decimal
    payment_method: Optional[str] = None
    status: PaymentStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class ClaimStats(BaseModel):
    total_claims: int
    success_rate: int
    avg_compensation: int
    commission_rate: int
