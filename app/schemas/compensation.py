"""
Schemas for the compensation calculator endpoint.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.models.enums import AirlineCategory, DelayReason


class CompensationQuery(BaseModel):
    """A hypothetical delay. Either ``airline`` (name or code) or ``airline_category``."""
    airline: Optional[str] = Field(default=None, max_length=100)
    airline_category: Optional[AirlineCategory] = None
    delay_hours: Decimal = Field(ge=0, le=72)
    delay_reason: DelayReason
    meal_voucher: Optional[Decimal] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _needs_carrier(self):
        if self.airline_category is None and not (self.airline and self.airline.strip()):
            raise ValueError("airline or airline_category is required")
        return self


class CompensationQuote(BaseModel):
    eligible: bool
    reason: str
    airline_category: AirlineCategory
    compensation_amount: Decimal
    meal_voucher_deduction: Decimal
    commission_amount: Decimal
    final_amount: Decimal
    explanation: str
