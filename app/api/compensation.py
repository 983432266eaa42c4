"""
Commission calculator for hypothetical delays.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from app.config import settings
from app.content.assistant import ChatAssistant
from app.dependencies import get_assistant
from app.rules.airlines import lookup_airline
from app.rules.compensation import compute_commission, compute_compensation
from app.schemas.compensation import CompensationQuery, CompensationQuote

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["compensation"])


@router.post("/calculate-compensation", response_model=CompensationQuote)
async def calculate_compensation(
    query: CompensationQuery,
    assistant: ChatAssistant = Depends(get_assistant),
):
    category = query.airline_category
    if category is None:
        airline = lookup_airline(query.airline)
        if airline is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown airline: {query.airline}",
            )
        category = airline.category

    result = compute_compensation(category, query.delay_hours, query.delay_reason)
    breakdown = compute_commission(
        result.amount, query.meal_voucher if result.eligible else None, settings.COMMISSION_RATE
    )
    explanation = await assistant.explain_commission(breakdown)

    logger.info(
        "compensation_calculated",
        airline_category=category.value,
        eligible=result.eligible,
        amount=str(result.amount),
    )
    return CompensationQuote(
        eligible=result.eligible,
        reason=result.reason,
        airline_category=category,
        compensation_amount=breakdown.gross,
        meal_voucher_deduction=breakdown.meal_voucher_deduction,
        commission_amount=breakdown.commission,
        final_amount=breakdown.net,
        explanation=explanation,
    )
