"""
Support assistant: free-text answers and commission explanations.
Both calls degrade to canned text when the reasoning service fails.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import structlog

from app.integrations.base import IntegrationError
from app.integrations.reasoning import ReasoningClient
from app.integrations.templates import format_money
from app.rules.compensation import CommissionBreakdown

logger = structlog.get_logger(__name__)

FALLBACK_MESSAGE = (
    "I'm experiencing technical difficulties. Please contact our support team for assistance."
)
EMPTY_ANSWER_MESSAGE = "I'm sorry, I couldn't process your question. Please try rephrasing it."

SUPPORT_PROMPT = """You are a helpful AI assistant for a flight compensation service at Montreal-Trudeau (YUL) that charges a {rate}% commission on successful claims.

Key information about our service:
- We charge {rate}% commission only on successful claims
- No upfront fees or hidden costs
- Power of Attorney (POA) allows direct collection and immediate transfer
- Without POA, we invoice after the airline pays the passenger
- We handle Canadian APPR claims for delays, cancellations, and denied boarding
- Compensation ranges from $125 to $1000 CAD

Provide helpful, accurate responses about:
- Commission structure and fees
- Claim process and requirements
- APPR rights and regulations
- Timeline and expectations

Keep responses concise and professional."""

EXPLAINER_PROMPT = (
    "You are a customer service expert explaining commission structures in a clear, friendly manner."
)


@dataclass
class ChatReply:
    message: str
    is_helpful: bool


def _percent(rate: Decimal) -> str:
    return f"{(rate * 100).normalize():f}"


def plain_commission_explanation(breakdown: CommissionBreakdown, rate: Decimal) -> str:
    text = (
        f"For your {format_money(breakdown.gross)} compensation claim, our {_percent(rate)}% "
        f"commission would be {format_money(breakdown.commission)}, leaving you with "
        f"{format_money(breakdown.net)}."
    )
    if breakdown.meal_voucher_deduction:
        text += (
            f" The {format_money(breakdown.meal_voucher_deduction)} meal voucher you received "
            "is deducted before the commission is calculated."
        )
    return text


class ChatAssistant:
    def __init__(self, client: ReasoningClient, commission_rate: Decimal = Decimal("0.15")):
        self.client = client
        self.commission_rate = commission_rate

    async def answer(self, query: str, context: Optional[str] = None) -> ChatReply:
        user = f"Context: {context}\n\nQuestion: {query}" if context else query
        try:
            message = await self.client.complete_text(
                SUPPORT_PROMPT.format(rate=_percent(self.commission_rate)), user, operation="chatbot"
            )
        except IntegrationError as e:
            logger.warning("chatbot_unavailable", error=str(e))
            return ChatReply(message=FALLBACK_MESSAGE, is_helpful=False)
        return ChatReply(message=message.strip() or EMPTY_ANSWER_MESSAGE, is_helpful=True)

    async def explain_commission(self, breakdown: CommissionBreakdown) -> str:
        fallback = plain_commission_explanation(breakdown, self.commission_rate)
        if breakdown.gross <= 0:
            return fallback

        rate = _percent(self.commission_rate)
        prompt = (
            f"Generate a clear, professional explanation of our {rate}% commission structure "
            f"for a compensation claim of {format_money(breakdown.gross)} CAD. Include:\n"
            f"- Total compensation: {format_money(breakdown.gross)}\n"
            f"- Meal voucher deduction: {format_money(breakdown.meal_voucher_deduction)}\n"
            f"- Our commission ({rate}%): {format_money(breakdown.commission)}\n"
            f"- Amount passenger receives: {format_money(breakdown.net)}\n"
            "- Why this fee structure is fair and transparent\n"
            "- What services are included\n\n"
            "Keep it conversational and reassuring."
        )
        try:
            text = await self.client.complete_text(
                EXPLAINER_PROMPT, prompt, operation="explain_commission"
            )
        except IntegrationError as e:
            logger.warning("commission_explanation_unavailable", error=str(e))
            return fallback
        return text.strip() or fallback
