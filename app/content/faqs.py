"""
FAQ lookup and starter content.
"""

from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tables import FaqItem

logger = structlog.get_logger(__name__)

STARTER_FAQS = [
    {
        "question": "How much compensation can I receive?",
        "answer": "Large airlines pay $400 for delays of 3-6 hours, $700 for 6-9 hours and $1000 "
                  "for 9 hours or more. Small airlines pay $125, $250 and $500 for the same delays.",
        "category": "compensation",
    },
    {
        "question": "What does your service cost?",
        "answer": "We charge a 15% commission on successful claims only. If your claim is not "
                  "successful you pay nothing.",
        "category": "fees",
    },
    {
        "question": "Which delays are not eligible?",
        "answer": "Delays caused by extraordinary circumstances outside the airline's control, "
                  "such as weather, air traffic control restrictions, security incidents or "
                  "medical emergencies, are not eligible under APPR.",
        "category": "eligibility",
    },
    {
        "question": "What is a Power of Attorney and do I need one?",
        "answer": "A Power of Attorney lets us collect the compensation from the airline on your "
                  "behalf and transfer your share immediately. Without it, the airline pays you "
                  "and we invoice our commission afterwards.",
        "category": "process",
    },
    {
        "question": "Which documents should I upload?",
        "answer": "Your boarding pass and any airline correspondence about the delay. We accept "
                  "PDF, PNG and JPEG files up to 10 MB each, five files per claim.",
        "category": "process",
    },
]


async def search_faqs(
    session: AsyncSession, search: Optional[str] = None, limit: Optional[int] = None
) -> list[FaqItem]:
    """Active FAQ items by display order, optionally filtered by a case-insensitive substring."""
    query = select(FaqItem).where(FaqItem.is_active.is_(True))
    if search and search.strip():
        term = search.strip()
        query = query.where(
            or_(
                FaqItem.question.icontains(term, autoescape=True),
                FaqItem.answer.icontains(term, autoescape=True),
            )
        )
    query = query.order_by(FaqItem.order, FaqItem.id)
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())


async def seed_faqs(session: AsyncSession) -> int:
    """Insert the starter FAQs into an empty table. Returns the number inserted."""
    existing = (await session.execute(select(func.count(FaqItem.id)))).scalar() or 0
    if existing:
        return 0
    for order, item in enumerate(STARTER_FAQS, 1):
        session.add(FaqItem(order=order, is_active=True, **item))
    await session.flush()
    logger.info("faqs_seeded", count=len(STARTER_FAQS))
    return len(STARTER_FAQS)
