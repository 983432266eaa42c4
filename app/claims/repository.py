"""
Claim and payment queries.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ClaimStatus
from app.models.tables import Claim, Payment

CLAIM_ID_PREFIX = "YUL"


def generate_claim_id(now: Optional[datetime] = None) -> str:
    """Public claim identifier, e.g. YUL-2025-3F9A1C07B2."""
    year = (now or datetime.now(timezone.utc)).year
    return f"{CLAIM_ID_PREFIX}-{year}-{uuid.uuid4().hex[:10].upper()}"


async def add_claim(session: AsyncSession, claim: Claim) -> Claim:
    session.add(claim)
    await session.flush()
    return claim


async def get_claim_by_claim_id(
    session: AsyncSession, claim_id: str, for_update: bool = False
) -> Optional[Claim]:
    query = select(Claim).where(Claim.claim_id == claim_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_claims_by_email(session: AsyncSession, email: str) -> list[Claim]:
    """All claims filed under an email, newest first."""
    result = await session.execute(
        select(Claim)
        .where(func.lower(Claim.email) == email.strip().lower())
        .order_by(Claim.created_at.desc(), Claim.id.desc())
    )
    return list(result.scalars().all())


async def get_claim_by_envelope(session: AsyncSession, envelope_id: str) -> Optional[Claim]:
    result = await session.execute(
        select(Claim).where(Claim.poa_envelope_id == envelope_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def list_claims(
    session: AsyncSession,
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Claim], int]:
    """Admin listing with optional status filter and free-text search."""
    query = select(Claim)
    if status:
        query = query.where(Claim.status == status)
    if search and search.strip():
        term = search.strip()
        query = query.where(
            or_(*(
                column.icontains(term, autoescape=True)
                for column in (Claim.claim_id, Claim.passenger_name, Claim.email, Claim.flight_number)
            ))
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await session.execute(count_query)).scalar() or 0

    result = await session.execute(
        query.order_by(Claim.created_at.desc(), Claim.id.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all()), total


async def all_claims(session: AsyncSession) -> list[Claim]:
    result = await session.execute(select(Claim).order_by(Claim.created_at, Claim.id))
    return list(result.scalars().all())


async def claim_counts(session: AsyncSession) -> dict:
    """Claim totals and the average compensation of paid claims."""
    total = (await session.execute(select(func.count(Claim.id)))).scalar() or 0
    paid_row = (
        await session.execute(
            select(func.count(Claim.id), func.avg(Claim.compensation_amount)).where(
                Claim.status == ClaimStatus.PAID.value
            )
        )
    ).one()
    paid, avg_paid = paid_row
    return {
        "total": total,
        "paid": paid or 0,
        "avg_paid_compensation": Decimal(str(avg_paid)) if avg_paid is not None else None,
    }


async def add_payment(session: AsyncSession, payment: Payment) -> Payment:
    session.add(payment)
    await session.flush()
    return payment


async def list_payments(
    session: AsyncSession, limit: int = 50, offset: int = 0
) -> list[Payment]:
    result = await session.execute(
        select(Payment).order_by(Payment.created_at.desc(), Payment.id.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all())
