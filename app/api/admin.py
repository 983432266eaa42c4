"""
/api/admin endpoints.
Claims review, user roles, identity erasure, payments, consent audit and FAQ content.
"""

import hashlib
from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.claims import apply_status_update
from app.claims import repository
from app.claims.service import ClaimNotFound, ClaimsService, ClaimValidationError
from app.consent.recorder import ConsentRecorder, ConsentStorageError
from app.dependencies import (
    get_claims_service,
    get_consent_recorder,
    get_db,
    require_admin,
    require_senior_admin,
)
from app.integrations.spreadsheet import XLSX_MEDIA_TYPE, build_claims_workbook
from app.models.enums import ClaimStatus, UserRole
from app.models.tables import Claim, FaqItem, User
from app.schemas.claims import (
    ClaimActionResponse,
    ClaimListResponse,
    ClaimResponse,
    CompensationDecision,
    PaymentResponse,
    StatusUpdateRequest,
)
from app.schemas.consent import ConsentRecord
from app.schemas.content import FaqCreate, FaqOut, FaqUpdate
from app.schemas.users import ErasureResponse, RoleUpdateRequest, UserResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

ERASED_NAME = "ERASED"
ERASED_DOMAIN = "erased.invalid"


def erased_email(email: str) -> str:
    """Stable placeholder: the same address always erases to the same value."""
    digest = hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()[:16]
    return f"erased-{digest}@{ERASED_DOMAIN}"


# ── Claims ───────────────────────────────────────────────────

@router.get("/claims", response_model=ClaimListResponse)
async def list_claims(
    status_filter: Optional[ClaimStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=200),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    claims, total = await repository.list_claims(
        session,
        status=status_filter.value if status_filter else None,
        search=search,
        limit=limit,
        offset=offset,
    )
    return ClaimListResponse(
        claims=[ClaimResponse.model_validate(c) for c in claims],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/claims/export/xlsx")
async def export_claims(
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    """Every claim as an Excel workbook."""
    claims = await repository.all_claims(session)
    content = build_claims_workbook(claims)
    logger.info("claims_exported", count=len(claims), admin_id=admin.id)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="claims.xlsx"'},
    )


@router.patch("/claims/{claim_id}/status", response_model=ClaimActionResponse)
async def update_claim_status(
    claim_id: str,
    body: StatusUpdateRequest,
    admin: User = Depends(require_admin),
    service: ClaimsService = Depends(get_claims_service),
):
    return await apply_status_update(service, claim_id, body, admin)


@router.patch("/claims/{claim_id}/compensation", response_model=ClaimResponse)
async def set_compensation(
    claim_id: str,
    body: CompensationDecision,
    admin: User = Depends(require_admin),
    service: ClaimsService = Depends(get_claims_service),
):
    try:
        claim = await service.apply_admin_decision(
            claim_id, body.compensation_amount, body.meal_voucher_amount
        )
    except ClaimNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Claim not found")
    except ClaimValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info("admin_compensation_set", claim_id=claim_id, admin_id=admin.id)
    return claim


# ── Users ────────────────────────────────────────────────────

@router.get("/users", response_model=list[UserResponse])
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    result = await session.execute(
        select(User).order_by(User.created_at, User.id).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


async def _get_user(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: int,
    body: RoleUpdateRequest,
    admin: User = Depends(require_senior_admin),
    session: AsyncSession = Depends(get_db),
):
    user = await _get_user(session, user_id)
    if user.id == admin.id and body.role != UserRole.SENIOR_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Senior admins cannot demote themselves",
        )
    previous = user.role
    user.role = body.role.value
    await session.flush()
    logger.info(
        "user_role_changed", user_id=user.id, from_role=previous, to_role=user.role, admin_id=admin.id
    )
    return user


@router.post("/users/{user_id}/erase", response_model=ErasureResponse)
async def erase_user_identity(
    user_id: int,
    admin: User = Depends(require_senior_admin),
    session: AsyncSession = Depends(get_db),
):
    """
    Erase name and email from an account and its claims.
    Claims themselves are retained; consent records are kept as legal proof.
    """
    user = await _get_user(session, user_id)
    if user.id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot erase their own account",
        )

    original_email = user.email
    placeholder = erased_email(original_email)
    result = await session.execute(
        update(Claim)
        .where(func.lower(Claim.email) == original_email.lower())
        .values(passenger_name=ERASED_NAME, email=placeholder)
        .execution_options(synchronize_session=False)
    )

    user.first_name = ERASED_NAME
    user.last_name = ERASED_NAME
    user.email = placeholder
    user.marketing_consent = False
    await session.flush()

    logger.info(
        "user_identity_erased", user_id=user.id, claims_updated=result.rowcount, admin_id=admin.id
    )
    return ErasureResponse(user_id=user.id, claims_updated=result.rowcount or 0)


# ── Payments ─────────────────────────────────────────────────

@router.get("/payments", response_model=list[PaymentResponse])
async def list_payments(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    return await repository.list_payments(session, limit=limit, offset=offset)


# ── Consent audit ────────────────────────────────────────────

@router.get("/consents", response_model=list[ConsentRecord])
async def export_consents(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    admin: User = Depends(require_admin),
    recorder: ConsentRecorder = Depends(get_consent_recorder),
):
    try:
        return recorder.export(start, end)
    except ConsentStorageError as e:
        logger.error("consent_export_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Consent records unreadable"
        )


@router.get("/consents/{email}", response_model=list[ConsentRecord])
async def consent_audit_trail(
    email: str,
    admin: User = Depends(require_admin),
    recorder: ConsentRecorder = Depends(get_consent_recorder),
):
    try:
        return recorder.audit_trail(email)
    except ConsentStorageError as e:
        logger.error("consent_audit_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Consent records unreadable"
        )


# ── FAQ content ──────────────────────────────────────────────

async def _get_faq(session: AsyncSession, faq_id: int) -> FaqItem:
    faq = await session.get(FaqItem, faq_id)
    if faq is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="FAQ not found")
    return faq


@router.post("/faqs", response_model=FaqOut, status_code=status.HTTP_201_CREATED)
async def create_faq(
    body: FaqCreate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    faq = FaqItem(**body.model_dump())
    session.add(faq)
    await session.flush()
    return faq


@router.patch("/faqs/{faq_id}", response_model=FaqOut)
async def update_faq(
    faq_id: int,
    body: FaqUpdate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    faq = await _get_faq(session, faq_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(faq, key, value)
    await session.flush()
    return faq


@router.delete("/faqs/{faq_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_faq(
    faq_id: int,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    """Soft delete: the item is hidden, not removed."""
    faq = await _get_faq(session, faq_id)
    faq.is_active = False
    await session.flush()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
