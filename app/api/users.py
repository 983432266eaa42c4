"""
Registration and first-admin setup.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.claims import client_details
from app.config import settings
from app.consent.recorder import ConsentRecorder, ConsentStorageError
from app.dependencies import get_consent_recorder, get_db, verify_api_key
from app.models.enums import ADMIN_ROLES, REGISTRATION_CONSENTS, ConsentType, UserRole
from app.models.tables import User
from app.schemas.consent import ConsentInput
from app.schemas.users import (
    RegistrationRequest,
    RegistrationResponse,
    SetupAdminRequest,
    UserResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["users"])


async def find_user(session: AsyncSession, email: str):
    result = await session.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


@router.post("/register", response_model=RegistrationResponse)
async def register(
    body: RegistrationRequest,
    request: Request,
    session: AsyncSession = Depends(get_db),
    recorder: ConsentRecorder = Depends(get_consent_recorder),
):
    """Create an account and one consent record per agreement."""
    accepted = {
        ConsentType.TERMS: body.terms_accepted,
        ConsentType.PRIVACY: body.privacy_accepted,
        ConsentType.DATA_RETENTION: body.data_retention_accepted,
    }
    missing = [t.value for t in REGISTRATION_CONSENTS if not accepted[t]]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Required consents not accepted: {', '.join(missing)}",
        )

    if await find_user(session, body.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email already exists",
        )

    user = User(
        email=str(body.email).lower(),
        first_name=body.first_name.strip(),
        last_name=body.last_name.strip(),
        role=UserRole.USER.value,
        terms_accepted=True,
        privacy_accepted=True,
        data_retention_accepted=True,
        marketing_consent=body.marketing_consent,
    )
    session.add(user)
    await session.flush()

    ip_address, user_agent = client_details(request)

    def consent(consent_type: ConsentType, agreed: bool) -> ConsentInput:
        return ConsentInput(
            consent_type=consent_type,
            user_email=body.email,
            user_name=f"{user.first_name} {user.last_name}",
            ip_address=ip_address,
            user_agent=user_agent,
            document_version=settings.CONSENT_DOCUMENT_VERSION,
            agreed=agreed,
        )

    try:
        records = recorder.record_required_batch(
            [consent(consent_type, True) for consent_type in REGISTRATION_CONSENTS]
        )
    except ConsentStorageError as e:
        await session.rollback()
        logger.error("registration_consent_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not record consent; registration was not completed",
        )

    marketing = recorder.record_optional(consent(ConsentType.MARKETING, body.marketing_consent))
    if marketing:
        records.append(marketing)

    logger.info("user_registered", user_id=user.id, marketing=body.marketing_consent)
    return RegistrationResponse(user=UserResponse.model_validate(user), consent_records=records)


@router.post("/setup-admin", response_model=UserResponse, dependencies=[Depends(verify_api_key)])
async def setup_admin(
    body: SetupAdminRequest,
    session: AsyncSession = Depends(get_db),
):
    """Promote an existing account to senior admin while no admin exists yet."""
    admins = (
        await session.execute(select(func.count(User.id)).where(User.role.in_(ADMIN_ROLES)))
    ).scalar() or 0
    if admins:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="An administrator already exists",
        )

    user = await find_user(session, body.email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    user.role = UserRole.SENIOR_ADMIN.value
    await session.flush()
    logger.info("first_admin_created", user_id=user.id)
    return UserResponse.model_validate(user)
