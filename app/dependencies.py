"""
FastAPI dependency injection.
Provides DB sessions, artifact stores, external collaborators, the claims
service, API key validation and admin role guards.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.claims.eligibility import EligibilityAssessor
from app.claims.service import ClaimsService, UploadLimits
from app.config import settings
from app.consent.recorder import ConsentRecorder
from app.content.assistant import ChatAssistant
from app.integrations.crm import AirtableClient
from app.integrations.email import EmailNotifier, SmtpConfig
from app.integrations.esign import DocuSignClient
from app.integrations.reasoning import ReasoningClient
from app.models.database import get_session
from app.models.enums import ADMIN_ROLES, UserRole
from app.models.tables import User
from app.storage.artifact_store import ArtifactStore


# ── Singleton instances ──────────────────────────────────────
_upload_store: Optional[ArtifactStore] = None
_consent_store: Optional[ArtifactStore] = None
_reasoning_client: Optional[ReasoningClient] = None
_docusign_client: Optional[DocuSignClient] = None


def get_upload_store() -> ArtifactStore:
    global _upload_store
    if _upload_store is None:
        _upload_store = ArtifactStore(settings.UPLOAD_ROOT)
    return _upload_store


def get_consent_store() -> ArtifactStore:
    global _consent_store
    if _consent_store is None:
        _consent_store = ArtifactStore(settings.CONSENT_RECORDS_ROOT)
    return _consent_store


def get_consent_recorder(store: ArtifactStore = Depends(get_consent_store)) -> ConsentRecorder:
    return ConsentRecorder(store, settings.CONSENT_DOCUMENTS_ROOT)


def get_reasoning_client() -> ReasoningClient:
    global _reasoning_client
    if _reasoning_client is None:
        _reasoning_client = ReasoningClient(
            settings.OPENAI_API_KEY, settings.OPENAI_MODEL, settings.OPENAI_TIMEOUT_SECONDS
        )
    return _reasoning_client


def get_assessor(client: ReasoningClient = Depends(get_reasoning_client)) -> EligibilityAssessor:
    return EligibilityAssessor(client)


def get_assistant(client: ReasoningClient = Depends(get_reasoning_client)) -> ChatAssistant:
    return ChatAssistant(client, settings.COMMISSION_RATE)


def get_notifier() -> EmailNotifier:
    return EmailNotifier(
        SmtpConfig(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            from_name=settings.EMAIL_FROM_NAME,
        ),
        payment_instructions=settings.BILLING_PAYMENT_INSTRUCTIONS,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


def get_crm() -> AirtableClient:
    return AirtableClient(
        settings.AIRTABLE_API_KEY,
        settings.AIRTABLE_BASE_ID,
        settings.AIRTABLE_API_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


def get_esign() -> DocuSignClient:
    # Shared so the OAuth token survives between requests
    global _docusign_client
    if _docusign_client is None:
        _docusign_client = DocuSignClient(
            settings.DOCUSIGN_CLIENT_ID,
            settings.DOCUSIGN_CLIENT_SECRET,
            settings.DOCUSIGN_ACCOUNT_ID,
            environment=settings.DOCUSIGN_ENVIRONMENT,
            return_url=f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/esign/callback",
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    return _docusign_client


async def get_db() -> AsyncSession:
    """Yield an async DB session."""
    async for session in get_session():
        yield session


def get_claims_service(
    session: AsyncSession = Depends(get_db),
    assessor: EligibilityAssessor = Depends(get_assessor),
    notifier: EmailNotifier = Depends(get_notifier),
    crm: AirtableClient = Depends(get_crm),
    esign: DocuSignClient = Depends(get_esign),
    consent: ConsentRecorder = Depends(get_consent_recorder),
    uploads: ArtifactStore = Depends(get_upload_store),
) -> ClaimsService:
    return ClaimsService(
        session=session,
        assessor=assessor,
        notifier=notifier,
        crm=crm,
        esign=esign,
        consent=consent,
        uploads=uploads,
        limits=UploadLimits(
            allowed_types=tuple(settings.ALLOWED_MIME_TYPES.split(",")),
            max_bytes=settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024,
            max_files=settings.MAX_FILES_PER_CLAIM,
        ),
        commission_rate=settings.COMMISSION_RATE,
        require_registration_consent=settings.REQUIRE_REGISTRATION_CONSENT,
        consent_document_version=settings.CONSENT_DOCUMENT_VERSION,
    )


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    if settings.API_KEY is None:
        return None

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key


async def require_admin(
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    _api_key: Optional[str] = Depends(verify_api_key),
    session: AsyncSession = Depends(get_db),
) -> User:
    """The acting user, who must hold an admin role."""
    if not x_user_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Email header",
        )
    result = await session.execute(
        select(User).where(func.lower(User.email) == x_user_email.strip().lower())
    )
    user = result.scalar_one_or_none()
    if user is None or user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


async def require_senior_admin(user: User = Depends(require_admin)) -> User:
    if user.role != UserRole.SENIOR_ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Senior admin access required",
        )
    return user
