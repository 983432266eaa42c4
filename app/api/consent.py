"""
Consent documents and standalone consent capture.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.claims import client_details
from app.config import settings
from app.consent.documents import build_documents
from app.consent.recorder import ConsentRecordConflict, ConsentRecorder, ConsentStorageError
from app.dependencies import get_consent_recorder
from app.models.enums import REGISTRATION_CONSENTS, ConsentType
from app.schemas.consent import ConsentDocumentOut, ConsentInput, ConsentRecordResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/consent", tags=["consent"])

# Written only by registration and the claim flow
RESTRICTED_CONSENTS = frozenset(REGISTRATION_CONSENTS) | {ConsentType.POWER_OF_ATTORNEY}


@router.get("/documents", response_model=list[ConsentDocumentOut])
async def list_consent_documents():
    documents = build_documents(settings.CONSENT_DOCUMENT_VERSION)
    return [
        ConsentDocumentOut(
            type=d.type, title=d.title, version=d.version, mandatory=d.mandatory,
            category=d.category, content=d.content,
        )
        for d in documents.values()
    ]


@router.get("/documents/{consent_type}", response_model=ConsentDocumentOut)
async def get_consent_document(consent_type: ConsentType):
    d = build_documents(settings.CONSENT_DOCUMENT_VERSION)[consent_type]
    return ConsentDocumentOut(
        type=d.type, title=d.title, version=d.version, mandatory=d.mandatory,
        category=d.category, content=d.content,
    )


@router.post("/record", response_model=ConsentRecordResponse, status_code=status.HTTP_201_CREATED)
async def record_consent(
    body: ConsentInput,
    request: Request,
    recorder: ConsentRecorder = Depends(get_consent_recorder),
):
    """Record one consent action; the server fills in IP and user agent when absent."""
    if body.consent_type in RESTRICTED_CONSENTS:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{body.consent_type.value} consent cannot be recorded through this endpoint",
        )
    ip_address, user_agent = client_details(request)
    consent = body.model_copy(update={
        "ip_address": body.ip_address or ip_address,
        "user_agent": body.user_agent or user_agent,
    })
    try:
        record_id = recorder.record(consent)
    except ConsentRecordConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ConsentStorageError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not record consent",
        )
    return ConsentRecordResponse(record_id=record_id)
