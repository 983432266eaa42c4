"""
Power-of-attorney signing endpoints.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from app.api.claims import client_details
from app.claims.service import ClaimNotFound, ClaimsService
from app.consent.recorder import ConsentStorageError
from app.dependencies import get_claims_service
from app.integrations.base import IntegrationError, IntegrationNotConfigured

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/esign", tags=["esign"])


class POARequest(BaseModel):
    claim_id: str


class POASessionResponse(BaseModel):
    envelope_id: str
    signing_url: str
    status: str


class SigningCallback(BaseModel):
    envelope_id: str
    event: str


class CallbackResponse(BaseModel):
    success: bool = True
    poa_signed: bool = False
    claim_id: Optional[str] = None


@router.post("/poa", response_model=POASessionResponse)
async def create_poa(
    body: POARequest,
    service: ClaimsService = Depends(get_claims_service),
):
    try:
        session = await service.request_poa(body.claim_id)
    except ClaimNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Claim not found")
    except IntegrationNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Electronic signature is not available",
        )
    except IntegrationError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to create Power of Attorney document: {e.message}",
        )
    return POASessionResponse(
        envelope_id=session.envelope_id, signing_url=session.signing_url, status=session.status
    )


@router.post("/callback", response_model=CallbackResponse)
async def signing_callback(
    body: SigningCallback,
    request: Request,
    service: ClaimsService = Depends(get_claims_service),
):
    ip_address, user_agent = client_details(request)
    try:
        claim = await service.complete_poa(
            body.envelope_id, body.event, ip_address=ip_address, user_agent=user_agent
        )
    except ClaimNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown envelope")
    except IntegrationError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Callback processing failed: {e.message}",
        )
    except ConsentStorageError as e:
        logger.error("poa_consent_storage_failed", envelope_id=body.envelope_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Callback processing failed",
        )

    if claim is None:
        return CallbackResponse()
    return CallbackResponse(poa_signed=claim.poa_signed, claim_id=claim.claim_id)
