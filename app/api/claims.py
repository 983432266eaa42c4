"""
/api/claims endpoints.
Handles claim submission with documents, lookup and status changes.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from pydantic import ValidationError

from app.claims.service import ClaimNotFound, ClaimResult, ClaimsService, ConsentRequired
from app.claims.uploads import IncomingFile
from app.consent.recorder import ConsentStorageError
from app.dependencies import get_claims_service, require_admin
from app.models.tables import User
from app.rules.status_machine import InvalidStatusTransition
from app.schemas.claims import (
    ClaimActionResponse,
    ClaimCreate,
    ClaimResponse,
    ClaimStatusResponse,
    StatusUpdateRequest,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/claims", tags=["claims"])


def client_details(request: Request) -> tuple[Optional[str], Optional[str]]:
    """Best-effort originating IP and user agent."""
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return ip, request.headers.get("user-agent")


def action_response(result: ClaimResult) -> ClaimActionResponse:
    body = ClaimResponse.model_validate(result.claim).model_dump()
    return ClaimActionResponse(
        **body,
        warnings=result.warnings,
        side_effects=[
            {"name": s.name, "outcome": s.outcome, "detail": s.detail} for s in result.side_effects
        ],
    )


async def incoming_file(upload: UploadFile, max_bytes: int) -> IncomingFile:
    """Read an upload into memory unless its declared size is already over the limit."""
    filename = upload.filename or "document"
    content_type = upload.content_type or ""
    if upload.size is not None and upload.size > max_bytes:
        return IncomingFile(filename, content_type, b"", declared_size=upload.size)
    return IncomingFile(filename, content_type, await upload.read())


@router.post("", response_model=ClaimActionResponse)
async def create_claim(
    request: Request,
    claim: str = Form(..., description="Claim fields as a JSON object"),
    documents: list[UploadFile] = File(default=[]),
    service: ClaimsService = Depends(get_claims_service),
):
    """Submit a claim with up to five supporting documents."""
    try:
        data = ClaimCreate.model_validate_json(claim)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors(include_url=False, include_context=False),
        )

    files = [await incoming_file(upload, service.limits.max_bytes) for upload in documents]
    ip_address, user_agent = client_details(request)

    try:
        result = await service.create_claim(data, files, ip_address=ip_address, user_agent=user_agent)
    except ConsentRequired as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConsentStorageError as e:
        logger.error("claim_consent_storage_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not record consent; the claim was not saved",
        )

    return action_response(result)


@router.get("/status/{claim_id}", response_model=ClaimStatusResponse)
async def get_claim_status(
    claim_id: str,
    service: ClaimsService = Depends(get_claims_service),
):
    try:
        return await service.get_claim(claim_id)
    except ClaimNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Claim not found")


@router.get("/{identifier}", response_model=list[ClaimResponse])
async def get_claims(
    identifier: str,
    service: ClaimsService = Depends(get_claims_service),
):
    """Look up claims by passenger email (all, newest first) or by claim id."""
    return await service.get_claims(identifier)


@router.patch("/{claim_id}/status", response_model=ClaimActionResponse)
async def update_claim_status(
    claim_id: str,
    body: StatusUpdateRequest,
    admin: User = Depends(require_admin),
    service: ClaimsService = Depends(get_claims_service),
):
    return await apply_status_update(service, claim_id, body, admin)


async def apply_status_update(
    service: ClaimsService, claim_id: str, body: StatusUpdateRequest, admin: User
) -> ClaimActionResponse:
    try:
        result = await service.update_status(claim_id, body.status, body.notes)
    except ClaimNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Claim not found")
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(
        "admin_status_change", claim_id=claim_id, status=body.status.value, admin_id=admin.id
    )
    return action_response(result)
