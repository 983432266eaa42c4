"""
Public content: FAQs, support chatbot, voice search and landing-page stats.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.claims.service import ClaimsService
from app.content.assistant import FALLBACK_MESSAGE, ChatAssistant
from app.content.faqs import search_faqs
from app.dependencies import get_assistant, get_claims_service, get_db
from app.schemas.claims import ClaimStats
from app.schemas.content import (
    ChatRequest,
    ChatResponse,
    FaqOut,
    VoiceSearchRequest,
    VoiceSearchResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["content"])

VOICE_SEARCH_MAX_FAQS = 3


@router.get("/faqs", response_model=list[FaqOut])
async def list_faqs(
    search: Optional[str] = Query(None, max_length=200),
    session: AsyncSession = Depends(get_db),
):
    return await search_faqs(session, search)


@router.post("/chatbot", response_model=ChatResponse)
async def chatbot(
    body: ChatRequest,
    assistant: ChatAssistant = Depends(get_assistant),
):
    try:
        reply = await assistant.answer(body.query, body.context)
    except Exception as e:
        logger.exception("chatbot_error", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": FALLBACK_MESSAGE, "is_helpful": False},
        )
    return ChatResponse(message=reply.message, is_helpful=reply.is_helpful)


@router.post("/voice-search", response_model=VoiceSearchResponse)
async def voice_search(
    body: VoiceSearchRequest,
    session: AsyncSession = Depends(get_db),
    assistant: ChatAssistant = Depends(get_assistant),
):
    """FAQ matches for a transcribed query; the chatbot answers when none match."""
    faqs = await search_faqs(session, body.query, limit=VOICE_SEARCH_MAX_FAQS)
    if faqs:
        return VoiceSearchResponse(type="faq", faqs=[FaqOut.model_validate(f) for f in faqs])

    reply = await assistant.answer(body.query)
    return VoiceSearchResponse(type="chatbot", response=reply.message)


@router.get("/stats", response_model=ClaimStats)
async def stats(service: ClaimsService = Depends(get_claims_service)):
    return await service.stats()
