"""
Schemas for FAQ, chatbot and voice-search endpoints.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class FaqOut(BaseModel):
    id: int
    question: str
    answer: str
    category: str
    order: int
    is_active: bool

    model_config = {"from_attributes": True}


class FaqCreate(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=50)
    order: int = 0
    is_active: bool = True


class FaqUpdate(BaseModel):
    question: Optional[str] = Field(default=None, min_length=1)
    answer: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    order: Optional[int] = None
    is_active: Optional[bool] = None


class ChatRequest(BaseModel):
    query: str = Field(min_length=1, max_length=2000)
    context: Optional[str] = Field(default=None, max_length=4000)


class ChatResponse(BaseModel):
    message: str
    is_helpful: bool


class VoiceSearchRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)


class VoiceSearchResponse(BaseModel):
    type: Literal["faq", "chatbot"]
    faqs: list[FaqOut] = []
    response: Optional[str] = None
