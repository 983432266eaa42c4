"""
Pydantic schemas for consent capture and audit.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import ConsentCategory, ConsentType


class ConsentInput(BaseModel):
    """One consent action as captured from a form."""
    consent_type: ConsentType
    user_email: EmailStr
    user_name: str = Field(min_length=1, max_length=200)
    claim_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    document_version: str = "1.0"
    agreed: bool


class ConsentRecord(ConsentInput):
    """Stored snapshot; never mutated after it is written."""
    timestamp: datetime
    filename: str
    recorded_at: datetime
    document_path: str


class ConsentValidation(BaseModel):
    valid: bool
    missing: list[ConsentType]
    records: list[ConsentRecord] = []


class ConsentDocumentOut(BaseModel):
    type: ConsentType
    title: str
    version: str
    mandatory: bool
    category: ConsentCategory
    content: str


class ConsentRecordResponse(BaseModel):
    record_id: str
    message: str = "Consent recorded"
