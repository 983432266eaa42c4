"""
Schemas for registration and admin user management.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import UserRole


class RegistrationRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    terms_accepted: bool
    privacy_accepted: bool
    data_retention_accepted: bool
    marketing_consent: bool = False


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    terms_accepted: bool
    privacy_accepted: bool
    data_retention_accepted: bool
    marketing_consent: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationResponse(BaseModel):
    user: UserResponse
    consent_records: list[str]
    message: str = "Registration complete"


class RoleUpdateRequest(BaseModel):
    role: UserRole


class SetupAdminRequest(BaseModel):
    email: EmailStr


class ErasureResponse(BaseModel):
    user_id: int
    claims_updated: int
    message: str = "Identity fields erased; claim records retained"
