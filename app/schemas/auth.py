"""
Pydantic schemas for authentication requests and responses.
Handles login, registration, email verification and password flows.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional

from app.schemas.agent import Agent
from app.schemas.common import APIModel
from app.schemas.user import Admin, User


class LoginRequest(BaseModel):
    """Schema for login requests of any actor type."""

    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., min_length=1, description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class RegisterUserRequest(BaseModel):
    """Schema for property seeker registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    full_name: str = Field(..., min_length=2, max_length=255)
    phone_number: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower().strip()

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()


class RegisterAgentRequest(RegisterUserRequest):
    """Schema for agent applications; agents wait for admin approval."""

    phone_number: str = Field(..., min_length=7, max_length=30)
    license_number: str = Field(..., min_length=1)
    license_state: str = Field(..., min_length=2, max_length=2)
    agency_name: str = Field(..., min_length=1)
    office_address_street: str = Field(..., min_length=1)
    office_address_city: str = Field(..., min_length=1)
    office_address_state: str = Field(..., min_length=2, max_length=2)
    office_address_zip: str = Field(..., min_length=3)
    years_experience: str = Field(..., min_length=1)
    license_document_url: Optional[str] = None
    profile_photo_url: Optional[str] = None
    professional_title: Optional[str] = None
    bio: Optional[str] = None
    specializations: List[str] = Field(default_factory=list)
    service_areas: List[str] = Field(default_factory=list)

    @field_validator("license_state", "office_address_state")
    @classmethod
    def uppercase_state(cls, v):
        return v.strip().upper()


class AuthError(APIModel):
    code: Optional[str] = None
    message: Optional[str] = None


class AuthResponse(APIModel):
    """Login/registration envelope: `{success, token, user|agent|admin, error}`."""

    success: bool = True
    token: Optional[str] = None
    user: Optional[User] = None
    agent: Optional[Agent] = None
    admin: Optional[Admin] = None
    error: Optional[AuthError] = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)
