"""
Pydantic schemas for inquiries and agent replies.
"""

from enum import Enum
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional

from app.schemas.common import APIModel, coerce_list


class InquiryStatus(str, Enum):
    NEW = "new"
    RESPONDED = "responded"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CLOSED = "closed"


INQUIRY_STATUSES = [s.value for s in InquiryStatus]


class InquiryReply(APIModel):
    reply_id: Optional[str] = None
    inquiry_id: Optional[str] = None
    message: str
    created_at: Optional[str] = None


class Inquiry(APIModel):
    """Inquiry as listed for users and agents."""

    inquiry_id: str
    property_id: Optional[str] = None
    agent_id: Optional[str] = None
    user_id: Optional[str] = None
    inquirer_name: str = ""
    inquirer_email: str = ""
    inquirer_phone: Optional[str] = None
    message: str = ""
    viewing_requested: bool = False
    preferred_viewing_date: Optional[str] = None
    preferred_viewing_time: Optional[str] = None
    status: InquiryStatus = InquiryStatus.NEW
    agent_read: bool = False
    replies: List[InquiryReply] = Field(default_factory=list)
    property_title: Optional[str] = None
    agent_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("replies", mode="before")
    @classmethod
    def validate_replies(cls, v):
        return coerce_list(v)


class InquiryCreate(BaseModel):
    """Inquiry submitted from a property page, agent profile or the contact page."""

    property_id: Optional[str] = None
    agent_id: Optional[str] = None
    user_id: Optional[str] = None
    inquirer_name: str = Field(..., min_length=2, max_length=255)
    inquirer_email: EmailStr
    inquirer_phone: Optional[str] = Field(None, max_length=30)
    message: str = Field(..., min_length=10, max_length=5000)
    viewing_requested: bool = False
    preferred_viewing_date: Optional[str] = None
    preferred_viewing_time: Optional[str] = None

    @field_validator("inquirer_name", "message")
    @classmethod
    def strip_text(cls, v):
        return v.strip()


class InquiryReplyCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)
    include_signature: bool = True
