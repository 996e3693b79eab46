"""
Submission-related Pydantic schemas
"""

from datetime import datetime
from typing import List
from pydantic import BaseModel, EmailStr, Field, field_validator


def normalize_email(value: str) -> str:
    """Addresses are stored trimmed and lowercased"""
    return value.strip().lower()


class SubmissionCreate(BaseModel):
    """Participant ranking; checks against the event's options happen in SubmissionValidator"""
    email: EmailStr
    rankings: List[str] = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)


class SubmissionResponse(BaseModel):
    id: str
    email: str
    verified: bool
    submitted_at: datetime
    # False when an earlier ranking was replaced; not part of the payload
    created: bool = Field(True, exclude=True)
