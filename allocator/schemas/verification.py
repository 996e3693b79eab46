"""
Email verification schemas
"""

from typing import Optional, Union
from pydantic import BaseModel, EmailStr, field_validator

from .submission import normalize_email


class VerifyRequest(BaseModel):
    """Either ``{email}`` to request a code or ``{submission_id, code}`` to confirm one"""
    email: Optional[EmailStr] = None
    submission_id: Optional[str] = None
    code: Optional[Union[str, int]] = None

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) if value is not None else None

    @property
    def is_request(self) -> bool:
        return bool(self.email) and not self.submission_id

    @property
    def is_confirm(self) -> bool:
        return bool(self.submission_id) and self.code is not None and str(self.code).strip() != ""


class VerificationIssued(BaseModel):
    """Opaque handle for the pending submission; never carries the code"""
    submission_id: str


class VerificationConfirmed(BaseModel):
    verified: bool = True
