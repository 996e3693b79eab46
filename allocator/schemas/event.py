"""
Event-related Pydantic schemas
"""

from typing import Optional, List, Literal
from pydantic import BaseModel, Field, field_validator

class OptionCreate(BaseModel):
    """One option in an event creation request"""
    name: str
    description: Optional[str] = None
    capacity: int = Field(1, ge=1)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Each option must have a name")
        return value

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

class EventCreate(BaseModel):
    """Schema for creating an event"""
    title: str
    description: Optional[str] = None
    email_verification: bool = False
    options: List[OptionCreate] = Field(..., min_length=1)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

class EventCreated(BaseModel):
    """Returned once at creation; the only time admin_token is visible"""
    id: str
    join_code: str
    admin_token: str
    admin_url: str

class StatusUpdate(BaseModel):
    """Admin status change; allocated is reachable only through allocation"""
    status: Literal["open", "closed"]
