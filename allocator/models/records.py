"""
Storage-neutral records returned by the repositories.

Both the SQLAlchemy and the Firestore repository hand these to the
services, so domain logic never sees ORM rows or Firestore documents.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class EventRecord:
    id: str
    title: str
    description: Optional[str]
    join_code: str
    admin_token_hash: str
    status: str
    email_verification: bool
    created_at: datetime
    expires_at: datetime

    def public_dict(self) -> dict:
        """Fields safe to show without the admin credential"""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "email_verification": self.email_verification,
            "created_at": self.created_at.isoformat(),
        }

    def admin_dict(self) -> dict:
        data = self.public_dict()
        data["join_code"] = self.join_code
        data["expires_at"] = self.expires_at.isoformat()
        return data


@dataclass
class OptionRecord:
    id: str
    event_id: str
    name: str
    description: Optional[str]
    capacity: int
    sort_order: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "capacity": self.capacity,
            "sort_order": self.sort_order,
        }


@dataclass
class SubmissionRecord:
    id: str
    event_id: str
    email: str
    rankings: List[str] = field(default_factory=list)
    verified: bool = False
    submitted_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "rankings": list(self.rankings),
            "verified": self.verified,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }


@dataclass
class VerificationCodeRecord:
    id: str
    submission_id: str
    code: str
    expires_at: datetime


@dataclass
class AllocationRecord:
    event_id: str
    submission_id: str
    option_id: Optional[str]
    id: Optional[str] = None
