"""
Submission model
"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from allocator.core.db import Base


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(320), nullable=False)
    rankings = Column(JSON, nullable=False, default=list)  # ordered option ids
    verified = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime, nullable=False, index=True)

    # Relationships
    event = relationship("Event", back_populates="submissions")
    verification_codes = relationship(
        "VerificationCode", back_populates="submission", cascade="all, delete-orphan"
    )
    allocation = relationship(
        "Allocation", back_populates="submission", cascade="all, delete-orphan", uselist=False
    )

    # One submission per email per event, enforced by the database
    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_submissions_event_email"),
    )
