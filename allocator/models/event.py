"""
Event model
"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Boolean, DateTime
from sqlalchemy.orm import relationship

from allocator.core.db import Base


class EventStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"
    ALLOCATED = "allocated"


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    join_code = Column(String(9), unique=True, nullable=False, index=True)
    admin_token_hash = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default=EventStatus.OPEN.value)
    email_verification = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    # Relationships
    options = relationship(
        "Option", back_populates="event", cascade="all, delete-orphan", order_by="Option.sort_order"
    )
    submissions = relationship("Submission", back_populates="event", cascade="all, delete-orphan")
    allocations = relationship("Allocation", back_populates="event", cascade="all, delete-orphan")
