"""
Allocation model
"""

import uuid
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship

from allocator.core.db import Base


class Allocation(Base):
    __tablename__ = "allocations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    submission_id = Column(
        String(36), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    option_id = Column(String(36), ForeignKey("options.id", ondelete="CASCADE"), nullable=True)  # null = unassigned

    # Relationships
    event = relationship("Event", back_populates="allocations")
    submission = relationship("Submission", back_populates="allocation")
    option = relationship("Option")
