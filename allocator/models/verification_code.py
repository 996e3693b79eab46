"""
Verification code model
"""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from allocator.core.db import Base


class VerificationCode(Base):
    __tablename__ = "verification_codes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    submission_id = Column(
        String(36), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False)

    # Relationships
    submission = relationship("Submission", back_populates="verification_codes")
