"""
Database models package
"""

from .event import Event, EventStatus
from .option import Option
from .submission import Submission
from .verification_code import VerificationCode
from .allocation import Allocation

__all__ = ["Event", "EventStatus", "Option", "Submission", "VerificationCode", "Allocation"]
