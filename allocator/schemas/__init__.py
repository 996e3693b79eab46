"""
Pydantic schemas package
"""

from .common import *
from .event import *
from .submission import *
from .verification import *
from .results import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "OptionCreate",
    "EventCreate",
    "EventCreated",
    "StatusUpdate",
    "SubmissionCreate",
    "SubmissionResponse",
    "VerifyRequest",
    "VerificationIssued",
    "VerificationConfirmed",
    "AllocationSummary",
    "OptionResult",
    "ResultsView",
]
