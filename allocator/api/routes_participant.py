"""
Participant-facing API routes
"""

from fastapi import APIRouter, Depends, Request

from allocator.api.deps import get_repository
from allocator.core.exceptions import ValidationFailed
from allocator.schemas.submission import SubmissionCreate
from allocator.schemas.verification import VerifyRequest
from allocator.services.repositories import Repository
from allocator.services.submission_service import SubmissionService
from allocator.services.verification_service import VerificationService
from allocator.utils.responses import success_response
from allocator.utils.security import rate_limit

router = APIRouter()

@router.post("/events/{event_id}/submissions")
def submit_rankings(
    event_id: str,
    payload: SubmissionCreate,
    repo: Repository = Depends(get_repository)
):
    """Submit a ranked list of options"""
    submission = SubmissionService(repo).submit(event_id, payload)
    if not submission.created:
        return success_response(message="Submission updated", data=submission.model_dump())
    return success_response(
        message="Submission received",
        data=submission.model_dump(),
        status_code=201
    )

@router.post("/events/{event_id}/verify", dependencies=[Depends(rate_limit)])
def verify_email(
    event_id: str,
    payload: VerifyRequest,
    request: Request,
    repo: Repository = Depends(get_repository)
):
    """Request a verification code ({email}) or confirm one ({submission_id, code})"""
    state = request.app.state
    service = VerificationService(
        repo,
        notifier=state.notifier,
        ttl_minutes=state.settings.VERIFICATION_CODE_TTL_MINUTES
    )

    if payload.is_request:
        issued = service.request_code(event_id, payload.email)
        return success_response(message="Verification code sent", data=issued.model_dump())

    if payload.is_confirm:
        confirmed = service.confirm_code(event_id, payload.submission_id, payload.code)
        return success_response(message="Email verified", data=confirmed.model_dump())

    raise ValidationFailed("Invalid request body")
