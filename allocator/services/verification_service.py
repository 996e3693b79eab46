"""
Email verification codes gating participant submissions
"""

import logging
from datetime import timedelta
from typing import Callable, Union

from allocator.core.exceptions import (
    Conflict,
    DuplicateRecord,
    InvalidEventState,
    NotFound,
    VerificationFailed,
)
from allocator.models.records import EventRecord
from allocator.schemas.submission import normalize_email
from allocator.schemas.verification import VerificationConfirmed, VerificationIssued
from allocator.services.lifecycle import ensure_accepting_submissions
from allocator.services.notifier import CodeNotifier
from allocator.services.repositories import Repository
from allocator.utils.codes import generate_verification_code, utcnow

logger = logging.getLogger(__name__)

CODE_TTL_MINUTES = 15


class VerificationService:
    """Issues and confirms short-lived numeric codes.

    Per (event, email) the states are none -> code_issued -> verified.
    Only the most recently issued code for a submission is accepted;
    expiry is checked against the clock at confirm time.
    """

    def __init__(
        self,
        repo: Repository,
        notifier: CodeNotifier,
        clock: Callable = utcnow,
        ttl_minutes: int = CODE_TTL_MINUTES,
    ):
        self.repo = repo
        self.notifier = notifier
        self.clock = clock
        self.ttl = timedelta(minutes=ttl_minutes)

    def _load_event(self, event_id: str) -> EventRecord:
        event = self.repo.get_event(event_id)
        if event is None:
            raise NotFound("Event")
        ensure_accepting_submissions(event)
        if not event.email_verification:
            raise InvalidEventState("Email verification is not enabled for this event")
        return event

    def request_code(self, event_id: str, email: str) -> VerificationIssued:
        event = self._load_event(event_id)
        email = normalize_email(email)

        existing = self.repo.find_submission(event.id, email)
        if existing is not None and existing.verified:
            raise Conflict("This email has already submitted to this event")

        if existing is not None:
            # Re-request before verification: same placeholder, fresh code
            submission_id = existing.id
        else:
            try:
                placeholder = self.repo.insert_submission(
                    event_id=event.id,
                    email=email,
                    rankings=[],
                    verified=False,
                    submitted_at=self.clock(),
                )
            except DuplicateRecord:
                raise Conflict("A submission with this email already exists")
            submission_id = placeholder.id

        code = generate_verification_code()
        expires_at = self.clock() + self.ttl
        self.repo.replace_verification_code(submission_id, code, expires_at)
        logger.info(f"Verification code issued for submission {submission_id} on event {event.id}")

        try:
            self.notifier.send_code(email, code, expires_at)
        except Exception as e:
            logger.error(f"Failed to deliver verification code for submission {submission_id}: {e}", exc_info=True)

        return VerificationIssued(submission_id=submission_id)

    def confirm_code(self, event_id: str, submission_id: str, code: Union[str, int]) -> VerificationConfirmed:
        event = self._load_event(event_id)

        submission = self.repo.get_submission(submission_id)
        record = None
        if submission is not None and submission.event_id == event.id:
            record = self.repo.latest_verification_code(submission_id)
        if record is None:
            raise NotFound("Verification code", "No verification code found. Please request a new one.")

        if self.clock() > record.expires_at:
            raise VerificationFailed("Verification code has expired. Please request a new one.")

        if record.code != str(code).strip():
            raise VerificationFailed("Incorrect verification code.")

        self.repo.confirm_verification(submission_id)
        logger.info(f"Submission {submission_id} verified for event {event.id}")
        return VerificationConfirmed(verified=True)
