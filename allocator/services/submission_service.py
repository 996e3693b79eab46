"""
Participant submission validation and persistence
"""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from allocator.core.exceptions import Conflict, DuplicateRecord, Forbidden, NotFound, ValidationFailed
from allocator.models.records import EventRecord, SubmissionRecord
from allocator.schemas.submission import SubmissionCreate, SubmissionResponse
from allocator.services.lifecycle import ensure_accepting_submissions
from allocator.services.repositories import Repository
from allocator.utils.codes import utcnow

logger = logging.getLogger(__name__)


class SubmissionValidator:
    """Structural and business rules for a ranked-preference submission"""

    @staticmethod
    def validate_rankings(rankings: List[str], option_ids: Iterable[str]) -> List[str]:
        valid_ids = set(option_ids)
        for option_id in rankings:
            if option_id not in valid_ids:
                raise ValidationFailed(
                    f"Invalid option ID: {option_id}",
                    field="rankings",
                    details={"field": "rankings", "option_id": option_id},
                )

        if len(set(rankings)) != len(rankings):
            raise ValidationFailed("Rankings must not contain duplicate options", field="rankings")

        return list(rankings)

    @staticmethod
    def validate(payload: SubmissionCreate, option_ids: Iterable[str]) -> SubmissionCreate:
        """Return the payload with rankings checked against the event's options"""
        rankings = SubmissionValidator.validate_rankings(payload.rankings, option_ids)
        return SubmissionCreate(email=payload.email, rankings=rankings)


class SubmissionService:
    """Accepts rankings from participants while an event is open"""

    def __init__(self, repo: Repository, clock: Callable = utcnow):
        self.repo = repo
        self.clock = clock

    def submit(self, event_id: str, payload: SubmissionCreate) -> SubmissionResponse:
        event = self.repo.get_event(event_id)
        if event is None:
            raise NotFound("Event")
        ensure_accepting_submissions(event)

        options = self.repo.list_options(event_id)
        clean = SubmissionValidator.validate(payload, [option.id for option in options])

        if event.email_verification:
            submission, created = self._update_verified(event, clean)
        else:
            submission, created = self._insert(event, clean), True

        return SubmissionResponse(
            id=submission.id,
            email=submission.email,
            verified=submission.verified,
            submitted_at=submission.submitted_at,
            created=created,
        )

    def _insert(self, event: EventRecord, clean: SubmissionCreate) -> SubmissionRecord:
        # Uniqueness is left to the storage constraint
        try:
            submission = self.repo.insert_submission(
                event_id=event.id,
                email=clean.email,
                rankings=clean.rankings,
                verified=True,
                submitted_at=self.clock(),
            )
        except DuplicateRecord:
            raise Conflict("A submission with this email already exists for this event")

        logger.info(f"Submission {submission.id} recorded for event {event.id}")
        return submission

    def _update_verified(self, event: EventRecord, clean: SubmissionCreate) -> Tuple[SubmissionRecord, bool]:
        """Store rankings on a verified placeholder; the flag is False when replacing earlier rankings"""
        existing: Optional[SubmissionRecord] = self.repo.find_submission(event.id, clean.email)
        if existing is None or not existing.verified:
            raise Forbidden("Email must be verified before submitting")

        # Priority is fixed by the first ranking stored, not by later edits
        first_ranking = not existing.rankings
        submitted_at = self.clock() if first_ranking else existing.submitted_at
        submission = self.repo.update_submission_rankings(existing.id, clean.rankings, submitted_at)
        logger.info(f"Verified submission {submission.id} updated for event {event.id}")
        return submission, first_ranking
