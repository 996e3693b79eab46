"""
Event creation and admin/public views of an event
"""

import logging
from datetime import timedelta
from typing import Callable, List

from allocator.core.config import Settings
from allocator.core.exceptions import DuplicateRecord, NotFound, PersistenceError
from allocator.models.records import EventRecord
from allocator.schemas.event import EventCreate, EventCreated
from allocator.services.repositories import Repository
from allocator.utils.codes import generate_join_code, utcnow
from allocator.utils.security import issue_admin_token

logger = logging.getLogger(__name__)


class EventService:
    def __init__(self, repo: Repository, settings: Settings, clock: Callable = utcnow):
        self.repo = repo
        self.settings = settings
        self.clock = clock

    def create_event(self, payload: EventCreate) -> EventCreated:
        """Create an event and its options; the admin token is returned only here"""
        plaintext, digest = issue_admin_token()
        created_at = self.clock()
        expires_at = created_at + timedelta(days=self.settings.EVENT_TTL_DAYS)
        options = [opt.model_dump() for opt in payload.options]

        # The join code's unique constraint decides; retry on a collision
        for attempt in range(1, self.settings.JOIN_CODE_ATTEMPTS + 1):
            join_code = generate_join_code()
            try:
                event, _ = self.repo.create_event(
                    title=payload.title,
                    description=payload.description,
                    join_code=join_code,
                    admin_token_hash=digest,
                    email_verification=payload.email_verification,
                    created_at=created_at,
                    expires_at=expires_at,
                    options=options,
                )
                break
            except DuplicateRecord:
                logger.warning(f"Join code collision on attempt {attempt}")
        else:
            raise PersistenceError("Failed to create event")

        logger.info(f"Event {event.id} created with {len(options)} options")
        return EventCreated(
            id=event.id,
            join_code=event.join_code,
            admin_token=plaintext,
            admin_url=f"/event/{event.id}/admin?token={plaintext}",
        )

    def get_public_event(self, join_code: str) -> dict:
        event = self.repo.get_event_by_join_code(join_code)
        if event is None:
            raise NotFound("Event")
        data = event.public_dict()
        data["options"] = [opt.to_dict() for opt in self.repo.list_options(event.id)]
        return data

    def get_admin_event(self, event: EventRecord) -> dict:
        """Everything except the stored credential digest"""
        data = event.admin_dict()
        data["options"] = [opt.to_dict() for opt in self.repo.list_options(event.id)]
        data["submission_count"] = self.repo.count_submissions(event.id)
        return data

    def list_submissions(self, event: EventRecord) -> List[dict]:
        return [sub.to_dict() for sub in self.repo.list_submissions(event.id)]

    def delete_submission(self, event: EventRecord, submission_id: str) -> None:
        submission = self.repo.get_submission(submission_id)
        if submission is None or submission.event_id != event.id:
            raise NotFound("Submission")
        self.repo.delete_submission(submission_id)
        logger.info(f"Submission {submission_id} deleted from event {event.id}")
