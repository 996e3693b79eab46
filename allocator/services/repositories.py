"""
Repository layer abstracting storage (SQLAlchemy vs Firebase Firestore).

Services depend on the Repository contract only. Each implementation
returns the plain records from allocator.models.records.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from allocator.core.db import transactional
from allocator.core.exceptions import DuplicateRecord
from allocator.models import Allocation, Event, EventStatus, Option, Submission, VerificationCode
from allocator.models.records import (
    AllocationRecord,
    EventRecord,
    OptionRecord,
    SubmissionRecord,
    VerificationCodeRecord,
)


class Repository(ABC):
    """Storage contract used by every service"""

    # -------- events --------

    @abstractmethod
    def create_event(
        self,
        title: str,
        description: Optional[str],
        join_code: str,
        admin_token_hash: str,
        email_verification: bool,
        created_at: datetime,
        expires_at: datetime,
        options: List[Dict[str, Any]],
    ) -> Tuple[EventRecord, List[OptionRecord]]:
        """Insert an event with its options atomically.

        Raises DuplicateRecord("join_code") when the join code is taken.
        """

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[EventRecord]: ...

    @abstractmethod
    def get_event_by_join_code(self, join_code: str) -> Optional[EventRecord]: ...

    @abstractmethod
    def update_event_status(self, event_id: str, expected: str, new: str) -> bool:
        """Compare-and-set the status; False when it no longer equals ``expected``.

        Moving an event back to open also drops any allocation rows left by
        a run whose status flip failed.
        """

    @abstractmethod
    def list_options(self, event_id: str) -> List[OptionRecord]:
        """Options in sort order"""

    # -------- submissions --------

    @abstractmethod
    def count_submissions(self, event_id: str) -> int: ...

    @abstractmethod
    def list_submissions(self, event_id: str) -> List[SubmissionRecord]:
        """Submissions ordered by submitted_at ascending"""

    @abstractmethod
    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]: ...

    @abstractmethod
    def find_submission(self, event_id: str, email: str) -> Optional[SubmissionRecord]: ...

    @abstractmethod
    def insert_submission(
        self,
        event_id: str,
        email: str,
        rankings: List[str],
        verified: bool,
        submitted_at: datetime,
    ) -> SubmissionRecord:
        """Raises DuplicateRecord("email") when the email is already on file"""

    @abstractmethod
    def update_submission_rankings(
        self, submission_id: str, rankings: List[str], submitted_at: datetime
    ) -> SubmissionRecord: ...

    @abstractmethod
    def delete_submission(self, submission_id: str) -> None:
        """Also removes the submission's codes and allocation row"""

    # -------- verification codes --------

    @abstractmethod
    def replace_verification_code(
        self, submission_id: str, code: str, expires_at: datetime
    ) -> VerificationCodeRecord:
        """Drop every outstanding code for the submission and store a new one"""

    @abstractmethod
    def latest_verification_code(self, submission_id: str) -> Optional[VerificationCodeRecord]: ...

    @abstractmethod
    def confirm_verification(self, submission_id: str) -> None:
        """Mark the submission verified and delete all of its codes"""

    # -------- allocations --------

    @abstractmethod
    def list_allocations(self, event_id: str) -> List[AllocationRecord]: ...

    @abstractmethod
    def commit_allocation(self, event_id: str, rows: List[AllocationRecord]) -> bool:
        """Persist allocation rows and move the event closed -> allocated.

        Returns False, leaving no rows behind, when the event is no longer
        closed. Raises AllocationStatusPending if rows were stored but the
        status could not be advanced.
        """

    @abstractmethod
    def finalize_allocation(self, event_id: str) -> bool:
        """Compare-and-set closed -> allocated for an already stored run"""


def _event_record(event: Event) -> EventRecord:
    return EventRecord(
        id=event.id,
        title=event.title,
        description=event.description,
        join_code=event.join_code,
        admin_token_hash=event.admin_token_hash,
        status=event.status,
        email_verification=bool(event.email_verification),
        created_at=event.created_at,
        expires_at=event.expires_at,
    )


def _option_record(option: Option) -> OptionRecord:
    return OptionRecord(
        id=option.id,
        event_id=option.event_id,
        name=option.name,
        description=option.description,
        capacity=option.capacity,
        sort_order=option.sort_order,
    )


def _submission_record(submission: Submission) -> SubmissionRecord:
    return SubmissionRecord(
        id=submission.id,
        event_id=submission.event_id,
        email=submission.email,
        rankings=list(submission.rankings or []),
        verified=bool(submission.verified),
        submitted_at=submission.submitted_at,
    )


class SqlRepository(Repository):
    """SQLAlchemy implementation; one instance per request session"""

    def __init__(self, db: Session):
        self.db = db

    # -------- events --------

    @transactional
    def create_event(self, title, description, join_code, admin_token_hash,
                     email_verification, created_at, expires_at, options):
        event = Event(
            title=title,
            description=description,
            join_code=join_code,
            admin_token_hash=admin_token_hash,
            status=EventStatus.OPEN.value,
            email_verification=email_verification,
            created_at=created_at,
            expires_at=expires_at,
        )
        self.db.add(event)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise DuplicateRecord("join_code") from e

        rows = [
            Option(
                event_id=event.id,
                name=opt["name"],
                description=opt.get("description"),
                capacity=opt["capacity"],
                sort_order=index,
            )
            for index, opt in enumerate(options)
        ]
        self.db.add_all(rows)
        self.db.flush()
        return _event_record(event), [_option_record(row) for row in rows]

    @transactional
    def get_event(self, event_id):
        event = self.db.query(Event).filter(Event.id == event_id).first()
        return _event_record(event) if event else None

    @transactional
    def get_event_by_join_code(self, join_code):
        event = self.db.query(Event).filter(Event.join_code == join_code).first()
        return _event_record(event) if event else None

    @transactional
    def update_event_status(self, event_id, expected, new):
        updated = self.db.query(Event).filter(
            Event.id == event_id,
            Event.status == expected
        ).update({Event.status: new}, synchronize_session=False)
        if updated == 1 and new == EventStatus.OPEN.value:
            self._delete_allocations(event_id)
        return updated == 1

    @transactional
    def list_options(self, event_id):
        options = self.db.query(Option).filter(Option.event_id == event_id).order_by(Option.sort_order).all()
        return [_option_record(option) for option in options]

    # -------- submissions --------

    @transactional
    def count_submissions(self, event_id):
        return self.db.query(Submission).filter(Submission.event_id == event_id).count()

    @transactional
    def list_submissions(self, event_id):
        submissions = self.db.query(Submission).filter(
            Submission.event_id == event_id
        ).order_by(Submission.submitted_at).all()
        return [_submission_record(s) for s in submissions]

    @transactional
    def get_submission(self, submission_id):
        submission = self.db.query(Submission).filter(Submission.id == submission_id).first()
        return _submission_record(submission) if submission else None

    @transactional
    def find_submission(self, event_id, email):
        submission = self.db.query(Submission).filter(
            Submission.event_id == event_id,
            Submission.email == email
        ).first()
        return _submission_record(submission) if submission else None

    @transactional
    def insert_submission(self, event_id, email, rankings, verified, submitted_at):
        submission = Submission(
            event_id=event_id,
            email=email,
            rankings=list(rankings),
            verified=verified,
            submitted_at=submitted_at,
        )
        self.db.add(submission)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise DuplicateRecord("email") from e
        return _submission_record(submission)

    @transactional
    def update_submission_rankings(self, submission_id, rankings, submitted_at):
        submission = self.db.query(Submission).filter(Submission.id == submission_id).one()
        submission.rankings = list(rankings)
        submission.submitted_at = submitted_at
        self.db.flush()
        return _submission_record(submission)

    @transactional
    def delete_submission(self, submission_id):
        submission = self.db.query(Submission).filter(Submission.id == submission_id).first()
        if submission:
            # ORM cascade removes codes and the allocation row
            self.db.delete(submission)

    # -------- verification codes --------

    @transactional
    def replace_verification_code(self, submission_id, code, expires_at):
        self.db.query(VerificationCode).filter(
            VerificationCode.submission_id == submission_id
        ).delete(synchronize_session=False)
        record = VerificationCode(submission_id=submission_id, code=code, expires_at=expires_at)
        self.db.add(record)
        self.db.flush()
        return VerificationCodeRecord(
            id=record.id, submission_id=submission_id, code=record.code, expires_at=record.expires_at
        )

    @transactional
    def latest_verification_code(self, submission_id):
        record = self.db.query(VerificationCode).filter(
            VerificationCode.submission_id == submission_id
        ).order_by(VerificationCode.expires_at.desc()).first()
        if not record:
            return None
        return VerificationCodeRecord(
            id=record.id, submission_id=record.submission_id, code=record.code, expires_at=record.expires_at
        )

    @transactional
    def confirm_verification(self, submission_id):
        self.db.query(Submission).filter(Submission.id == submission_id).update(
            {Submission.verified: True}, synchronize_session=False
        )
        self.db.query(VerificationCode).filter(
            VerificationCode.submission_id == submission_id
        ).delete(synchronize_session=False)

    # -------- allocations --------

    @transactional
    def list_allocations(self, event_id):
        rows = self.db.query(Allocation).filter(Allocation.event_id == event_id).all()
        return [
            AllocationRecord(
                id=row.id, event_id=row.event_id, submission_id=row.submission_id, option_id=row.option_id
            )
            for row in rows
        ]

    def _delete_allocations(self, event_id):
        self.db.query(Allocation).filter(Allocation.event_id == event_id).delete(synchronize_session=False)

    @transactional
    def commit_allocation(self, event_id, rows):
        # Status flip first: it takes the row lock, so a racing run blocks
        # here and then sees zero rows updated
        updated = self.db.query(Event).filter(
            Event.id == event_id,
            Event.status == EventStatus.CLOSED.value
        ).update({Event.status: EventStatus.ALLOCATED.value}, synchronize_session=False)
        if updated != 1:
            return False

        # Rows from an earlier unfinished run are replaced
        self._delete_allocations(event_id)
        self.db.add_all([
            Allocation(event_id=event_id, submission_id=row.submission_id, option_id=row.option_id)
            for row in rows
        ])
        self.db.flush()
        return True

    @transactional
    def finalize_allocation(self, event_id):
        updated = self.db.query(Event).filter(
            Event.id == event_id,
            Event.status == EventStatus.CLOSED.value
        ).update({Event.status: EventStatus.ALLOCATED.value}, synchronize_session=False)
        return updated == 1
