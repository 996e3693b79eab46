"""
Firestore implementation of the repository contract.

Layout (top-level collections, ISO-8601 strings for datetimes):
    events/{event_id}
    join_codes/{join_code}              -> event_id, claims the code
    options/{option_id}
    submissions/{submission_id}
    submission_emails/{sha256(event_id:email)} -> submission_id, claims the email
    verification_codes/{code_id}
    allocations/{submission_id}         -> one document per submission
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime
from functools import wraps
from typing import Any, Dict, List, Optional

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from allocator.core.exceptions import AllocationStatusPending, DuplicateRecord, PersistenceError
from allocator.models import EventStatus
from allocator.models.records import (
    AllocationRecord,
    EventRecord,
    OptionRecord,
    SubmissionRecord,
    VerificationCodeRecord,
)
from allocator.services.repositories import Repository

logger = logging.getLogger(__name__)

# Firestore caps a write batch at 500 operations
BATCH_LIMIT = 400


def firestore_errors(func):
    """Surface Firestore API failures as PersistenceError"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore call failed in {func.__name__}: {e}", exc_info=True)
            raise PersistenceError() from e

    return wrapper


def _email_key(event_id: str, email: str) -> str:
    return hashlib.sha256(f"{event_id}:{email}".encode("utf-8")).hexdigest()


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@firestore.transactional
def _compare_and_set_status(transaction, event_ref, expected: str, new: str) -> bool:
    snapshot = event_ref.get(transaction=transaction)
    if not snapshot.exists or snapshot.get("status") != expected:
        return False
    transaction.update(event_ref, {"status": new})
    return True


class FirestoreRepository(Repository):
    def __init__(self, client):
        self.fs = client

    # -------- helpers --------

    def _event_from_doc(self, doc) -> EventRecord:
        data = doc.to_dict()
        return EventRecord(
            id=doc.id,
            title=data["title"],
            description=data.get("description"),
            join_code=data["join_code"],
            admin_token_hash=data["admin_token_hash"],
            status=data["status"],
            email_verification=bool(data.get("email_verification")),
            created_at=_parse(data["created_at"]),
            expires_at=_parse(data["expires_at"]),
        )

    def _submission_from_doc(self, doc) -> SubmissionRecord:
        data = doc.to_dict()
        return SubmissionRecord(
            id=doc.id,
            event_id=data["event_id"],
            email=data["email"],
            rankings=list(data.get("rankings") or []),
            verified=bool(data.get("verified")),
            submitted_at=_parse(data.get("submitted_at")),
        )

    def _where(self, collection: str, field: str, value: Any):
        return self.fs.collection(collection).where(field, "==", value)

    def _commit_in_chunks(self, operations) -> None:
        """Apply (op, ref, data) triples through as many batches as needed"""
        for start in range(0, len(operations), BATCH_LIMIT):
            batch = self.fs.batch()
            for op, ref, data in operations[start:start + BATCH_LIMIT]:
                if op == "set":
                    batch.set(ref, data)
                else:
                    batch.delete(ref)
            batch.commit()

    # -------- events --------

    @firestore_errors
    def create_event(self, title, description, join_code, admin_token_hash,
                     email_verification, created_at, expires_at, options):
        event_id = str(uuid.uuid4())
        event_data = {
            "title": title,
            "description": description,
            "join_code": join_code,
            "admin_token_hash": admin_token_hash,
            "status": EventStatus.OPEN.value,
            "email_verification": email_verification,
            "created_at": created_at.isoformat(),
            "expires_at": expires_at.isoformat(),
        }

        batch = self.fs.batch()
        batch.create(self.fs.collection("join_codes").document(join_code), {"event_id": event_id})
        batch.set(self.fs.collection("events").document(event_id), event_data)

        records: List[OptionRecord] = []
        for index, opt in enumerate(options):
            record = OptionRecord(
                id=str(uuid.uuid4()),
                event_id=event_id,
                name=opt["name"],
                description=opt.get("description"),
                capacity=opt["capacity"],
                sort_order=index,
            )
            batch.set(self.fs.collection("options").document(record.id), {
                "event_id": event_id,
                "name": record.name,
                "description": record.description,
                "capacity": record.capacity,
                "sort_order": record.sort_order,
            })
            records.append(record)

        try:
            batch.commit()
        except google_exceptions.AlreadyExists as e:
            raise DuplicateRecord("join_code") from e

        event = EventRecord(
            id=event_id,
            title=title,
            description=description,
            join_code=join_code,
            admin_token_hash=admin_token_hash,
            status=EventStatus.OPEN.value,
            email_verification=email_verification,
            created_at=created_at,
            expires_at=expires_at,
        )
        return event, records

    @firestore_errors
    def get_event(self, event_id):
        doc = self.fs.collection("events").document(event_id).get()
        return self._event_from_doc(doc) if doc.exists else None

    @firestore_errors
    def get_event_by_join_code(self, join_code):
        claim = self.fs.collection("join_codes").document(join_code).get()
        if not claim.exists:
            return None
        return self.get_event(claim.get("event_id"))

    @firestore_errors
    def update_event_status(self, event_id, expected, new):
        event_ref = self.fs.collection("events").document(event_id)
        changed = _compare_and_set_status(self.fs.transaction(), event_ref, expected, new)
        if changed and new == EventStatus.OPEN.value:
            self._clear_allocations(event_id)
        return changed

    @firestore_errors
    def list_options(self, event_id):
        records = []
        for doc in self._where("options", "event_id", event_id).stream():
            data = doc.to_dict()
            records.append(OptionRecord(
                id=doc.id,
                event_id=event_id,
                name=data["name"],
                description=data.get("description"),
                capacity=int(data["capacity"]),
                sort_order=int(data.get("sort_order", 0)),
            ))
        return sorted(records, key=lambda o: o.sort_order)

    # -------- submissions --------

    @firestore_errors
    def count_submissions(self, event_id):
        return sum(1 for _ in self._where("submissions", "event_id", event_id).stream())

    @firestore_errors
    def list_submissions(self, event_id):
        records = [self._submission_from_doc(doc) for doc in self._where("submissions", "event_id", event_id).stream()]
        return sorted(records, key=lambda s: s.submitted_at or datetime.min)

    @firestore_errors
    def get_submission(self, submission_id):
        doc = self.fs.collection("submissions").document(submission_id).get()
        return self._submission_from_doc(doc) if doc.exists else None

    @firestore_errors
    def find_submission(self, event_id, email):
        claim = self.fs.collection("submission_emails").document(_email_key(event_id, email)).get()
        if not claim.exists:
            return None
        return self.get_submission(claim.get("submission_id"))

    @firestore_errors
    def insert_submission(self, event_id, email, rankings, verified, submitted_at):
        submission_id = str(uuid.uuid4())
        batch = self.fs.batch()
        batch.create(
            self.fs.collection("submission_emails").document(_email_key(event_id, email)),
            {"submission_id": submission_id, "event_id": event_id},
        )
        batch.set(self.fs.collection("submissions").document(submission_id), {
            "event_id": event_id,
            "email": email,
            "rankings": list(rankings),
            "verified": verified,
            "submitted_at": submitted_at.isoformat(),
        })
        try:
            batch.commit()
        except google_exceptions.AlreadyExists as e:
            raise DuplicateRecord("email") from e
        return SubmissionRecord(
            id=submission_id, event_id=event_id, email=email,
            rankings=list(rankings), verified=verified, submitted_at=submitted_at,
        )

    @firestore_errors
    def update_submission_rankings(self, submission_id, rankings, submitted_at):
        ref = self.fs.collection("submissions").document(submission_id)
        ref.update({"rankings": list(rankings), "submitted_at": submitted_at.isoformat()})
        return self._submission_from_doc(ref.get())

    @firestore_errors
    def delete_submission(self, submission_id):
        ref = self.fs.collection("submissions").document(submission_id)
        doc = ref.get()
        if not doc.exists:
            return
        data = doc.to_dict()
        batch = self.fs.batch()
        for code_doc in self._where("verification_codes", "submission_id", submission_id).stream():
            batch.delete(code_doc.reference)
        batch.delete(self.fs.collection("allocations").document(submission_id))
        batch.delete(self.fs.collection("submission_emails").document(_email_key(data["event_id"], data["email"])))
        batch.delete(ref)
        batch.commit()

    # -------- verification codes --------

    @firestore_errors
    def replace_verification_code(self, submission_id, code, expires_at):
        code_id = str(uuid.uuid4())
        batch = self.fs.batch()
        for code_doc in self._where("verification_codes", "submission_id", submission_id).stream():
            batch.delete(code_doc.reference)
        batch.set(self.fs.collection("verification_codes").document(code_id), {
            "submission_id": submission_id,
            "code": code,
            "expires_at": expires_at.isoformat(),
        })
        batch.commit()
        return VerificationCodeRecord(id=code_id, submission_id=submission_id, code=code, expires_at=expires_at)

    @firestore_errors
    def latest_verification_code(self, submission_id):
        records = [
            VerificationCodeRecord(
                id=doc.id,
                submission_id=submission_id,
                code=doc.get("code"),
                expires_at=_parse(doc.get("expires_at")),
            )
            for doc in self._where("verification_codes", "submission_id", submission_id).stream()
        ]
        if not records:
            return None
        return max(records, key=lambda r: r.expires_at)

    @firestore_errors
    def confirm_verification(self, submission_id):
        batch = self.fs.batch()
        batch.update(self.fs.collection("submissions").document(submission_id), {"verified": True})
        for code_doc in self._where("verification_codes", "submission_id", submission_id).stream():
            batch.delete(code_doc.reference)
        batch.commit()

    # -------- allocations --------

    @firestore_errors
    def list_allocations(self, event_id):
        return [
            AllocationRecord(
                id=doc.id,
                event_id=event_id,
                submission_id=doc.get("submission_id"),
                option_id=doc.get("option_id"),
            )
            for doc in self._where("allocations", "event_id", event_id).stream()
        ]

    def _clear_allocations(self, event_id: str, keep: Optional[set] = None) -> None:
        keep = keep or set()
        stale = [
            ("delete", doc.reference, None)
            for doc in self._where("allocations", "event_id", event_id).stream()
            if doc.id not in keep
        ]
        self._commit_in_chunks(stale)

    @firestore_errors
    def commit_allocation(self, event_id, rows):
        event_ref = self.fs.collection("events").document(event_id)
        snapshot = event_ref.get()
        if not snapshot.exists or snapshot.get("status") != EventStatus.CLOSED.value:
            return False

        # Document ids are submission ids, so a racing run with the same
        # input overwrites identical documents instead of adding rows
        keep = {row.submission_id for row in rows}
        self._clear_allocations(event_id, keep)
        operations: List[tuple] = []
        for row in rows:
            data: Dict[str, Any] = {
                "event_id": event_id,
                "submission_id": row.submission_id,
                "option_id": row.option_id,
            }
            operations.append(("set", self.fs.collection("allocations").document(row.submission_id), data))
        self._commit_in_chunks(operations)

        try:
            flipped = _compare_and_set_status(
                self.fs.transaction(), event_ref, EventStatus.CLOSED.value, EventStatus.ALLOCATED.value
            )
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Allocations stored for event {event_id} but status update failed: {e}")
            raise AllocationStatusPending() from e

        if not flipped:
            current = event_ref.get()
            if not current.exists or current.get("status") != EventStatus.ALLOCATED.value:
                # Reopened while this run was writing
                self._clear_allocations(event_id)
            return False
        return True

    @firestore_errors
    def finalize_allocation(self, event_id):
        event_ref = self.fs.collection("events").document(event_id)
        return _compare_and_set_status(
            self.fs.transaction(), event_ref, EventStatus.CLOSED.value, EventStatus.ALLOCATED.value
        )
