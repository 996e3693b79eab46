"""
Event status state machine

States: open -> closed -> allocated, plus closed -> open (reopen).
allocated is terminal. Admins may only set open or closed; allocated is
reached through a successful allocation run.
"""

import logging

from allocator.core.exceptions import InvalidEventState, InvalidStateTransition, NotFound, ValidationFailed
from allocator.models import EventStatus
from allocator.models.records import EventRecord
from allocator.services.repositories import Repository

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[str, list[str]] = {
    EventStatus.OPEN.value: [EventStatus.CLOSED.value],
    EventStatus.CLOSED.value: [EventStatus.OPEN.value, EventStatus.ALLOCATED.value],
    EventStatus.ALLOCATED.value: [],  # terminal
}

ADMIN_SETTABLE = (EventStatus.OPEN.value, EventStatus.CLOSED.value)


def can_transition(current: str, target: str) -> bool:
    return target in VALID_TRANSITIONS.get(current, [])


def validate_transition(current: str, target: str) -> None:
    """Raise InvalidStateTransition unless current -> target is legal"""
    if current == EventStatus.ALLOCATED.value:
        raise InvalidStateTransition("Cannot change status after allocation")
    if not can_transition(current, target):
        allowed = VALID_TRANSITIONS.get(current, [])
        raise InvalidStateTransition(
            f"Cannot change status from '{current}' to '{target}'. Allowed from '{current}': {allowed}"
        )


def ensure_accepting_submissions(event: EventRecord) -> None:
    """Submissions and verification requests are gated solely on open"""
    if event.status != EventStatus.OPEN.value:
        raise InvalidEventState("This event is no longer accepting submissions")


class EventLifecycle:
    """Admin-driven status changes, persisted with compare-and-set"""

    def __init__(self, repo: Repository):
        self.repo = repo

    def set_status(self, event: EventRecord, target: str) -> EventRecord:
        if target not in ADMIN_SETTABLE:
            raise ValidationFailed("Status must be 'open' or 'closed'", field="status")

        if event.status == EventStatus.ALLOCATED.value:
            raise InvalidStateTransition("Cannot change status after allocation")
        if event.status == target:
            return event

        validate_transition(event.status, target)

        if not self.repo.update_event_status(event.id, event.status, target):
            # Lost a race; the persisted status is the source of truth
            current = self.repo.get_event(event.id)
            if current is None:
                raise NotFound("Event")
            if current.status == EventStatus.ALLOCATED.value:
                raise InvalidStateTransition("Cannot change status after allocation")
            if current.status == target:
                return current
            raise InvalidStateTransition(
                f"Event status changed concurrently to '{current.status}'"
            )

        logger.info(f"Event {event.id} status changed {event.status} -> {target}")
        updated = self.repo.get_event(event.id)
        if updated is None:
            raise NotFound("Event")
        return updated
