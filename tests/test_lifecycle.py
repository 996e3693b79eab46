"""
Tests for the event status state machine
"""

import pytest

from allocator.core.exceptions import InvalidEventState, InvalidStateTransition, ValidationFailed
from allocator.models import EventStatus
from allocator.services.lifecycle import (
    EventLifecycle,
    can_transition,
    ensure_accepting_submissions,
    validate_transition,
)

OPEN = EventStatus.OPEN.value
CLOSED = EventStatus.CLOSED.value
ALLOCATED = EventStatus.ALLOCATED.value


@pytest.mark.parametrize("current,target,allowed", [
    (OPEN, CLOSED, True),
    (CLOSED, OPEN, True),
    (CLOSED, ALLOCATED, True),
    (OPEN, ALLOCATED, False),
    (ALLOCATED, OPEN, False),
    (ALLOCATED, CLOSED, False),
])
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_allocated_is_terminal():
    with pytest.raises(InvalidStateTransition) as exc:
        validate_transition(ALLOCATED, OPEN)
    assert exc.value.message == "Cannot change status after allocation"
    assert exc.value.status_code == 400


def test_open_cannot_jump_to_allocated():
    with pytest.raises(InvalidStateTransition):
        validate_transition(OPEN, ALLOCATED)


class TestEventLifecycle:
    def test_close_and_reopen(self, repo, make_event):
        """Admins can move an event back and forth between open and closed"""
        event, _ = make_event()
        lifecycle = EventLifecycle(repo)

        closed = lifecycle.set_status(event, CLOSED)
        assert closed.status == CLOSED
        assert repo.get_event(event.id).status == CLOSED

        reopened = lifecycle.set_status(closed, OPEN)
        assert reopened.status == OPEN

    def test_same_status_is_noop(self, repo, make_event):
        event, _ = make_event()

        result = EventLifecycle(repo).set_status(event, OPEN)

        assert result.status == OPEN

    def test_admin_cannot_set_allocated(self, repo, make_event):
        event, _ = make_event(status=CLOSED)

        with pytest.raises(ValidationFailed):
            EventLifecycle(repo).set_status(event, ALLOCATED)
        assert repo.get_event(event.id).status == CLOSED

    def test_allocated_event_rejects_changes(self, repo, make_event):
        event, _ = make_event(status=ALLOCATED)

        for target in (OPEN, CLOSED):
            with pytest.raises(InvalidStateTransition):
                EventLifecycle(repo).set_status(event, target)
        assert repo.get_event(event.id).status == ALLOCATED

    def test_stale_record_loses_to_allocation(self, repo, make_event):
        """A status change based on a stale read cannot undo an allocation"""
        event, _ = make_event(status=CLOSED)
        stale = repo.get_event(event.id)
        repo.update_event_status(event.id, CLOSED, ALLOCATED)

        with pytest.raises(InvalidStateTransition):
            EventLifecycle(repo).set_status(stale, OPEN)
        assert repo.get_event(event.id).status == ALLOCATED


def test_submissions_gated_on_open(make_event):
    open_event, _ = make_event()
    ensure_accepting_submissions(open_event)

    closed_event, _ = make_event(status=CLOSED)
    with pytest.raises(InvalidEventState) as exc:
        ensure_accepting_submissions(closed_event)
    assert exc.value.message == "This event is no longer accepting submissions"
