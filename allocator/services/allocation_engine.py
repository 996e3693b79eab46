"""
Serial dictatorship allocation

Participants are processed first-come-first-served by submitted_at. Each
takes their highest-ranked option that still has capacity; if none of
their ranked options has capacity they are left unassigned.

The rule is deterministic for a given input order, strategy-proof (a
participant's outcome depends only on their own list and on everyone
ahead of them) and Pareto-efficient with respect to the stated rankings
and the priority order.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from allocator.core.exceptions import AllocationStatusPending, InvalidEventState, NotFound, PersistenceError
from allocator.models import EventStatus
from allocator.models.records import AllocationRecord, OptionRecord, SubmissionRecord
from allocator.schemas.results import AllocationSummary
from allocator.services.repositories import Repository

logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    # submission_id -> option_id for assigned participants
    assignments: Dict[str, str] = field(default_factory=dict)
    # submission_ids left without an option, in processing order
    unassigned: List[str] = field(default_factory=list)

    def rows(self, event_id: str) -> List[AllocationRecord]:
        """One record per submission, unassigned ones with option_id None"""
        assigned = [
            AllocationRecord(event_id=event_id, submission_id=sub_id, option_id=opt_id)
            for sub_id, opt_id in self.assignments.items()
        ]
        unassigned = [
            AllocationRecord(event_id=event_id, submission_id=sub_id, option_id=None)
            for sub_id in self.unassigned
        ]
        return assigned + unassigned


def serial_dictatorship(
    options: Sequence[OptionRecord],
    submissions: Sequence[SubmissionRecord],
) -> AllocationResult:
    remaining: Dict[str, int] = {opt.id: opt.capacity for opt in options}

    # sorted() is stable: equal timestamps keep their input order
    ordered = sorted(submissions, key=lambda sub: sub.submitted_at or datetime.min)

    result = AllocationResult()
    for sub in ordered:
        for option_id in sub.rankings:
            # Ids that no longer resolve to an option are skipped
            if remaining.get(option_id, 0) > 0:
                result.assignments[sub.id] = option_id
                remaining[option_id] -= 1
                break
        else:
            result.unassigned.append(sub.id)

    return result


def _assignment(rows: Sequence[AllocationRecord]) -> Dict[str, Optional[str]]:
    return {row.submission_id: row.option_id for row in rows}


class AllocationService:
    """Runs the allocation for a closed event and persists the outcome"""

    def __init__(self, repo: Repository):
        self.repo = repo

    def _require_closed(self, event_id: str):
        event = self.repo.get_event(event_id)
        if event is None:
            raise NotFound("Event")
        if event.status == EventStatus.OPEN.value:
            raise InvalidEventState("Close submissions before running the allocation")
        if event.status == EventStatus.ALLOCATED.value:
            raise InvalidEventState("Allocation has already been run")
        return event

    def run(self, event_id: str) -> AllocationSummary:
        self._require_closed(event_id)

        options = self.repo.list_options(event_id)
        if not options:
            raise InvalidEventState("No options found for this event")

        submissions = self.repo.list_submissions(event_id)
        if not submissions:
            raise InvalidEventState("No submissions to allocate")

        result = serial_dictatorship(options, submissions)
        rows = result.rows(event_id)

        # Rows left by a run whose status flip failed are only reused when
        # they still match the current input; otherwise the commit replaces them
        existing = self.repo.list_allocations(event_id)
        if existing and _assignment(existing) == _assignment(rows):
            return self._finalize_pending(event_id, existing)

        committed = self.repo.commit_allocation(event_id, rows)
        if not committed:
            logger.warning(f"Allocation for event {event_id} lost the status check at commit")
            self._require_closed(event_id)
            raise InvalidEventState("Allocation has already been run")

        logger.info(
            f"Allocation committed for event {event_id}: "
            f"{len(result.assignments)} assigned, {len(result.unassigned)} unassigned"
        )
        return AllocationSummary(
            assigned=len(result.assignments),
            unassigned=len(result.unassigned),
            total=len(submissions),
        )

    def _finalize_pending(self, event_id: str, rows: List[AllocationRecord]) -> AllocationSummary:
        """Complete a run whose rows were stored but whose status flip failed"""
        logger.warning(f"Event {event_id} has stored allocations but is still closed; finalizing status")
        try:
            finalized = self.repo.finalize_allocation(event_id)
        except PersistenceError as e:
            raise AllocationStatusPending() from e
        if not finalized:
            self._require_closed(event_id)
            raise InvalidEventState("Allocation has already been run")

        assigned = sum(1 for row in rows if row.option_id is not None)
        return AllocationSummary(assigned=assigned, unassigned=len(rows) - assigned, total=len(rows))
