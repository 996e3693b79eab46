"""
Read-side projection of a finished allocation
"""

import io
from typing import Dict, List

import pandas as pd

from allocator.core.exceptions import InvalidEventState
from allocator.models import EventStatus
from allocator.models.records import AllocationRecord, EventRecord, OptionRecord, SubmissionRecord
from allocator.schemas.results import OptionResult, ResultsView
from allocator.services.repositories import Repository

UNASSIGNED_LABEL = "(Unassigned)"
EXPORT_COLUMNS = ["Option", "Participant"]


def project_results(
    options: List[OptionRecord],
    allocations: List[AllocationRecord],
    submissions: List[SubmissionRecord],
) -> ResultsView:
    """Group participant emails per option (in option order) plus an unassigned bucket"""
    emails: Dict[str, str] = {sub.id: sub.email for sub in submissions}
    groups: Dict[str, OptionResult] = {
        opt.id: OptionResult(option_id=opt.id, option_name=opt.name, capacity=opt.capacity, assigned=[])
        for opt in sorted(options, key=lambda o: o.sort_order)
    }
    unassigned: List[str] = []

    for alloc in allocations:
        email = emails.get(alloc.submission_id)
        if email is None:
            continue
        group = groups.get(alloc.option_id) if alloc.option_id else None
        if group is None:
            unassigned.append(email)
        else:
            group.assigned.append(email)

    return ResultsView(options=list(groups.values()), unassigned=unassigned)


def results_frame(view: ResultsView) -> pd.DataFrame:
    """Flat Option/Participant rows; empty options keep one row with no participant"""
    rows = []
    for group in view.options:
        if not group.assigned:
            rows.append({"Option": group.option_name, "Participant": ""})
        for email in group.assigned:
            rows.append({"Option": group.option_name, "Participant": email})
    for email in view.unassigned:
        rows.append({"Option": UNASSIGNED_LABEL, "Participant": email})
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def results_csv(view: ResultsView) -> str:
    return results_frame(view).to_csv(index=False, lineterminator="\n")


def results_xlsx(view: ResultsView) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        results_frame(view).to_excel(writer, index=False, sheet_name="Results")
    return buffer.getvalue()


class ResultsService:
    """Builds results views for an allocated event"""

    def __init__(self, repo: Repository):
        self.repo = repo

    def get_results(self, event: EventRecord) -> ResultsView:
        if event.status != EventStatus.ALLOCATED.value:
            raise InvalidEventState("Allocation has not been run yet")

        return project_results(
            options=self.repo.list_options(event.id),
            allocations=self.repo.list_allocations(event.id),
            submissions=self.repo.list_submissions(event.id),
        )
