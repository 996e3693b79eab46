"""
Admin API routes - require the event's admin token
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from allocator.api.deps import get_repository
from allocator.core.exceptions import ValidationFailed
from allocator.models.records import EventRecord
from allocator.schemas.event import StatusUpdate
from allocator.services.allocation_engine import AllocationService
from allocator.services.event_service import EventService
from allocator.services.lifecycle import EventLifecycle
from allocator.services.repositories import Repository
from allocator.services.results_service import ResultsService, results_csv, results_xlsx
from allocator.utils.responses import success_response
from allocator.utils.security import require_admin

router = APIRouter()

def _attachment(filename: str) -> str:
    """Content-Disposition value; headers must stay latin-1 safe"""
    safe = filename.encode("ascii", "ignore").decode("ascii").replace('"', "")
    return f'attachment; filename="{safe}"'

@router.get("/events/{event_id}/admin")
def get_event_admin(
    request: Request,
    event: EventRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository)
):
    """Event details, options and submission count"""
    data = EventService(repo, request.app.state.settings).get_admin_event(event)
    return success_response(message="Event details retrieved", data=data)

@router.patch("/events/{event_id}/admin")
def update_event_status(
    update: StatusUpdate,
    event: EventRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository)
):
    """Open or close submissions"""
    updated = EventLifecycle(repo).set_status(event, update.status)
    return success_response(message=f"Event is now {updated.status}", data=updated.admin_dict())

@router.get("/events/{event_id}/submissions")
def list_submissions(
    request: Request,
    event: EventRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository)
):
    """All submissions in priority order"""
    submissions = EventService(repo, request.app.state.settings).list_submissions(event)
    return success_response(
        message="Submissions retrieved successfully",
        data={"submissions": submissions, "total": len(submissions)}
    )

@router.delete("/events/{event_id}/submissions/{submission_id}")
def delete_submission(
    submission_id: str,
    request: Request,
    event: EventRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository)
):
    """Remove one participant's submission"""
    EventService(repo, request.app.state.settings).delete_submission(event, submission_id)
    return success_response(
        message="Submission deleted successfully",
        data={"deleted_submission_id": submission_id}
    )

@router.post("/events/{event_id}/allocate")
def run_allocation(
    event: EventRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository)
):
    """Run the serial dictatorship allocation on a closed event"""
    summary = AllocationService(repo).run(event.id)
    return success_response(message="Allocation complete", data=summary.model_dump())

@router.get("/events/{event_id}/results")
def get_results(
    format: Optional[str] = Query(None),
    event: EventRecord = Depends(require_admin),
    repo: Repository = Depends(get_repository)
):
    """Grouped results as JSON, or flat rows as CSV / XLSX"""
    if format not in (None, "json", "csv", "xlsx"):
        raise ValidationFailed("Format must be 'json', 'csv' or 'xlsx'", field="format")

    view = ResultsService(repo).get_results(event)

    if format == "csv":
        return Response(
            content=results_csv(view),
            media_type="text/csv",
            headers={"Content-Disposition": _attachment(f"{event.title} - Results.csv")}
        )

    if format == "xlsx":
        return Response(
            content=results_xlsx(view),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": _attachment(f"{event.title} - Results.xlsx")}
        )

    return success_response(message="Results retrieved", data=view.model_dump())
