"""
Public API routes - no authentication required
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from allocator.api.deps import get_repository
from allocator.schemas.event import EventCreate
from allocator.services.event_service import EventService
from allocator.services.qr_service import QRService
from allocator.services.repositories import Repository
from allocator.utils.responses import success_response
from allocator.utils.security import rate_limit

router = APIRouter()

@router.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.post("/events")
def create_event(
    payload: EventCreate,
    request: Request,
    repo: Repository = Depends(get_repository)
):
    """Create an event with its options; returns the one-time admin token"""
    created = EventService(repo, request.app.state.settings).create_event(payload)
    return success_response(
        message="Event created successfully",
        data=created.model_dump(),
        status_code=201
    )

@router.get("/events/join/{join_code}", dependencies=[Depends(rate_limit)])
def get_event_by_join_code(
    join_code: str,
    request: Request,
    repo: Repository = Depends(get_repository)
):
    """Public event details and options for participants"""
    event = EventService(repo, request.app.state.settings).get_public_event(join_code)
    return success_response(message="Event retrieved", data=event)

@router.get("/events/join/{join_code}/qr.png")
def get_join_qr_code(
    join_code: str,
    request: Request,
    repo: Repository = Depends(get_repository)
):
    """QR code image linking to the event's join page"""
    settings = request.app.state.settings
    # 404 for unknown codes
    EventService(repo, settings).get_public_event(join_code)

    qr_bytes = QRService.generate_join_qr(join_code, base_url=settings.BASE_URL)
    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=qr_{join_code}.png"}
    )
