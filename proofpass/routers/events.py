from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from proofpass.dependencies import (
    get_claim_engine,
    get_lifecycle,
    get_repository,
    require_organizer,
    require_principal,
    require_student,
)
from proofpass.errors import FailedPrecondition, Forbidden
from proofpass.models import Event, Registration
from proofpass.repository import Repository
from proofpass.schemas.claim import ClaimRequest, ClaimResult
from proofpass.schemas.event import AttendanceUpdate, EventCreate
from proofpass.schemas.student import EventRegistrationRequest
from proofpass.security import Principal
from proofpass.services import registrations
from proofpass.services.claims import ClaimEngine
from proofpass.services.images import allowed_image
from proofpass.services.lifecycle import EventLifecycle

router = APIRouter(prefix="/events", tags=["events"])


def _read_badge_image(request: Request, badge_image: Optional[UploadFile]) -> Optional[bytes]:
    if not badge_image or not badge_image.filename:
        return None
    settings = request.app.state.settings
    if not allowed_image(badge_image.filename, settings.ALLOWED_IMAGE_EXTS):
        raise FailedPrecondition("Badge image must be PNG/JPG/JPEG/WEBP.", reason="invalid_image")
    data = badge_image.file.read(settings.MAX_BADGE_IMAGE_BYTES + 1)
    if len(data) > settings.MAX_BADGE_IMAGE_BYTES:
        raise FailedPrecondition("Badge image is too large.", reason="image_too_large")
    return data


@router.post("", response_model=Event)
def create_event(
    request: Request,
    fields: EventCreate = Depends(EventCreate.as_form),
    badge_image: Optional[UploadFile] = File(None),
    principal: Principal = Depends(require_organizer),
    lifecycle: EventLifecycle = Depends(get_lifecycle),
):
    return lifecycle.create_event(principal.id, fields, badge_image=_read_badge_image(request, badge_image))


@router.get("/{event_id}", response_model=Event)
def get_event(event_id: str, lifecycle: EventLifecycle = Depends(get_lifecycle)):
    return lifecycle.get_event(event_id)


@router.patch("/{event_id}/attendance", response_model=Event)
def update_attendance(
    event_id: str,
    body: AttendanceUpdate,
    principal: Principal = Depends(require_organizer),
    lifecycle: EventLifecycle = Depends(get_lifecycle),
):
    return lifecycle.set_attendance_status(principal, event_id, body.status)


@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    principal: Principal = Depends(require_organizer),
    lifecycle: EventLifecycle = Depends(get_lifecycle),
):
    lifecycle.delete_event(principal, event_id)
    return {"message": "Event deleted"}


@router.get("/{event_id}/registrations", response_model=List[Registration])
def event_registrations(
    event_id: str,
    principal: Principal = Depends(require_organizer),
    lifecycle: EventLifecycle = Depends(get_lifecycle),
):
    return lifecycle.event_registrations(principal, event_id)


@router.post("/{event_id}/register", response_model=Registration)
def register(
    event_id: str,
    body: Optional[EventRegistrationRequest] = None,
    principal: Principal = Depends(require_student),
    repository: Repository = Depends(get_repository),
):
    wallet = body.student_wallet if body else None
    return registrations.register_for_event(repository, event_id, principal.id, student_wallet=wallet)


@router.get("/{event_id}/registration/{student_id}", response_model=Registration)
def get_registration(
    event_id: str,
    student_id: str,
    principal: Principal = Depends(require_principal),
    repository: Repository = Depends(get_repository),
):
    if principal.is_student and principal.id != student_id:
        raise Forbidden("Students can only see their own registrations")
    return registrations.get_registration(repository, event_id, student_id)


@router.post("/{event_id}/claim", response_model=ClaimResult)
def claim_badge(
    event_id: str,
    body: Optional[ClaimRequest] = None,
    principal: Principal = Depends(require_student),
    engine: ClaimEngine = Depends(get_claim_engine),
):
    location = body.location if body else None
    return engine.claim_badge(event_id, principal.id, location)
