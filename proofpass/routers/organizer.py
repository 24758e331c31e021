from typing import List

from fastapi import APIRouter, Depends

from proofpass.dependencies import get_lifecycle, require_organizer
from proofpass.models import Event
from proofpass.schemas.event import OrganizerStats
from proofpass.security import Principal
from proofpass.services.lifecycle import EventLifecycle

router = APIRouter(prefix="/organizer", tags=["organizer"])


@router.get("/events", response_model=List[Event])
def organizer_events(
    principal: Principal = Depends(require_organizer),
    lifecycle: EventLifecycle = Depends(get_lifecycle),
):
    return lifecycle.list_organizer_events(principal.id)


@router.get("/stats", response_model=OrganizerStats)
def organizer_stats(
    principal: Principal = Depends(require_organizer),
    lifecycle: EventLifecycle = Depends(get_lifecycle),
):
    return lifecycle.organizer_stats(principal.id)
