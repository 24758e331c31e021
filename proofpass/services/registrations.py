from __future__ import annotations

import logging
from typing import Optional

from proofpass.errors import FailedPrecondition, NotFound
from proofpass.models import Registration
from proofpass.repository import DuplicateEntryError, Repository
from proofpass.schemas.event import EventWithRegistration

logger = logging.getLogger(__name__)


def register_for_event(
    repository: Repository,
    event_id: str,
    student_id: str,
    student_wallet: Optional[str] = None,
) -> Registration:
    """Register a student for an event. A second registration for the same pair is rejected."""
    if repository.get_event(event_id) is None:
        raise NotFound("Event not found")
    if repository.get_registration(event_id, student_id):
        raise FailedPrecondition("Already registered", reason="already_registered")

    try:
        registration = repository.create_registration(
            Registration(event_id=event_id, student_id=student_id, student_wallet=student_wallet or None)
        )
    except DuplicateEntryError as e:
        # lost a race with a concurrent registration
        raise FailedPrecondition("Already registered", reason="already_registered") from e
    logger.info("Student %s registered for event %s", student_id, event_id)
    return registration


def get_registration(repository: Repository, event_id: str, student_id: str) -> Registration:
    registration = repository.get_registration(event_id, student_id)
    if registration is None:
        raise NotFound("Not registered", reason="not_registered")
    return registration


def available_events(repository: Repository, student_id: str) -> list[EventWithRegistration]:
    """Every event, paired with the student's registration when there is one."""
    return [
        EventWithRegistration(event=event, registration=repository.get_registration(event.id, student_id))
        for event in repository.list_events()
    ]


def _events_for(repository: Repository, student_id: str, claimed: bool) -> list[EventWithRegistration]:
    rows = []
    for registration in repository.list_registrations_for_student(student_id):
        if registration.claimed != claimed:
            continue
        event = repository.get_event(registration.event_id)
        if event:
            rows.append(EventWithRegistration(event=event, registration=registration))
    return rows


def registered_events(repository: Repository, student_id: str) -> list[EventWithRegistration]:
    return _events_for(repository, student_id, claimed=False)


def claimed_badges(repository: Repository, student_id: str) -> list[EventWithRegistration]:
    return _events_for(repository, student_id, claimed=True)
