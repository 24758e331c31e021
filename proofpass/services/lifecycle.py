from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from proofpass.errors import FailedPrecondition, Forbidden, Internal, NotFound
from proofpass.issuer import CredentialIssuer, IssuerError
from proofpass.models import AttendanceStatus, Event, Registration
from proofpass.repository import Repository
from proofpass.schemas.event import EventCreate, OrganizerStats
from proofpass.security import Principal
from proofpass.services.images import DEFAULT_SIZE, normalize_badge_image

logger = logging.getLogger(__name__)


def placeholder_collection_id() -> str:
    """Local stand-in used when the ledger could not create a collection."""
    return f"0.0.{secrets.randbelow(9000000) + 1000000}"


def collection_symbol(name: str) -> str:
    initials = "".join(word[0] for word in name.split() if word[0].isalnum()).upper()
    return initials[:8] or "BADGE"


class EventLifecycle:
    """Creates events and moves their attendance window between OPEN and CLOSED."""

    def __init__(
        self,
        repository: Repository,
        issuer: CredentialIssuer,
        *,
        default_status: AttendanceStatus = AttendanceStatus.CLOSED,
        clear_started_on_close: bool = True,
        provision_collections: bool = True,
        badge_image_size: int = DEFAULT_SIZE,
    ):
        self.repository = repository
        self.issuer = issuer
        self.default_status = default_status
        self.clear_started_on_close = clear_started_on_close
        self.provision_collections = provision_collections
        self.badge_image_size = badge_image_size

    def create_event(self, organizer_id: str, fields: EventCreate, badge_image: Optional[bytes] = None) -> Event:
        if self.repository.get_organizer(organizer_id) is None:
            raise NotFound("Organizer not found")

        badge_image_cid = None
        if badge_image:
            try:
                png = normalize_badge_image(badge_image, self.badge_image_size)
            except ValueError as e:
                raise FailedPrecondition("Badge image is not a valid image", reason="invalid_image") from e
            try:
                badge_image_cid = self.issuer.upload_content(png)
            except IssuerError as e:
                logger.error("Badge image upload failed for %r: %s", fields.name, e)
                raise Internal(f"badge image upload failed: {e}") from e

        collection_id = None
        if fields.provision_collection and self.provision_collections:
            collection_id = self._provision_collection(fields.name)

        status = self.default_status
        event = Event(
            name=fields.name.strip(),
            description=fields.description,
            date=fields.date,
            venue_name=fields.venue_name,
            venue_lat=fields.venue_lat,
            venue_long=fields.venue_long,
            radius=fields.radius,
            badge_image_cid=badge_image_cid,
            attendance_status=status,
            attendance_started_at=_now() if status == AttendanceStatus.OPEN else None,
            organizer_id=organizer_id,
            collection_id=collection_id,
        )
        event = self.repository.create_event(event)
        logger.info("Organizer %s created event %s (collection %s)", organizer_id, event.id, collection_id)
        return event

    def _provision_collection(self, name: str) -> str:
        try:
            return self.issuer.create_collection(name, collection_symbol(name))
        except IssuerError:
            placeholder = placeholder_collection_id()
            logger.warning(
                "Collection provisioning failed for %r, using placeholder %s", name, placeholder, exc_info=True
            )
            return placeholder

    def get_event(self, event_id: str) -> Event:
        event = self.repository.get_event(event_id)
        if event is None:
            raise NotFound("Event not found")
        return event

    def _owned_event(self, principal: Principal, event_id: str) -> Event:
        event = self.get_event(event_id)
        if not principal.is_organizer or event.organizer_id != principal.id:
            raise Forbidden("Only the event organizer can do that")
        return event

    def list_organizer_events(self, organizer_id: str) -> list[Event]:
        return self.repository.list_events_by_organizer(organizer_id)

    def set_attendance_status(self, principal: Principal, event_id: str, status: AttendanceStatus) -> Event:
        event = self._owned_event(principal, event_id)

        changes: dict = {"attendance_status": status}
        if status == AttendanceStatus.OPEN:
            if event.attendance_status != AttendanceStatus.OPEN:
                changes["attendance_started_at"] = _now()
        elif self.clear_started_on_close:
            changes["attendance_started_at"] = None

        updated = self.repository.update_event(event_id, **changes)
        if updated is None:
            raise NotFound("Event not found")
        logger.info("Attendance for event %s is now %s", event_id, status.value)
        return updated

    def delete_event(self, principal: Principal, event_id: str) -> None:
        self._owned_event(principal, event_id)
        self.repository.delete_event(event_id)
        logger.info("Event %s deleted by %s", event_id, principal.id)

    def event_registrations(self, principal: Principal, event_id: str) -> list[Registration]:
        self._owned_event(principal, event_id)
        return self.repository.list_registrations_for_event(event_id)

    def organizer_stats(self, organizer_id: str) -> OrganizerStats:
        events = self.repository.list_events_by_organizer(organizer_id)
        total_registrations = 0
        total_claimed = 0
        for event in events:
            registrations = self.repository.list_registrations_for_event(event.id)
            total_registrations += len(registrations)
            total_claimed += sum(1 for r in registrations if r.claimed)
        return OrganizerStats(
            total_events=len(events),
            total_registrations=total_registrations,
            total_claimed=total_claimed,
            active_events=sum(1 for e in events if e.attendance_status == AttendanceStatus.OPEN),
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)
