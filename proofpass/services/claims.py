"""
Badge claiming.

A claim walks a fixed list of checks (event exists, window open, registered,
not yet claimed, inside the geofence, wallet connected) and only then talks to
the issuer: upload metadata, mint, transfer. The registration is marked
claimed in one compare-and-set write after the transfer succeeded, so an
issuer failure at any step leaves it claimable again.

Claims for the same registration are serialised with a per-registration lock;
claims for different registrations never wait on each other.
"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from proofpass.errors import FailedDependency, FailedPrecondition, Internal, NotFound
from proofpass.issuer import CredentialIssuer, IssuerError
from proofpass.models import AttendanceStatus, Event, Organizer, Student
from proofpass.repository import Repository
from proofpass.schemas.claim import BadgeMetadata, ClaimResult, Location, MetadataAttribute
from proofpass.services import geofence

logger = logging.getLogger(__name__)


class KeyedLock:
    """A lock per key, dropped again once nobody holds or waits for it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, holders + waiters]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def build_metadata(event: Event, student: Student, organizer: Optional[Organizer]) -> BadgeMetadata:
    return BadgeMetadata(
        name=f"{event.name} – Proof of Attendance",
        description=f"Issued for attending {event.name}",
        image=f"ipfs://{event.badge_image_cid}" if event.badge_image_cid else "",
        attributes=[
            MetadataAttribute(trait_type="Event ID", value=event.id),
            MetadataAttribute(trait_type="Student Profile CID", value=student.profile_cid or ""),
            MetadataAttribute(trait_type="Issued By", value=organizer.name if organizer else ""),
            MetadataAttribute(trait_type="Date", value=event.date),
        ],
    )


class ClaimEngine:
    def __init__(self, repository: Repository, issuer: CredentialIssuer):
        self.repository = repository
        self.issuer = issuer
        self._locks = KeyedLock()
        self._mints_lock = threading.Lock()
        self._mints: Counter[str] = Counter()

    def mint_count(self, registration_id: str) -> int:
        """How many units were minted for a registration by this process."""
        with self._mints_lock:
            return self._mints[registration_id]

    def _record_mint(self, registration_id: str) -> int:
        with self._mints_lock:
            self._mints[registration_id] += 1
            return self._mints[registration_id]

    def claim_badge(self, event_id: str, student_id: str, location: Optional[Location] = None) -> ClaimResult:
        event = self.repository.get_event(event_id)
        if event is None:
            raise NotFound("Event not found", reason="event_not_found")

        if event.attendance_status != AttendanceStatus.OPEN:
            raise FailedPrecondition("Attendance window closed", reason="attendance_closed")

        registration = self.repository.get_registration(event_id, student_id)
        if registration is None:
            raise FailedPrecondition("Not registered for this event", reason="not_registered")

        with self._locks.hold(registration.id):
            # re-read under the lock, a concurrent claim may have finished meanwhile
            registration = self.repository.get_registration_by_id(registration.id)
            if registration is None:
                raise FailedPrecondition("Not registered for this event", reason="not_registered")
            if registration.claimed:
                raise FailedPrecondition("Badge already claimed", reason="already_claimed")

            if location is not None:
                distance = geofence.distance_meters(location.lat, location.long, event.venue_lat, event.venue_long)
                if not geofence.within_radius(distance, event.radius):
                    raise FailedPrecondition(
                        f"Outside venue radius. Distance: {round(distance)}m",
                        reason="outside_radius",
                        distance=round(distance, 1),
                        radius=event.radius,
                    )
            else:
                logger.info("Claim for registration %s has no location, skipping geofence", registration.id)

            student = self.repository.get_student(student_id)
            if student is None:
                raise NotFound("Student not found", reason="student_not_found")
            if not student.wallet_address:
                raise FailedPrecondition("Wallet not connected", reason="wallet_not_connected")

            return self._issue(event, student, registration.id)

    def _issue(self, event: Event, student: Student, registration_id: str) -> ClaimResult:
        if not event.collection_id:
            raise Internal(f"event {event.id} has no credential collection")

        organizer = self.repository.get_organizer(event.organizer_id)
        metadata = build_metadata(event, student, organizer)

        try:
            metadata_cid = self.issuer.upload_content(metadata.model_dump())
        except IssuerError as e:
            logger.error("Metadata upload failed for registration %s: %s", registration_id, e)
            raise Internal(f"metadata upload failed: {e}") from e

        try:
            serial = self.issuer.mint(event.collection_id, metadata_cid)
        except IssuerError as e:
            logger.error("Mint on %s failed for registration %s: %s", event.collection_id, registration_id, e)
            raise Internal(f"mint failed: {e}") from e

        mints = self._record_mint(registration_id)
        logger.info(
            "Minted %s/%s for registration %s (mint #%d)", event.collection_id, serial, registration_id, mints
        )

        try:
            delivered = self.issuer.transfer(event.collection_id, serial, student.wallet_address)
        except IssuerError as e:
            logger.error("Transfer of %s/%s errored: %s", event.collection_id, serial, e)
            raise FailedDependency(f"transfer failed: {e}") from e
        if not delivered:
            logger.warning(
                "Transfer of %s/%s to %s refused, unit left orphaned (registration %s, mint #%d)",
                event.collection_id, serial, student.wallet_address, registration_id, mints,
            )
            raise FailedDependency(f"transfer of {event.collection_id}/{serial} refused")

        updated = self.repository.complete_claim(
            registration_id,
            serial=serial,
            metadata_cid=metadata_cid,
            claimed_at=datetime.now(timezone.utc),
        )
        if updated is None:
            logger.error(
                "Registration %s was claimed elsewhere, %s/%s is orphaned", registration_id, event.collection_id, serial
            )
            raise FailedPrecondition("Badge already claimed", reason="already_claimed")

        logger.info("Registration %s claimed badge %s/%s", registration_id, event.collection_id, serial)
        return ClaimResult(
            collection_id=event.collection_id,
            serial=serial,
            metadata_cid=metadata_cid,
            registration=updated,
        )
