import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from proofpass.errors import FailedDependency, FailedPrecondition, Internal, NotFound
from proofpass.issuer import MockCredentialIssuer
from proofpass.models import AttendanceStatus, Student
from proofpass.schemas.claim import ClaimResult, Location
from proofpass.services import geofence
from proofpass.services.claims import ClaimEngine, KeyedLock
from proofpass.services.lifecycle import EventLifecycle
from proofpass.services.registrations import register_for_event

from .helpers import STUDENT_WALLET, VENUE_LAT, VENUE_LONG, offset_north


def at(meters: float) -> Location:
    return Location(lat=offset_north(VENUE_LAT, meters), long=VENUE_LONG)


class SlowIssuer(MockCredentialIssuer):
    """Mock issuer whose mint takes long enough for claims to overlap."""

    def mint(self, collection_id, content_ref):
        time.sleep(0.2)
        return super().mint(collection_id, content_ref)


@pytest.fixture(name="registered")
def registered_fixture(repository, open_event, student):
    return register_for_event(repository, open_event.id, student.id)


def test_claim_within_radius_succeeds_then_rejects_repeat(engine, repository, issuer, open_event, student, registered):
    result = engine.claim_badge(open_event.id, student.id, at(50))

    assert result.collection_id == open_event.collection_id
    assert result.serial == "1"
    assert result.registration.claimed
    assert result.registration.nft_serial == "1"
    assert result.registration.metadata_cid == result.metadata_cid
    assert issuer.owners[(open_event.collection_id, "1")] == STUDENT_WALLET

    stored = repository.get_registration_by_id(registered.id)
    assert stored.claimed and stored.claimed_at is not None

    with pytest.raises(FailedPrecondition) as excinfo:
        engine.claim_badge(open_event.id, student.id, at(50))
    assert "already claimed" in excinfo.value.message.lower()
    assert excinfo.value.reason == "already_claimed"
    assert len(issuer.minted) == 1


def test_claim_150m_away_is_rejected_with_distance(engine, repository, open_event, student, registered):
    with pytest.raises(FailedPrecondition) as excinfo:
        engine.claim_badge(open_event.id, student.id, at(150))

    assert "150" in excinfo.value.message
    assert excinfo.value.reason == "outside_radius"
    assert excinfo.value.details["distance"] == pytest.approx(150, abs=0.1)
    assert excinfo.value.details["radius"] == 100
    assert not repository.get_registration_by_id(registered.id).claimed


def test_radius_boundary_is_inclusive(engine, open_event, student, registered, monkeypatch):
    monkeypatch.setattr(geofence, "distance_meters", lambda *args: 100.0)
    result = engine.claim_badge(open_event.id, student.id, at(0))
    assert result.registration.claimed


def test_just_outside_radius_is_rejected(engine, open_event, student, registered, monkeypatch):
    monkeypatch.setattr(geofence, "distance_meters", lambda *args: 100.4)
    with pytest.raises(FailedPrecondition, match="Distance: 100m"):
        engine.claim_badge(open_event.id, student.id, at(0))


def test_claim_without_location_skips_geofence(engine, open_event, student, registered):
    result = engine.claim_badge(open_event.id, student.id, None)
    assert result.registration.claimed


def test_unknown_event_is_not_found(engine, student):
    with pytest.raises(NotFound, match="Event not found"):
        engine.claim_badge("missing", student.id, at(0))


def test_closed_window_rejects_before_anything_else(engine, event, student):
    # no registration, far away: the window check still comes first
    with pytest.raises(FailedPrecondition) as excinfo:
        engine.claim_badge(event.id, student.id, at(5000))
    assert excinfo.value.reason == "attendance_closed"


def test_closed_after_registration_rejects(engine, lifecycle, organizer_principal, open_event, student, registered):
    lifecycle.set_attendance_status(organizer_principal, open_event.id, AttendanceStatus.CLOSED)
    with pytest.raises(FailedPrecondition, match="Attendance window closed"):
        engine.claim_badge(open_event.id, student.id, at(0))


def test_unregistered_student_is_rejected(engine, open_event, student):
    with pytest.raises(FailedPrecondition) as excinfo:
        engine.claim_badge(open_event.id, student.id, at(0))
    assert excinfo.value.reason == "not_registered"


def test_missing_wallet_is_rejected(engine, repository, issuer, open_event, student, registered):
    repository.update_student(student.id, wallet_address=None)
    with pytest.raises(FailedPrecondition, match="Wallet not connected"):
        engine.claim_badge(open_event.id, student.id, at(0))
    assert issuer.minted == []


def test_radius_checked_before_wallet(engine, repository, open_event, student, registered):
    repository.update_student(student.id, wallet_address=None)
    with pytest.raises(FailedPrecondition) as excinfo:
        engine.claim_badge(open_event.id, student.id, at(500))
    assert excinfo.value.reason == "outside_radius"


def test_metadata_upload_failure_leaves_registration_claimable(engine, repository, issuer, open_event, student, registered):
    issuer.fail_on = {"upload_content"}
    with pytest.raises(Internal) as excinfo:
        engine.claim_badge(open_event.id, student.id, at(0))
    assert not isinstance(excinfo.value, FailedDependency)
    assert issuer.minted == []
    assert not repository.get_registration_by_id(registered.id).claimed

    issuer.fail_on = set()
    assert engine.claim_badge(open_event.id, student.id, at(0)).registration.claimed


def test_mint_failure_is_internal(engine, repository, issuer, open_event, student, registered):
    issuer.fail_on = {"mint"}
    with pytest.raises(Internal):
        engine.claim_badge(open_event.id, student.id, at(0))
    assert not repository.get_registration_by_id(registered.id).claimed
    assert engine.mint_count(registered.id) == 0


def test_refused_transfer_keeps_registration_unclaimed_and_orphans_unit(
    engine, repository, issuer, open_event, student, registered
):
    issuer.unassociated_wallets = {STUDENT_WALLET}
    with pytest.raises(FailedDependency) as excinfo:
        engine.claim_badge(open_event.id, student.id, at(0))
    assert excinfo.value.status_code == 424
    assert "wallet" in excinfo.value.to_dict()["message"]

    stored = repository.get_registration_by_id(registered.id)
    assert not stored.claimed
    assert stored.nft_serial is None and stored.metadata_cid is None
    assert len(issuer.minted) == 1
    assert engine.mint_count(registered.id) == 1

    # the wallet gets associated, the retry mints a second unit
    issuer.unassociated_wallets = set()
    result = engine.claim_badge(open_event.id, student.id, at(0))
    assert result.serial == "2"
    assert len(issuer.minted) == 2
    assert engine.mint_count(registered.id) == 2


def test_transfer_error_is_failed_dependency(engine, repository, issuer, open_event, student, registered):
    issuer.fail_on = {"transfer"}
    with pytest.raises(FailedDependency):
        engine.claim_badge(open_event.id, student.id, at(0))
    assert not repository.get_registration_by_id(registered.id).claimed


def test_event_without_collection_cannot_issue(repository, issuer, lifecycle, organizer, organizer_principal, event_fields, student):
    fields = event_fields.model_copy(update={"provision_collection": False})
    event = lifecycle.create_event(organizer.id, fields)
    lifecycle.set_attendance_status(organizer_principal, event.id, AttendanceStatus.OPEN)
    register_for_event(repository, event.id, student.id)

    with pytest.raises(Internal):
        ClaimEngine(repository, issuer).claim_badge(event.id, student.id, at(0))


def test_event_with_placeholder_collection_cannot_issue(repository, organizer, organizer_principal, event_fields, student):
    issuer = MockCredentialIssuer(fail_on=["create_collection"])
    lifecycle = EventLifecycle(repository, issuer)
    event = lifecycle.create_event(organizer.id, event_fields)
    lifecycle.set_attendance_status(organizer_principal, event.id, AttendanceStatus.OPEN)
    registration = register_for_event(repository, event.id, student.id)
    issuer.fail_on = set()

    with pytest.raises(Internal):
        ClaimEngine(repository, issuer).claim_badge(event.id, student.id, at(0))
    assert issuer.minted == []
    assert not repository.get_registration_by_id(registration.id).claimed


@pytest.mark.parametrize("lat, long", [(float("nan"), 0.0), (0.0, float("inf")), (90.5, 0.0), (0.0, -180.5)])
def test_location_rejects_impossible_coordinates(lat, long):
    with pytest.raises(ValidationError):
        Location(lat=lat, long=long)


def test_metadata_document(engine, repository, issuer, organizer, open_event, student, registered):
    repository.update_student(student.id, profile_cid="bafyprofile")
    result = engine.claim_badge(open_event.id, student.id, at(0))

    metadata = issuer.contents[result.metadata_cid]
    assert metadata["name"] == "Python Meetup – Proof of Attendance"
    assert metadata["image"] == ""
    attributes = {a["trait_type"]: a["value"] for a in metadata["attributes"]}
    assert attributes == {
        "Event ID": open_event.id,
        "Student Profile CID": "bafyprofile",
        "Issued By": organizer.name,
        "Date": "2026-11-02",
    }
    assert issuer.minted[0] == (open_event.collection_id, "1", result.metadata_cid)


def test_concurrent_claims_have_exactly_one_winner(repository, issuer, open_event, student, registered):
    slow = SlowIssuer()
    slow.collections.update(issuer.collections)
    engine = ClaimEngine(repository, slow)
    barrier = threading.Barrier(2)

    def attempt(_):
        barrier.wait()
        try:
            return engine.claim_badge(open_event.id, student.id, at(10))
        except FailedPrecondition as e:
            return e

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, range(2)))

    wins = [r for r in results if isinstance(r, ClaimResult)]
    losses = [r for r in results if isinstance(r, FailedPrecondition)]
    assert len(wins) == 1
    assert len(losses) == 1
    assert losses[0].reason == "already_claimed"
    assert len(slow.minted) == 1
    assert repository.get_registration_by_id(registered.id).nft_serial == wins[0].serial


def test_compare_and_set_guards_engines_without_shared_lock(repository, issuer, open_event, student, registered):
    # two engines stand in for two worker processes: only the repository write serialises them
    slow = SlowIssuer()
    slow.collections.update(issuer.collections)
    engines = [ClaimEngine(repository, slow), ClaimEngine(repository, slow)]
    barrier = threading.Barrier(2)

    def attempt(engine):
        barrier.wait()
        try:
            return engine.claim_badge(open_event.id, student.id, at(10))
        except FailedPrecondition as e:
            return e

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, engines))

    assert sum(isinstance(r, ClaimResult) for r in results) == 1
    assert [r.reason for r in results if isinstance(r, FailedPrecondition)] == ["already_claimed"]


class RendezvousIssuer(MockCredentialIssuer):
    """Every mint waits until two mints are in flight at once."""

    def __init__(self):
        super().__init__()
        self.barrier = threading.Barrier(2, timeout=5)

    def mint(self, collection_id, content_ref):
        self.barrier.wait()
        return super().mint(collection_id, content_ref)


def test_claims_for_different_registrations_run_in_parallel(repository, issuer, open_event, student):
    other = repository.create_student(Student(email="s2@example.com", password_hash="x", wallet_address="0.0.9"))
    register_for_event(repository, open_event.id, student.id)
    register_for_event(repository, open_event.id, other.id)
    rendezvous = RendezvousIssuer()
    rendezvous.collections.update(issuer.collections)
    engine = ClaimEngine(repository, rendezvous)

    # a serialised engine would break the barrier instead of passing it
    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda sid: engine.claim_badge(open_event.id, sid, at(0)), [student.id, other.id]))

    assert {r.serial for r in results} == {"1", "2"}
    assert all(r.registration.claimed for r in results)


def test_keyed_lock_releases_entries():
    locks = KeyedLock()
    with locks.hold("a"):
        assert len(locks) == 1
        with locks.hold("b"):
            assert len(locks) == 2
    assert len(locks) == 0
