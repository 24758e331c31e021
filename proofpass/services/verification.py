from proofpass.errors import NotFound
from proofpass.repository import Repository
from proofpass.schemas.verification import VerificationResult


def verify_badge(repository: Repository, collection_id: str, serial: str) -> VerificationResult:
    """Resolve a minted badge back to its event, owner and issuer. Read only."""
    event = repository.get_event_by_collection(collection_id)
    if event is None:
        raise NotFound("Token not found", reason="token_not_found")

    registration = next(
        (
            r
            for r in repository.list_registrations_for_event(event.id)
            if r.claimed and r.nft_serial == serial
        ),
        None,
    )
    if registration is None:
        raise NotFound("Badge not found", reason="badge_not_found")

    student = repository.get_student(registration.student_id)
    organizer = repository.get_organizer(event.organizer_id)
    return VerificationResult(
        verified=True,
        collection_id=collection_id,
        serial=serial,
        owner_wallet=student.wallet_address if student else None,
        event_name=event.name,
        issuer_name=organizer.name if organizer else None,
        date=event.date,
        badge_image_cid=event.badge_image_cid,
        metadata_cid=registration.metadata_cid,
    )
