from __future__ import annotations

import logging
from typing import Union

from proofpass.errors import FailedPrecondition, Internal, NotFound, Unauthorized
from proofpass.issuer import CredentialIssuer, IssuerError
from proofpass.models import Organizer, Student
from proofpass.repository import DuplicateEntryError, Repository
from proofpass.schemas.auth import LoginForm, OrganizerRegister, StudentRegister
from proofpass.schemas.student import ProfileRead, ProfileUpdate
from proofpass.security import Principal, hash_password, verify_and_update_password

logger = logging.getLogger(__name__)


def register_organizer(repository: Repository, form: OrganizerRegister) -> Organizer:
    if repository.get_organizer_by_email(form.email):
        raise FailedPrecondition("Email already registered", reason="email_taken")
    try:
        return repository.create_organizer(
            Organizer(
                name=form.name.strip(),
                email=form.email,
                password_hash=hash_password(form.password),
                wallet_address=form.wallet_address or None,
            )
        )
    except DuplicateEntryError as e:
        raise FailedPrecondition("Email already registered", reason="email_taken") from e


def register_student(repository: Repository, form: StudentRegister) -> Student:
    if repository.get_student_by_email(form.email):
        raise FailedPrecondition("Email already registered", reason="email_taken")
    try:
        return repository.create_student(
            Student(
                email=form.email,
                password_hash=hash_password(form.password),
                wallet_address=form.wallet_address or None,
                name=form.name,
                college=form.college,
                roll_no=form.roll_no,
            )
        )
    except DuplicateEntryError as e:
        raise FailedPrecondition("Email already registered", reason="email_taken") from e


def authenticate_organizer(repository: Repository, form: LoginForm) -> Organizer:
    organizer = repository.get_organizer_by_email(form.email)
    if not organizer:
        raise Unauthorized("Invalid credentials")
    verified, new_hash = verify_and_update_password(form.password, organizer.password_hash)
    if not verified:
        raise Unauthorized("Invalid credentials")
    if new_hash:
        repository.update_organizer(organizer.id, password_hash=new_hash)
    return organizer


def authenticate_student(repository: Repository, form: LoginForm) -> Student:
    student = repository.get_student_by_email(form.email)
    if not student:
        raise Unauthorized("Invalid credentials")
    verified, new_hash = verify_and_update_password(form.password, student.password_hash)
    if not verified:
        raise Unauthorized("Invalid credentials")
    if new_hash:
        # migrate deprecated hashes (bcrypt) to the current scheme
        repository.update_student(student.id, password_hash=new_hash)
    return student


def load_account(repository: Repository, principal: Principal) -> Union[Organizer, Student]:
    account = (
        repository.get_organizer(principal.id) if principal.is_organizer else repository.get_student(principal.id)
    )
    if account is None:
        raise NotFound("User not found")
    return account


def update_wallet(repository: Repository, student_id: str, wallet_address: str) -> Student:
    student = repository.update_student(student_id, wallet_address=wallet_address.strip())
    if student is None:
        raise NotFound("Student not found")
    logger.info("Student %s linked wallet %s", student_id, student.wallet_address)
    return student


def update_profile(
    repository: Repository,
    issuer: CredentialIssuer,
    student_id: str,
    profile: ProfileUpdate,
) -> ProfileRead:
    """Publish the profile to the content store and keep its content id on the student."""
    if repository.get_student(student_id) is None:
        raise NotFound("Student not found")
    try:
        profile_cid = issuer.upload_content(profile.model_dump())
    except IssuerError as e:
        logger.error("Profile upload failed for student %s: %s", student_id, e)
        raise Internal(f"profile upload failed: {e}") from e

    repository.update_student(student_id, profile_cid=profile_cid, **profile.model_dump())
    return ProfileRead(profile_cid=profile_cid, **profile.model_dump())
