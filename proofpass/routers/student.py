from typing import List

from fastapi import APIRouter, Depends

from proofpass.dependencies import get_issuer, get_repository, require_student
from proofpass.issuer import CredentialIssuer
from proofpass.repository import Repository
from proofpass.schemas.event import EventWithRegistration
from proofpass.schemas.student import ProfileRead, ProfileUpdate, WalletUpdate
from proofpass.security import Principal
from proofpass.services import accounts, registrations

router = APIRouter(prefix="/student", tags=["student"])


@router.get("/events/available", response_model=List[EventWithRegistration])
def available_events(
    principal: Principal = Depends(require_student),
    repository: Repository = Depends(get_repository),
):
    return registrations.available_events(repository, principal.id)


@router.get("/events/registered", response_model=List[EventWithRegistration])
def registered_events(
    principal: Principal = Depends(require_student),
    repository: Repository = Depends(get_repository),
):
    return registrations.registered_events(repository, principal.id)


@router.get("/badges", response_model=List[EventWithRegistration])
def badges(
    principal: Principal = Depends(require_student),
    repository: Repository = Depends(get_repository),
):
    return registrations.claimed_badges(repository, principal.id)


@router.patch("/wallet")
def update_wallet(
    body: WalletUpdate,
    principal: Principal = Depends(require_student),
    repository: Repository = Depends(get_repository),
):
    student = accounts.update_wallet(repository, principal.id, body.wallet_address)
    return {"wallet_address": student.wallet_address}


@router.patch("/profile", response_model=ProfileRead)
def update_profile(
    body: ProfileUpdate,
    principal: Principal = Depends(require_student),
    repository: Repository = Depends(get_repository),
    issuer: CredentialIssuer = Depends(get_issuer),
):
    return accounts.update_profile(repository, issuer, principal.id, body)
