from typing import Union

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from proofpass.dependencies import get_repository, require_principal
from proofpass.models import Organizer, Student
from proofpass.repository import Repository
from proofpass.schemas.auth import LoginForm, OrganizerRead, OrganizerRegister, StudentRead, StudentRegister
from proofpass.security import ORGANIZER, STUDENT, Principal, token_for
from proofpass.services import accounts

router = APIRouter(prefix="/auth", tags=["auth"])


class AuthResponse(BaseModel):
    user: Union[OrganizerRead, StudentRead]
    access_token: str
    token_type: str = "bearer"


def _read_model(account: Union[Organizer, Student]) -> Union[OrganizerRead, StudentRead]:
    if isinstance(account, Organizer):
        return OrganizerRead(id=account.id, name=account.name, email=account.email, wallet_address=account.wallet_address)
    return StudentRead(id=account.id, email=account.email, name=account.name, wallet_address=account.wallet_address)


def _signed_in(request: Request, response: Response, account: Union[Organizer, Student], role: str) -> AuthResponse:
    """Issues the JWT and stores it in the auth cookie."""
    settings = request.app.state.settings
    token = token_for(Principal(id=account.id, role=role))
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite=settings.SESSION_COOKIE_SAMESITE.lower(),
        secure=settings.SESSION_COOKIE_SECURE,
    )
    return AuthResponse(user=_read_model(account), access_token=token)


@router.post("/organizer/register", response_model=AuthResponse)
def organizer_register(
    form: OrganizerRegister,
    request: Request,
    response: Response,
    repository: Repository = Depends(get_repository),
):
    organizer = accounts.register_organizer(repository, form)
    return _signed_in(request, response, organizer, ORGANIZER)


@router.post("/organizer/login", response_model=AuthResponse)
def organizer_login(
    form: LoginForm,
    request: Request,
    response: Response,
    repository: Repository = Depends(get_repository),
):
    organizer = accounts.authenticate_organizer(repository, form)
    return _signed_in(request, response, organizer, ORGANIZER)


@router.post("/student/register", response_model=AuthResponse)
def student_register(
    form: StudentRegister,
    request: Request,
    response: Response,
    repository: Repository = Depends(get_repository),
):
    student = accounts.register_student(repository, form)
    return _signed_in(request, response, student, STUDENT)


@router.post("/student/login", response_model=AuthResponse)
def student_login(
    form: LoginForm,
    request: Request,
    response: Response,
    repository: Repository = Depends(get_repository),
):
    student = accounts.authenticate_student(repository, form)
    return _signed_in(request, response, student, STUDENT)


@router.get("/me", response_model=Union[OrganizerRead, StudentRead])
def me(principal: Principal = Depends(require_principal), repository: Repository = Depends(get_repository)):
    return _read_model(accounts.load_account(repository, principal))


@router.post("/logout")
def logout(request: Request, response: Response):
    """Logs out the caller by clearing the JWT cookie."""
    response.delete_cookie(request.app.state.settings.AUTH_COOKIE_NAME)
    return {"message": "Logged out"}
