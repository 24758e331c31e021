from typing import Optional

from fastapi import Depends, Request

from proofpass.errors import Forbidden, Unauthorized
from proofpass.issuer import CredentialIssuer
from proofpass.repository import Repository
from proofpass.security import ORGANIZER, STUDENT, Principal, principal_from_token
from proofpass.services.claims import ClaimEngine
from proofpass.services.lifecycle import EventLifecycle


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def get_issuer(request: Request) -> CredentialIssuer:
    return request.app.state.issuer


def get_lifecycle(request: Request) -> EventLifecycle:
    return request.app.state.lifecycle


def get_claim_engine(request: Request) -> ClaimEngine:
    return request.app.state.claim_engine


def get_current_principal(request: Request) -> Optional[Principal]:
    """Reads the JWT from the Authorization header, falling back to the auth cookie."""
    token = None
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    if not token:
        token = request.cookies.get(request.app.state.settings.AUTH_COOKIE_NAME)
    if not token:
        return None
    return principal_from_token(token)


def require_principal(principal: Optional[Principal] = Depends(get_current_principal)) -> Principal:
    """Dependency that ensures the caller is authenticated."""
    if principal is None:
        raise Unauthorized("Authentication required")
    return principal


def require_role(role: str):
    """Dependency factory that ensures the caller has the given role."""
    def role_checker(principal: Principal = Depends(require_principal)) -> Principal:
        if principal.role != role:
            raise Forbidden(f"{role.capitalize()} access required")
        return principal
    return role_checker


require_organizer = require_role(ORGANIZER)
require_student = require_role(STUDENT)
