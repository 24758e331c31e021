from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from proofpass.config import settings

# bcrypt stays verifiable so older hashes are migrated to argon2 on login
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")

ORGANIZER = "organizer"
STUDENT = "student"
ROLES = (ORGANIZER, STUDENT)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: an account id and the role it signed in with."""
    id: str
    role: str

    @property
    def is_organizer(self) -> bool:
        return self.role == ORGANIZER

    @property
    def is_student(self) -> bool:
        return self.role == STUDENT


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_and_update_password(password: str, hashed_password: str) -> tuple[bool, Optional[str]]:
    """
    Check a password and return ``(valid, new_hash)``. ``new_hash`` is set when
    the stored hash uses a deprecated scheme and should be replaced.
    """
    return pwd_context.verify_and_update(password, hashed_password)


def token_for(principal: Principal, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a JWT carrying the principal's id (``sub``) and ``role``."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {"sub": principal.id, "role": principal.role, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def principal_from_token(token: str) -> Optional[Principal]:
    """Decode a token; ``None`` when it is invalid, expired or carries an unknown role."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    subject, role = payload.get("sub"), payload.get("role")
    if not subject or role not in ROLES:
        return None
    return Principal(id=subject, role=role)
