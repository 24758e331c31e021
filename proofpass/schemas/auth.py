from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if "@" not in value or value.startswith("@") or value.endswith("@"):
        raise ValueError("Invalid email address")
    return value


class LoginForm(BaseModel):
    email: str
    password: str

    check_email = field_validator("email")(_normalize_email)


class OrganizerRegister(BaseModel):
    name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=6)
    wallet_address: Optional[str] = None

    check_email = field_validator("email")(_normalize_email)


class StudentRegister(BaseModel):
    email: str
    password: str = Field(min_length=6)
    wallet_address: Optional[str] = None
    name: Optional[str] = None
    college: Optional[str] = None
    roll_no: Optional[str] = None

    check_email = field_validator("email")(_normalize_email)


class OrganizerRead(BaseModel):
    id: str
    name: str
    email: str
    wallet_address: Optional[str] = None
    role: Literal["organizer"] = "organizer"


class StudentRead(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    wallet_address: Optional[str] = None
    role: Literal["student"] = "student"
