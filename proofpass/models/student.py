from typing import Optional
from uuid import uuid4

from sqlmodel import Field, SQLModel


class Student(SQLModel, table=True):
    __tablename__ = "students"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    email: str = Field(unique=True, index=True)
    password_hash: str
    wallet_address: Optional[str] = None
    profile_cid: Optional[str] = None
    name: Optional[str] = None
    college: Optional[str] = None
    department: Optional[str] = None
    roll_no: Optional[str] = None
