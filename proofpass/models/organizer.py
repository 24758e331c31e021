from typing import Optional
from uuid import uuid4

from sqlmodel import Field, SQLModel


class Organizer(SQLModel, table=True):
    __tablename__ = "organizers"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    wallet_address: Optional[str] = None
