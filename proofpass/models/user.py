from uuid import uuid4

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Legacy username/password account, kept for storage compatibility."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    username: str = Field(unique=True, index=True)
    password_hash: str
