from typing import Optional
from datetime import datetime, timezone
from uuid import uuid4

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint


class Registration(SQLModel, table=True):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "student_id", name="uq_registration_event_student"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    event_id: str = Field(foreign_key="events.id", index=True, max_length=36)
    student_id: str = Field(foreign_key="students.id", index=True, max_length=36)
    student_wallet: Optional[str] = None
    registered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    claimed: bool = False
    claimed_at: Optional[datetime] = None
    nft_serial: Optional[str] = Field(default=None, index=True)
    metadata_cid: Optional[str] = None


# Only the claim engine may write these, and only all at once.
CLAIM_FIELDS = frozenset({"claimed", "claimed_at", "nft_serial", "metadata_cid"})
