from typing import Optional
from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlmodel import Field, SQLModel
from sqlalchemy import CheckConstraint


class AttendanceStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class Event(SQLModel, table=True):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("radius > 0", name="ck_event_radius_positive"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    name: str
    description: Optional[str] = None
    date: str
    venue_name: Optional[str] = None
    venue_lat: float
    venue_long: float
    radius: int = Field(default=100)
    badge_image_cid: Optional[str] = None
    attendance_status: AttendanceStatus = Field(default=AttendanceStatus.CLOSED)
    attendance_started_at: Optional[datetime] = None
    organizer_id: str = Field(foreign_key="organizers.id", index=True, max_length=36)
    # ledger collection the badges of this event are minted under
    collection_id: Optional[str] = Field(default=None, index=True)
