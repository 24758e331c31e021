from typing import Optional

from fastapi import Form
from pydantic import BaseModel, Field

from proofpass.models import AttendanceStatus, Event, Registration


class EventCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    date: str = Field(min_length=1)
    venue_name: Optional[str] = None
    venue_lat: float = Field(ge=-90, le=90)
    venue_long: float = Field(ge=-180, le=180)
    radius: int = Field(default=100, ge=10, le=10000)
    provision_collection: bool = True

    @classmethod
    def as_form(
        cls,
        name: str = Form(...),
        description: Optional[str] = Form(None),
        date: str = Form(...),
        venue_name: Optional[str] = Form(None),
        venue_lat: float = Form(...),
        venue_long: float = Form(...),
        radius: int = Form(100),
        provision_collection: bool = Form(True),
    ):
        return cls(
            name=name,
            description=description,
            date=date,
            venue_name=venue_name,
            venue_lat=venue_lat,
            venue_long=venue_long,
            radius=radius,
            provision_collection=provision_collection,
        )


class AttendanceUpdate(BaseModel):
    status: AttendanceStatus


class EventWithRegistration(BaseModel):
    event: Event
    registration: Optional[Registration] = None


class OrganizerStats(BaseModel):
    total_events: int
    total_registrations: int
    total_claimed: int
    active_events: int
