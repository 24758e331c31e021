from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from proofpass.models import CLAIM_FIELDS, Event, Organizer, Registration, Student, User


class DuplicateEntryError(Exception):
    """A unique key (email, username, event+student pair) is already taken."""


class Repository(ABC):
    """
    Storage for the five entity kinds.

    Lookups return ``None`` when nothing matches; only infrastructure failures
    raise. Returned entities are snapshots: mutating them does not change what
    other callers see, every write goes through an ``update_*``/``complete_claim``
    call.
    """

    # --- legacy users ---

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, user: User) -> User: ...

    # --- organizers ---

    @abstractmethod
    def get_organizer(self, organizer_id: str) -> Optional[Organizer]: ...

    @abstractmethod
    def get_organizer_by_email(self, email: str) -> Optional[Organizer]: ...

    @abstractmethod
    def create_organizer(self, organizer: Organizer) -> Organizer: ...

    @abstractmethod
    def update_organizer(self, organizer_id: str, **fields: Any) -> Optional[Organizer]: ...

    # --- students ---

    @abstractmethod
    def get_student(self, student_id: str) -> Optional[Student]: ...

    @abstractmethod
    def get_student_by_email(self, email: str) -> Optional[Student]: ...

    @abstractmethod
    def create_student(self, student: Student) -> Student: ...

    @abstractmethod
    def update_student(self, student_id: str, **fields: Any) -> Optional[Student]: ...

    # --- events ---

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[Event]: ...

    @abstractmethod
    def get_event_by_collection(self, collection_id: str) -> Optional[Event]: ...

    @abstractmethod
    def list_events(self) -> list[Event]: ...

    @abstractmethod
    def list_events_by_organizer(self, organizer_id: str) -> list[Event]: ...

    @abstractmethod
    def create_event(self, event: Event) -> Event: ...

    @abstractmethod
    def update_event(self, event_id: str, **fields: Any) -> Optional[Event]: ...

    @abstractmethod
    def delete_event(self, event_id: str) -> bool: ...

    # --- registrations ---

    @abstractmethod
    def get_registration(self, event_id: str, student_id: str) -> Optional[Registration]: ...

    @abstractmethod
    def get_registration_by_id(self, registration_id: str) -> Optional[Registration]: ...

    @abstractmethod
    def list_registrations_for_event(self, event_id: str) -> list[Registration]: ...

    @abstractmethod
    def list_registrations_for_student(self, student_id: str) -> list[Registration]: ...

    @abstractmethod
    def create_registration(self, registration: Registration) -> Registration: ...

    @abstractmethod
    def update_registration(self, registration_id: str, **fields: Any) -> Optional[Registration]: ...

    @abstractmethod
    def complete_claim(
        self,
        registration_id: str,
        *,
        serial: str,
        metadata_cid: str,
        claimed_at: datetime,
    ) -> Optional[Registration]:
        """
        Atomically flip ``claimed`` from false to true and record the serial and
        metadata reference. Returns ``None`` when the registration is missing or
        was already claimed, so at most one caller ever wins.
        """


def check_registration_update(fields: dict[str, Any]) -> None:
    blocked = CLAIM_FIELDS.intersection(fields)
    if blocked:
        raise ValueError(f"Claim fields {sorted(blocked)} can only be written by complete_claim()")


def check_event_update(current: Event, fields: dict[str, Any]) -> None:
    new_collection = fields.get("collection_id", current.collection_id)
    if current.collection_id and new_collection != current.collection_id:
        raise ValueError(f"Event {current.id} already has collection {current.collection_id}")
    if "radius" in fields and fields["radius"] <= 0:
        raise ValueError("radius must be positive")
