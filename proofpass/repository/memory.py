from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Optional, TypeVar

from sqlmodel import SQLModel

from proofpass.models import Event, Organizer, Registration, Student, User
from proofpass.repository.base import (
    DuplicateEntryError,
    Repository,
    check_event_update,
    check_registration_update,
)

M = TypeVar("M", bound=SQLModel)


def _clone(obj: M) -> M:
    return type(obj).model_validate(obj.model_dump())


class InMemoryRepository(Repository):
    """Dict backed repository. One lock guards every read-modify-write."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._organizers: dict[str, Organizer] = {}
        self._students: dict[str, Student] = {}
        self._events: dict[str, Event] = {}
        self._registrations: dict[str, Registration] = {}

    def _get(self, table: dict[str, M], key: str) -> Optional[M]:
        with self._lock:
            obj = table.get(key)
            return _clone(obj) if obj is not None else None

    def _find(self, table: dict[str, M], **criteria: Any) -> list[M]:
        with self._lock:
            return [
                _clone(obj)
                for obj in table.values()
                if all(getattr(obj, k) == v for k, v in criteria.items())
            ]

    def _first(self, table: dict[str, M], **criteria: Any) -> Optional[M]:
        found = self._find(table, **criteria)
        return found[0] if found else None

    def _insert(self, table: dict[str, M], obj: M, **unique: Any) -> M:
        with self._lock:
            for column, value in unique.items():
                if any(getattr(row, column) == value for row in table.values()):
                    raise DuplicateEntryError(f"{type(obj).__name__}.{column}={value!r} already exists")
            if obj.id in table:
                raise DuplicateEntryError(f"{type(obj).__name__} {obj.id} already exists")
            table[obj.id] = _clone(obj)
            return _clone(obj)

    def _update(self, table: dict[str, M], key: str, fields: dict[str, Any]) -> Optional[M]:
        with self._lock:
            current = table.get(key)
            if current is None:
                return None
            updated = type(current).model_validate({**current.model_dump(), **fields})
            table[key] = updated
            return _clone(updated)

    # --- legacy users ---

    def get_user(self, user_id: str) -> Optional[User]:
        return self._get(self._users, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._first(self._users, username=username)

    def create_user(self, user: User) -> User:
        return self._insert(self._users, user, username=user.username)

    # --- organizers ---

    def get_organizer(self, organizer_id: str) -> Optional[Organizer]:
        return self._get(self._organizers, organizer_id)

    def get_organizer_by_email(self, email: str) -> Optional[Organizer]:
        return self._first(self._organizers, email=email)

    def create_organizer(self, organizer: Organizer) -> Organizer:
        return self._insert(self._organizers, organizer, email=organizer.email)

    def update_organizer(self, organizer_id: str, **fields: Any) -> Optional[Organizer]:
        return self._update(self._organizers, organizer_id, fields)

    # --- students ---

    def get_student(self, student_id: str) -> Optional[Student]:
        return self._get(self._students, student_id)

    def get_student_by_email(self, email: str) -> Optional[Student]:
        return self._first(self._students, email=email)

    def create_student(self, student: Student) -> Student:
        return self._insert(self._students, student, email=student.email)

    def update_student(self, student_id: str, **fields: Any) -> Optional[Student]:
        return self._update(self._students, student_id, fields)

    # --- events ---

    def get_event(self, event_id: str) -> Optional[Event]:
        return self._get(self._events, event_id)

    def get_event_by_collection(self, collection_id: str) -> Optional[Event]:
        return self._first(self._events, collection_id=collection_id)

    def list_events(self) -> list[Event]:
        return self._find(self._events)

    def list_events_by_organizer(self, organizer_id: str) -> list[Event]:
        return self._find(self._events, organizer_id=organizer_id)

    def create_event(self, event: Event) -> Event:
        return self._insert(self._events, event)

    def update_event(self, event_id: str, **fields: Any) -> Optional[Event]:
        with self._lock:
            current = self._events.get(event_id)
            if current is None:
                return None
            check_event_update(current, fields)
            return self._update(self._events, event_id, fields)

    def delete_event(self, event_id: str) -> bool:
        with self._lock:
            return self._events.pop(event_id, None) is not None

    # --- registrations ---

    def get_registration(self, event_id: str, student_id: str) -> Optional[Registration]:
        return self._first(self._registrations, event_id=event_id, student_id=student_id)

    def get_registration_by_id(self, registration_id: str) -> Optional[Registration]:
        return self._get(self._registrations, registration_id)

    def list_registrations_for_event(self, event_id: str) -> list[Registration]:
        return self._find(self._registrations, event_id=event_id)

    def list_registrations_for_student(self, student_id: str) -> list[Registration]:
        return self._find(self._registrations, student_id=student_id)

    def create_registration(self, registration: Registration) -> Registration:
        with self._lock:
            if self.get_registration(registration.event_id, registration.student_id):
                raise DuplicateEntryError(
                    f"Student {registration.student_id} already registered for {registration.event_id}"
                )
            return self._insert(self._registrations, registration)

    def update_registration(self, registration_id: str, **fields: Any) -> Optional[Registration]:
        check_registration_update(fields)
        return self._update(self._registrations, registration_id, fields)

    def complete_claim(
        self,
        registration_id: str,
        *,
        serial: str,
        metadata_cid: str,
        claimed_at: datetime,
    ) -> Optional[Registration]:
        with self._lock:
            current = self._registrations.get(registration_id)
            if current is None or current.claimed:
                return None
            return self._update(
                self._registrations,
                registration_id,
                {
                    "claimed": True,
                    "claimed_at": claimed_at,
                    "nft_serial": serial,
                    "metadata_cid": metadata_cid,
                },
            )
