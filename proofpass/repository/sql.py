from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, TypeVar

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select

from proofpass.models import Event, Organizer, Registration, Student, User
from proofpass.repository.base import (
    DuplicateEntryError,
    Repository,
    check_event_update,
    check_registration_update,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=SQLModel)


class SqlRepository(Repository):
    """SQLModel backed repository. Each call runs in its own session."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def _get(self, model: type[M], key: str) -> Optional[M]:
        with self._session() as session:
            return session.get(model, key)

    def _find(self, model: type[M], **criteria: Any) -> list[M]:
        statement = select(model)
        for column, value in criteria.items():
            statement = statement.where(getattr(model, column) == value)
        with self._session() as session:
            return list(session.exec(statement).all())

    def _first(self, model: type[M], **criteria: Any) -> Optional[M]:
        found = self._find(model, **criteria)
        return found[0] if found else None

    def _insert(self, obj: M) -> M:
        row = type(obj).model_validate(obj.model_dump())
        with self._session() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateEntryError(str(e.orig)) from e
            return row

    def _update(self, model: type[M], key: str, fields: dict[str, Any], check=None) -> Optional[M]:
        with self._session() as session:
            row = session.get(model, key)
            if row is None:
                return None
            if check is not None:
                check(row, fields)
            for name, value in fields.items():
                setattr(row, name, value)
            session.add(row)
            session.commit()
            return row

    # --- legacy users ---

    def get_user(self, user_id: str) -> Optional[User]:
        return self._get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._first(User, username=username)

    def create_user(self, user: User) -> User:
        return self._insert(user)

    # --- organizers ---

    def get_organizer(self, organizer_id: str) -> Optional[Organizer]:
        return self._get(Organizer, organizer_id)

    def get_organizer_by_email(self, email: str) -> Optional[Organizer]:
        return self._first(Organizer, email=email)

    def create_organizer(self, organizer: Organizer) -> Organizer:
        return self._insert(organizer)

    def update_organizer(self, organizer_id: str, **fields: Any) -> Optional[Organizer]:
        return self._update(Organizer, organizer_id, fields)

    # --- students ---

    def get_student(self, student_id: str) -> Optional[Student]:
        return self._get(Student, student_id)

    def get_student_by_email(self, email: str) -> Optional[Student]:
        return self._first(Student, email=email)

    def create_student(self, student: Student) -> Student:
        return self._insert(student)

    def update_student(self, student_id: str, **fields: Any) -> Optional[Student]:
        return self._update(Student, student_id, fields)

    # --- events ---

    def get_event(self, event_id: str) -> Optional[Event]:
        return self._get(Event, event_id)

    def get_event_by_collection(self, collection_id: str) -> Optional[Event]:
        return self._first(Event, collection_id=collection_id)

    def list_events(self) -> list[Event]:
        return self._find(Event)

    def list_events_by_organizer(self, organizer_id: str) -> list[Event]:
        return self._find(Event, organizer_id=organizer_id)

    def create_event(self, event: Event) -> Event:
        return self._insert(event)

    def update_event(self, event_id: str, **fields: Any) -> Optional[Event]:
        return self._update(Event, event_id, fields, check=check_event_update)

    def delete_event(self, event_id: str) -> bool:
        with self._session() as session:
            row = session.get(Event, event_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    # --- registrations ---

    def get_registration(self, event_id: str, student_id: str) -> Optional[Registration]:
        return self._first(Registration, event_id=event_id, student_id=student_id)

    def get_registration_by_id(self, registration_id: str) -> Optional[Registration]:
        return self._get(Registration, registration_id)

    def list_registrations_for_event(self, event_id: str) -> list[Registration]:
        return self._find(Registration, event_id=event_id)

    def list_registrations_for_student(self, student_id: str) -> list[Registration]:
        return self._find(Registration, student_id=student_id)

    def create_registration(self, registration: Registration) -> Registration:
        return self._insert(registration)

    def update_registration(self, registration_id: str, **fields: Any) -> Optional[Registration]:
        check_registration_update(fields)
        return self._update(Registration, registration_id, fields)

    def complete_claim(
        self,
        registration_id: str,
        *,
        serial: str,
        metadata_cid: str,
        claimed_at: datetime,
    ) -> Optional[Registration]:
        statement = (
            update(Registration)
            .where(Registration.id == registration_id, Registration.claimed == False)  # noqa: E712
            .values(claimed=True, claimed_at=claimed_at, nft_serial=serial, metadata_cid=metadata_cid)
        )
        with self._session() as session:
            result = session.execute(statement)
            session.commit()
            if result.rowcount != 1:
                logger.warning("Claim write for registration %s matched no unclaimed row", registration_id)
                return None
            return session.get(Registration, registration_id)
