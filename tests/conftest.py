import pytest
from httpx import ASGITransport, AsyncClient

from proofpass.db import create_db_and_tables, make_engine
from proofpass.issuer import MockCredentialIssuer
from proofpass.main import create_app
from proofpass.models import AttendanceStatus, Organizer, Student
from proofpass.repository import InMemoryRepository, SqlRepository
from proofpass.schemas.event import EventCreate
from proofpass.security import ORGANIZER, STUDENT, Principal
from proofpass.services.claims import ClaimEngine
from proofpass.services.lifecycle import EventLifecycle

from .helpers import STUDENT_WALLET, VENUE_LAT, VENUE_LONG, auth_headers


@pytest.fixture(name="repository", params=["memory", "sql"])
def repository_fixture(request, tmp_path):
    if request.param == "memory":
        yield InMemoryRepository()
        return
    # a file database, so claim threads get their own connections
    engine = make_engine(f"sqlite:///{tmp_path / 'proofpass.db'}")
    create_db_and_tables(engine)
    yield SqlRepository(engine)
    engine.dispose()


@pytest.fixture(name="issuer")
def issuer_fixture():
    return MockCredentialIssuer()


@pytest.fixture(name="lifecycle")
def lifecycle_fixture(repository, issuer):
    return EventLifecycle(repository, issuer)


@pytest.fixture(name="engine")
def engine_fixture(repository, issuer):
    return ClaimEngine(repository, issuer)


@pytest.fixture(name="organizer")
def organizer_fixture(repository):
    return repository.create_organizer(
        Organizer(name="Coimbatore Tech Society", email="org@example.com", password_hash="not-used")
    )


@pytest.fixture(name="organizer_principal")
def organizer_principal_fixture(organizer):
    return Principal(id=organizer.id, role=ORGANIZER)


@pytest.fixture(name="student")
def student_fixture(repository):
    return repository.create_student(
        Student(email="s1@example.com", password_hash="not-used", wallet_address=STUDENT_WALLET, name="Kai")
    )


@pytest.fixture(name="event_fields")
def event_fields_fixture():
    return EventCreate(
        name="Python Meetup",
        description="Monthly meetup",
        date="2026-11-02",
        venue_name="PSG Auditorium",
        venue_lat=VENUE_LAT,
        venue_long=VENUE_LONG,
        radius=100,
    )


@pytest.fixture(name="event")
def event_fixture(lifecycle, organizer, event_fields):
    return lifecycle.create_event(organizer.id, event_fields)


@pytest.fixture(name="open_event")
def open_event_fixture(lifecycle, organizer_principal, event):
    return lifecycle.set_attendance_status(organizer_principal, event.id, AttendanceStatus.OPEN)


@pytest.fixture(name="app")
def app_fixture(repository, issuer):
    return create_app(repository=repository, issuer=issuer)


@pytest.fixture(name="client")
def client_fixture(app):
    client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    yield client


@pytest.fixture(name="student_headers")
def student_headers_fixture(student):
    return auth_headers(student.id, STUDENT)


@pytest.fixture(name="organizer_headers")
def organizer_headers_fixture(organizer):
    return auth_headers(organizer.id, ORGANIZER)
