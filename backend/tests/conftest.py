import os

# Keep app startup (init_db) off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from typing import Iterable, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from flyball.database import get_session  # noqa: E402
from flyball.main import app  # noqa: E402
from flyball.models.ring_configuration import RingConfiguration  # noqa: E402
from flyball.models.tournament import Race, Tournament  # noqa: E402
from flyball.services.assignment_engine import AssignmentEngine, get_assignment_engine  # noqa: E402
from flyball.services.assignment_store import AssignmentStore  # noqa: E402
from flyball.services.connection_manager import ConnectionManager, get_connection_manager  # noqa: E402
from flyball.services.notification_service import RealTimeNotificationService  # noqa: E402
from flyball.services.tournament_catalog import SqlRingConfigurationProvider, SqlTournamentCatalog  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are created per test and dropped afterwards, so tournament ids
#    like "T1" can be reused across tests
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


class RecordingNotifier:
    """NotificationSink that remembers every call"""

    def __init__(self):
        self.updated = []
        self.cleared = []

    def notify_assignment_updated(self, tournament_id, assignments):
        self.updated.append((tournament_id, assignments))

    def notify_ring_cleared(self, tournament_id, ring_number, assignments):
        self.cleared.append((tournament_id, ring_number, assignments))


def seed_tournament(
    session: Session,
    tournament_id: str = "T1",
    race_numbers: Iterable[int] = (1, 2, 3),
    rings: Optional[List[Tuple[int, str]]] = None,
) -> Tournament:
    """Tournament with races and (by default) rings 1=Red, 2=Blue."""
    if rings is None:
        rings = [(1, "Red"), (2, "Blue")]
    tournament = Tournament(id=tournament_id, name=f"Tournament {tournament_id}")
    session.add(tournament)
    session.flush()
    for n in race_numbers:
        session.add(
            Race(
                tournament_id=tournament_id,
                race_number=n,
                left_team=f"Left {n}",
                right_team=f"Right {n}",
                division="Open",
            )
        )
    for ring_number, color in rings:
        session.add(RingConfiguration(tournament_id=tournament_id, ring_number=ring_number, color=color))
    session.commit()
    return tournament


def build_engine(bind, notifier) -> AssignmentEngine:
    return AssignmentEngine(
        store=AssignmentStore(bind),
        catalog=SqlTournamentCatalog(bind),
        ring_provider=SqlRingConfigurationProvider(bind),
        notifier=notifier,
    )


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a freshly created schema"""
    # Import all models to ensure they're registered BEFORE create_all
    from flyball.models.race_assignments import TournamentRaceAssignments  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="notifier")
def notifier_fixture():
    return RecordingNotifier()


@pytest.fixture(name="engine")
def engine_fixture(session: Session, notifier: RecordingNotifier) -> AssignmentEngine:
    """AssignmentEngine on the test database with a recording notifier"""
    return build_engine(test_engine, notifier)


@pytest.fixture(name="connections")
def connections_fixture() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture(name="client")
def client_fixture(session: Session, connections: ConnectionManager):
    """Provide a test client wired to the test database and a fresh viewer group

    Overrides MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    api_engine = build_engine(test_engine, RealTimeNotificationService(connections))

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_assignment_engine] = lambda: api_engine
    app.dependency_overrides[get_connection_manager] = lambda: connections

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
