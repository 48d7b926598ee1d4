import pytest
import sys
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure backend path is in sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from database import Base, get_db
from main import app
from api.cron import get_clock
from models.schemas import DutyEntryInput
from services.rotation.store import SqlDutyStore

# Use in-memory DB for tests with StaticPool to share connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create tables before tests run."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session():
    """Provide a transactional scope for each test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture
def store(db_session):
    return SqlDutyStore(db_session)

@pytest.fixture
def seed_duties(store):
    """Writes the given duty codes for an instructor on each date."""
    def _seed(instructor_id, dates, duties):
        for d in dates:
            store.upsert(DutyEntryInput(
                employee_id=instructor_id,
                date=d,
                duties=list(duties),
                created_by="test",
                updated_by="test"
            ))
    return _seed

@pytest.fixture
def use_clock(client):
    """Pins the clock seen by the routes to a fixed UTC moment."""
    def _use(moment):
        app.dependency_overrides[get_clock] = lambda: (lambda: moment)
    return _use

@pytest.fixture
def client(db_session):
    """Test client with overridden dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    yield TestClient(app)
    app.dependency_overrides.clear()
