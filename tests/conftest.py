"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from term_savings.api.main import create_app
from term_savings.api.dependencies import get_clock, get_settlement_client
from term_savings.infrastructure.clients.settlement import SettlementClient
from term_savings.infrastructure.database.models import Base
from term_savings.infrastructure.database.session import get_db
from term_savings.domain.catalog import get_plan
from term_savings.domain.models import SavingsPlan


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Manually advanced wall clock"""

    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(START)


@pytest.fixture
def premium_plan() -> SavingsPlan:
    """30 days at 12% APY"""
    return get_plan(3)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def settlement_client() -> MagicMock:
    """Settlement client that records events instead of sending them"""
    client = MagicMock(spec=SettlementClient)
    client.send_settlement_event = AsyncMock(return_value=None)
    return client


@pytest.fixture
def client(db: Session, clock: FrozenClock, settlement_client: MagicMock) -> TestClient:
    """Create FastAPI test client with test database, pinned clock and stub settlement"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock.now
    app.dependency_overrides[get_settlement_client] = lambda: settlement_client
    return TestClient(app)
