import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from linkshortener import database, models
from linkshortener.main import app
from linkshortener.ratelimit import FixedWindowRateLimiter
from linkshortener.visitors import GeoLocator, get_geolocator


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[database.get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_geolocator] = lambda: GeoLocator(None)
    # Fresh counters per test
    app.state.shorten_limiter = FixedWindowRateLimiter(10, 60)
    app.state.api_limiter = FixedWindowRateLimiter(60, 60)

    yield TestClient(app)

    app.dependency_overrides.clear()
