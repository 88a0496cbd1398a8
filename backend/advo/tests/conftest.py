import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="advo-uploads-"))

from collections.abc import Generator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from advo.api.deps import get_db  # noqa: E402
from advo.core.security import create_access_token, get_password_hash  # noqa: E402
from advo.geocoding import Geocoder, get_geocoder  # noqa: E402
from advo.main import app  # noqa: E402
from advo.models import Resource, User, UserRole  # noqa: E402

TEST_PASSWORD = "password123"

# Known locations served by the mocked Google Geocoding API
KNOWN_LOCATIONS = {
    "10001, USA": (40.7506, -73.9972),  # Manhattan
    "11201, USA": (40.6940, -73.9903),  # Brooklyn
    "19103, USA": (39.9526, -75.1652),  # Philadelphia
    "1 Market St, Philadelphia, PA 19103": (39.9522, -75.1639),
    "200 Court St, Brooklyn, NY 11201": (40.6890, -73.9928),
}


def geocode_api_handler(request: httpx.Request) -> httpx.Response:
    address = request.url.params.get("address", "")
    if address not in KNOWN_LOCATIONS:
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
    lat, lng = KNOWN_LOCATIONS[address]
    return httpx.Response(
        200,
        json={
            "status": "OK",
            "results": [{"geometry": {"location": {"lat": lat, "lng": lng}}}],
        },
    )


@pytest.fixture(name="engine")
def engine_fixture() -> Generator[Any, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine: Any) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture(name="geocoder")
def geocoder_fixture() -> Geocoder:
    return Geocoder(api_key="test-key", transport=httpx.MockTransport(geocode_api_handler))


@pytest.fixture(name="client")
def client_fixture(session: Session, geocoder: Geocoder) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_db] = lambda: session
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session: Session):
    def _make_user(
        email: str, *, role: UserRole = UserRole.USER, password: str = TEST_PASSWORD, **extra: Any
    ) -> User:
        user = User(
            email=email, role=role, hashed_password=get_password_hash(password), **extra
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token(user.id, expires_delta=timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("admin@example.org", role=UserRole.ADMIN, full_name="Ada Admin")


@pytest.fixture
def normal_user(make_user) -> User:
    return make_user("user@example.org", full_name="Uma User")


@pytest.fixture
def admin_headers(admin_user: User, auth_headers) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def user_headers(normal_user: User, auth_headers) -> dict[str, str]:
    return auth_headers(normal_user)


@pytest.fixture
def make_resource(session: Session):
    """Creates resources whose ``created_at`` goes back one day per position."""
    created = []

    def _make_resource(name: str, **fields: Any) -> Resource:
        fields.setdefault(
            "created_at", datetime.now(timezone.utc) - timedelta(days=len(created))
        )
        resource = Resource(name=name, **fields)
        session.add(resource)
        session.commit()
        session.refresh(resource)
        created.append(resource)
        return resource

    return _make_resource
