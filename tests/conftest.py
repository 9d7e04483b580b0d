import os

# must be in place before camper.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import itertools

import httpx
import pytest

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from starlette.datastructures import UploadFile

# Import Base + all models so metadata is complete
from camper.models import Base  # noqa: F401
from camper.models.user import User  # noqa: F401
from camper.models.session import SessionRecord  # noqa: F401
from camper.models.campground import Campground  # noqa: F401
from camper.models.image import Image  # noqa: F401
from camper.models.review import Review  # noqa: F401

import camper.core.security as security
from camper.main import app
from camper.core.db import get_db
from camper.services.geocoding import GeocodingError, GeoPoint, NoMatch, get_geocoder
from camper.services.sessions import SessionStore
from camper.services.storage import ImageStoreError, StoredImage, get_image_store


KNOWN_PLACES = {
    "Yosemite, CA": GeoPoint(longitude=-119.5383, latitude=37.8651),
    "Moab, UT": GeoPoint(longitude=-109.5498, latitude=38.5733),
    "Asheville, NC": GeoPoint(longitude=-82.5515, latitude=35.5951),
}


class FakeGeocoder:
    def __init__(self):
        self.calls: list[str] = []
        self.broken = False

    async def forward_geocode(self, query: str) -> GeoPoint:
        self.calls.append(query)
        if self.broken:
            raise GeocodingError("HTTP_503")
        if query not in KNOWN_PLACES:
            raise NoMatch(query)
        return KNOWN_PLACES[query]


class FakeImageStore:
    def __init__(self):
        self._seq = itertools.count(1)
        self.uploaded: list[StoredImage] = []
        self.deleted: list[str] = []
        # 1-based index of the upload that should fail
        self.fail_on_upload: int | None = None
        self.fail_deletes: set[str] = set()

    async def upload(self, file: UploadFile) -> StoredImage:
        n = next(self._seq)
        await file.read()
        if self.fail_on_upload == n:
            raise ImageStoreError("HTTP_500")
        stored = StoredImage(
            url=f"https://res.cloudinary.com/demo/image/upload/v1/Camper/img{n}.jpg",
            filename=f"Camper/img{n}",
        )
        self.uploaded.append(stored)
        return stored

    async def delete(self, filename: str) -> None:
        self.deleted.append(filename)
        if filename in self.fail_deletes:
            raise ImageStoreError("HTTP_500")


def _test_db_url(tmp_path) -> str:
    # DATABASE_URL_TEST points at a throwaway Postgres; otherwise a sqlite file per test
    return os.getenv("DATABASE_URL_TEST") or f"sqlite+aiosqlite:///{tmp_path / 'camper.db'}"


@pytest.fixture(autouse=True)
def _fast_password_hashing(monkeypatch):
    monkeypatch.setattr(security, "PBKDF2_ITERATIONS", 1000)


@pytest.fixture
async def async_engine(tmp_path):
    engine = create_async_engine(_test_db_url(tmp_path), future=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db_session(session_factory):
    """Separate session for assertions; read columns/counts, not cached entities."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
async def make_client(session_factory, geocoder, image_store):
    """
    Factory for HTTP clients wired to the test DB and the fake upstreams.
    Every client has its own cookie jar, i.e. its own browser session.
    """

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_image_store] = lambda: image_store

    previous_store = app.state.session_store
    app.state.session_store = SessionStore(session_factory)

    clients: list[httpx.AsyncClient] = []

    def _make(*, raise_app_exceptions: bool = True) -> httpx.AsyncClient:
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        ac = httpx.AsyncClient(transport=transport, base_url="http://test")
        clients.append(ac)
        return ac

    try:
        yield _make
    finally:
        for ac in clients:
            await ac.aclose()
        app.state.session_store = previous_store
        app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()
