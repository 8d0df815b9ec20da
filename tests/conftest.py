import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="rentnest-media-")

import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import rentnest.models.property  # noqa: F401
import rentnest.models.user  # noqa: F401
from rentnest.core.database import Base, get_db
from rentnest.main import app
from rentnest.services.identity import IdentityStore
from rentnest.services.listings import ListingStore
from rentnest.utils.auth import create_access_token
from rentnest.utils.file_storage import StoredBlob, get_blob_store


class InMemoryBlobStore:
    """Blob store double; ``fail_on`` makes the n-th upload raise."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.uploads = 0
        self.blobs = {}
        self.deleted = []

    async def upload(self, data, folder, extension="", content_type=None):
        self.uploads += 1
        if self.fail_on is not None and self.uploads == self.fail_on:
            raise IOError("blob store unavailable")
        url = f"https://blobs.test/media/{folder}/{self.uploads}{extension}"
        self.blobs[url] = data
        return StoredBlob(url=url)

    async def delete(self, url):
        self.deleted.append(url)
        self.blobs.pop(url, None)


def property_data(**overrides):
    data = {
        "title": "Cozy Flat",
        "description": "Bright two bedroom flat with good light",
        "property_type": "apartment",
        "location": {"division": "Dhaka", "district": "Dhaka", "area": "Gulshan"},
        "rent": {"amount": 3000},
        "features": {"bedrooms": 2, "bathrooms": 1, "furnished": "furnished"},
        "amenities": ["lift", "generator"],
        "contact": {"name": "Rahim", "phone": "01712345678"},
    }
    data.update(overrides)
    return data


def auth_headers(user):
    token = create_access_token({"sub": str(user.id), "account_type": user.account_type.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def identity(db):
    return IdentityStore(db)


@pytest.fixture
def listings(db, blob_store):
    return ListingStore(db, blob_store)


@pytest.fixture
def owner(identity):
    return identity.register(
        full_name="Olivia Owner",
        email="owner@example.com",
        password="secret123",
        account_type="owner",
    )


@pytest.fixture
def other_owner(identity):
    return identity.register(
        full_name="Oscar Other",
        mobile="01898765432",
        password="secret123",
        account_type="owner",
    )


@pytest.fixture
def tenant(identity):
    return identity.register(
        full_name="Tara Tenant",
        email="tenant@example.com",
        password="secret123",
        account_type="tenant",
    )


@pytest.fixture
def make_property(db, listings, owner):
    """Create a listing; ``age`` minutes back-dates it for ordering tests."""
    created = []

    def _make(owner_user=None, age=None, **overrides):
        prop = asyncio.run(listings.create((owner_user or owner).id, property_data(**overrides)))
        if age is None:
            age = 1000 - len(created)
        prop.created_at = datetime(2026, 1, 1) - timedelta(minutes=age)
        db.commit()
        created.append(prop)
        return prop

    return _make


@pytest.fixture
def client(db, blob_store):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield TestClient(app)
    app.dependency_overrides.clear()
