import os
import tempfile

# Configure the app before it is imported: no Redis, throwaway upload dir.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["CACHE_ENABLED"] = "false"
os.environ["ASSET_STORE"] = "local"
os.environ["BASE_URL"] = "http://testserver"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="catalog-uploads-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database import Base, get_db
from app.storage.base import AssetStore, AssetStoreError, StoredAsset
from app.storage.factory import get_asset_store
from app.storage.local import LocalAssetStore


# Create test database (SQLite in-memory for testing)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the dependency
app.dependency_overrides[get_db] = override_get_db


class FakeAssetStore(AssetStore):
    """In-memory asset store that behaves like a remote host."""

    name = "fake"

    def __init__(self):
        self.assets = {}
        self.deleted = []
        self.fail_on_delete = False
        self._counter = 0

    def store(self, data: bytes, content_type: str) -> StoredAsset:
        self._counter += 1
        public_id = f"products/asset-{self._counter}"
        url = f"https://cdn.example.com/{public_id}"
        self.assets[public_id] = data
        return StoredAsset(url=url, public_id=public_id)

    def delete(self, url, public_id=None) -> None:
        if self.fail_on_delete:
            raise AssetStoreError("asset host unavailable")
        self.deleted.append(public_id)
        self.assets.pop(public_id, None)


@pytest.fixture(scope="function")
def asset_store(tmp_path):
    """Local asset store writing into a per-test directory."""
    return LocalAssetStore(
        directory=str(tmp_path / "uploads"),
        base_url="http://testserver",
        url_prefix="/uploads",
    )


@pytest.fixture(scope="function")
def fake_store():
    return FakeAssetStore()


@pytest.fixture(scope="function")
def client(asset_store):
    """Create test client with fresh database for each test."""
    # Create tables
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_asset_store] = lambda: asset_store

    with TestClient(app) as test_client:
        yield test_client

    # Drop tables after test
    app.dependency_overrides.pop(get_asset_store, None)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create database session for direct database access in tests."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def create_product(client):
    """Helper that creates a product through the API and returns its JSON."""
    def _create(**overrides):
        payload = {"name": "Test Product", "price": 100.0, "sku": "TEST-1"}
        payload.update(overrides)
        response = client.post("/api/v1/products/", json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _create
