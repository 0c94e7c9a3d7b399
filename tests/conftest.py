"""Shared pytest fixtures for the image credits service tests."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import io
import json
import shutil
import tempfile
import time
from pathlib import Path
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from dal.credit_dal import CreditDAL
from dal.image_dal import ImageDAL
from main import create_app
from routes.dependencies import get_image_downloader, get_image_generator
from services.blob_store import LocalBlobStore
from services.errors import GenerationFailed
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings


def make_png_bytes(color: str = "red") -> bytes:
    """Return the bytes of a tiny PNG image."""
    out = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(out, format="PNG")
    return out.getvalue()


class FakeImageGenerator:
    """Stand-in for the provider that records every prompt it receives."""

    def __init__(self, url: str = "https://provider.example/generated.png", fail: bool = False) -> None:
        self.url = url
        self.fail = fail
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise GenerationFailed()
        return self.url


class FakeDownloader:
    """Stand-in for the image downloader returning fixed bytes."""

    def __init__(self, body: bytes | None = None, content_type: str = "image/png", fail: bool = False) -> None:
        self.body = make_png_bytes() if body is None else body
        self.content_type = content_type
        self.fail = fail
        self.urls: List[str] = []

    async def download(self, url: str):
        self.urls.append(url)
        if self.fail:
            raise GenerationFailed("Error downloading generated image")
        return self.body, self.content_type


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def db(temp_dir: Path) -> AsyncDatabaseInitializer:
    """Database initializer backed by a file in the temporary directory."""
    return AsyncDatabaseInitializer(temp_dir / "db")


@pytest.fixture
def image_dal(db: AsyncDatabaseInitializer) -> ImageDAL:
    return ImageDAL(db)


@pytest.fixture
def credit_dal(db: AsyncDatabaseInitializer) -> CreditDAL:
    return CreditDAL(db)


@pytest.fixture
def blob_store(temp_dir: Path) -> LocalBlobStore:
    return LocalBlobStore(temp_dir / "blobs", "http://testserver/blobs")


@pytest.fixture
def fake_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture
def fake_downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Settings pointing every store at the temporary directory."""
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        database_dir=temp_dir / "db",
        blob_dir=temp_dir / "blobs",
        public_base_url="http://testserver",
        public_image_limit=100,
    )


@pytest.fixture
def test_client(
    test_settings: Settings,
    fake_generator: FakeImageGenerator,
    fake_downloader: FakeDownloader,
) -> Generator[TestClient, None, None]:
    """TestClient with the provider and downloader replaced by fakes."""
    app = create_app(test_settings)
    app.dependency_overrides[get_image_generator] = lambda: fake_generator
    app.dependency_overrides[get_image_downloader] = lambda: fake_downloader
    with TestClient(app) as client:
        yield client


@pytest.fixture
def ledger(test_settings: Settings) -> CreditDAL:
    """Ledger sharing the database file of `test_client`."""
    return CreditDAL(AsyncDatabaseInitializer(test_settings.database_dir))


def auth(user_id: str) -> dict:
    """Identity header the auth proxy would add for `user_id`."""
    return {"X-User-Id": user_id}


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


WEBHOOK_SECRET = "whsec_test"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Build a Stripe-Signature header for `payload`."""
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def completed_event(session_id: Optional[str] = "cs_test_1", user_id: str = "alice", paid: bool = True) -> bytes:
    """Payload of a `checkout.session.completed` webhook delivery.

    The session id is left out of the payload when `session_id` is None.
    """
    session = {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": "paid" if paid else "unpaid",
        "metadata": {"userId": user_id, "credits": "100"},
    }
    if session_id is None:
        del session["id"]
    return json.dumps(
        {
            "id": "evt_1",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": session},
        }
    ).encode("utf-8")
