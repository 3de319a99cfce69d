# -*- coding: utf-8 -*-
"""
Shared test fixtures for the SupportDesk test suite.

Settings are read at import time, so the database and storage locations
are pointed at a scratch directory before anything from supportdesk is
imported.
"""

import asyncio
import itertools
import os
import tempfile
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

_SCRATCH = tempfile.mkdtemp(prefix="supportdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_SCRATCH, 'test.db')}"
os.environ["STORAGE_ROOT"] = os.path.join(_SCRATCH, "storage")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

from supportdesk.core.exceptions import StorageError  # noqa: E402
from supportdesk.schemas.ticket_schema import Attachment, TicketForm  # noqa: E402


# =============================================================================
# COLLABORATOR FAKES
# =============================================================================

class FakeRecordStore:
    """In-memory RecordStore with per-collection failure injection."""

    def __init__(self):
        self.rows: Dict[str, List[Dict[str, Any]]] = {"tickets": [], "ticket_messages": []}
        self.calls: List[tuple] = []
        self.fail: Dict[str, Exception] = {}
        self.fail_on_message: Dict[str, Exception] = {}
        self.gate: Optional[asyncio.Event] = None
        self._ids = itertools.count(1)

    async def insert(self, collection: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("insert", collection, dict(row)))
        if self.gate is not None:
            await self.gate.wait()
        if collection in self.fail:
            raise self.fail[collection]
        if row.get("message") in self.fail_on_message:
            raise self.fail_on_message[row["message"]]
        stored = {**row, "id": next(self._ids)}
        self.rows.setdefault(collection, []).append(stored)
        return stored

    async def select(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        return [
            r for r in self.rows.get(collection, [])
            if all(r.get(k) == v for k, v in filters.items())
        ]


class FakeBlobStorage:
    """In-memory BlobStorage; objects are keyed by (bucket, path)."""

    def __init__(self):
        self.objects: Dict[tuple, bytes] = {}
        self.attempts: List[str] = []
        self.fail_names: Dict[str, Exception] = {}
        self.delays: Dict[str, asyncio.Event] = {}

    async def upload(self, bucket, path, data, content_type=None):
        self.attempts.append(path)
        name = path.rsplit("/", 1)[-1]
        if name in self.delays:
            await self.delays[name].wait()
        if name in self.fail_names:
            raise self.fail_names[name]
        if (bucket, path) in self.objects:
            raise StorageError("The resource already exists")
        self.objects[(bucket, path)] = data
        return path

    def paths(self) -> List[str]:
        return sorted(path for _, path in self.objects)


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def storage():
    return FakeBlobStorage()


@pytest.fixture
def navigate():
    return MagicMock()


@pytest.fixture
def make_submission(store, storage, navigate):
    """Factory fixture returning a TicketSubmission wired to the fakes."""
    from supportdesk.services.ticket_submission import TicketSubmission

    def _make(user_id: int = 7, **kwargs):
        return TicketSubmission(user_id, store, storage, navigate, **kwargs)

    return _make


# =============================================================================
# FORM DATA
# =============================================================================

@pytest.fixture
def valid_form():
    return TicketForm(
        subject="Installer stops at step 3",
        message="<p>The installer hangs after the database step.</p>",
        priority="high",
        category="Installation Support",
        product="RecruitX",
        purchase_code="a1b2c3d4-e5f6-7890-abcd-ef1234567890",
    )


@pytest.fixture
def make_attachment():
    def _make(name: str = "screenshot.png", content: bytes = b"\x89PNG fake", content_type: str = "image/png"):
        return Attachment(name=name, content=content, content_type=content_type)

    return _make


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def client(tmp_path):
    """TestClient over a fresh schema and a per-test attachment directory."""
    from fastapi.testclient import TestClient

    from supportdesk.api.dependencies import get_storage
    from supportdesk.core.database import Base, engine
    from supportdesk.main import app
    from supportdesk.services.stores import LocalBlobStorage

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    blob_root = tmp_path / "blobs"
    app.dependency_overrides[get_storage] = lambda: LocalBlobStorage(blob_root)
    with TestClient(app) as test_client:
        test_client.blob_root = blob_root
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    """Register a user and return bearer headers for it."""

    def _headers(email: str = "customer@example.com", password: str = "correct-horse-battery"):
        client.post("/api/v1/auth/register", json={"email": email, "password": password})
        resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _headers
