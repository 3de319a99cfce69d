"""
Collaborators consumed by the ticket submission workflow.

- RecordStore: relational rows (`tickets`, `ticket_messages`)
- BlobStorage: attachment bytes, addressed by bucket + path
- Navigator: where the client goes after a successful submission
"""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supportdesk.core.config import settings
from supportdesk.core.exceptions import StorageError, StoreError
from supportdesk.models.ticket import Ticket, TicketMessage

logger = logging.getLogger(__name__)

TICKETS = "tickets"
TICKET_MESSAGES = "ticket_messages"


class RecordStore(Protocol):
    async def insert(self, collection: str, row: dict[str, Any]) -> dict[str, Any]: ...

    async def select(self, collection: str, **filters: Any) -> list[dict[str, Any]]: ...


class BlobStorage(Protocol):
    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str: ...


class Navigator(Protocol):
    def __call__(self, route: str) -> None: ...


def attachment_path(ticket_id: Any, file_name: str) -> str:
    return f"tickets/{ticket_id}/{file_name}"


# ──────────────────────────────────────────────
# Relational store
# ──────────────────────────────────────────────

class SqlRecordStore:
    """RecordStore over a SQLAlchemy session.

    The session is used from the event loop thread only; each write is a
    short commit, so it runs inline instead of in a worker thread.
    """

    MODELS = {
        TICKETS: Ticket,
        TICKET_MESSAGES: TicketMessage,
    }

    def __init__(self, db: Session):
        self.db = db

    def _model(self, collection: str):
        model = self.MODELS.get(collection)
        if model is None:
            raise StoreError(f"Unknown collection '{collection}'")
        return model

    @staticmethod
    def _as_row(obj) -> dict[str, Any]:
        return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}

    async def insert(self, collection: str, row: dict[str, Any]) -> dict[str, Any]:
        model = self._model(collection)
        try:
            record = model(**row)
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except (SQLAlchemyError, TypeError) as e:
            self.db.rollback()
            raise StoreError(str(e)) from e
        return self._as_row(record)

    async def select(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        model = self._model(collection)
        try:
            q = self.db.query(model)
            for name, value in filters.items():
                q = q.filter(getattr(model, name) == value)
            return [self._as_row(r) for r in q.order_by(model.id.asc()).all()]
        except (SQLAlchemyError, AttributeError) as e:
            raise StoreError(str(e)) from e


# ──────────────────────────────────────────────
# Blob storage
# ──────────────────────────────────────────────

class LocalBlobStorage:
    """Buckets are directories under `root`; objects are never overwritten."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _target(self, bucket: str, path: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path).resolve()
        if bucket_dir not in target.parents:
            raise StorageError(f"Invalid object path '{path}'")
        return target

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "xb") as fh:
            fh.write(data)

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        target = self._target(bucket, path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except FileExistsError as e:
            raise StorageError("The resource already exists") from e
        except OSError as e:
            raise StorageError(str(e)) from e
        logger.debug("Stored %s bytes at %s/%s", len(data), bucket, path)
        return path


class GCSBlobStorage:
    """Google Cloud Storage backend; uploads never replace an existing object."""

    def __init__(self, project: Optional[str] = None, client: Any = None):
        self.project = project
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            from google.cloud import storage

            self._client = storage.Client(project=self.project)
        return self._client

    def _write(self, bucket: str, path: str, data: bytes, content_type: Optional[str]) -> None:
        blob = self.client.bucket(bucket).blob(path)
        # generation 0 means "only if the object does not exist yet"
        blob.upload_from_string(data, content_type=content_type, if_generation_match=0)

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        from google.api_core.exceptions import GoogleAPIError, PreconditionFailed

        try:
            await asyncio.to_thread(self._write, bucket, path, data, content_type)
        except PreconditionFailed as e:
            raise StorageError("The resource already exists") from e
        except GoogleAPIError as e:
            raise StorageError(str(e)) from e
        return path


@lru_cache(maxsize=1)
def get_blob_storage() -> BlobStorage:
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "gcs":
        return GCSBlobStorage(project=settings.GCP_PROJECT_ID)
    if backend == "local":
        return LocalBlobStorage(settings.STORAGE_ROOT)
    raise ValueError(f"Unknown STORAGE_BACKEND '{settings.STORAGE_BACKEND}'; expected 'local' or 'gcs'")


# ──────────────────────────────────────────────
# Navigation
# ──────────────────────────────────────────────

class RecordingNavigator:
    """Keeps the last requested route so the HTTP layer can hand it to the client."""

    def __init__(self):
        self.route: Optional[str] = None

    def __call__(self, route: str) -> None:
        self.route = route
