from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from supportdesk.core.database import SessionLocal
from supportdesk.services.stores import BlobStorage, SqlRecordStore, get_blob_storage


def get_db() -> Generator:
    """
    Yield a database session for one request and close it afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_record_store(db: Session = Depends(get_db)) -> SqlRecordStore:
    return SqlRecordStore(db)


def get_storage() -> BlobStorage:
    return get_blob_storage()
