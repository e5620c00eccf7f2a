# checkin/store.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from checkin.clock import day_bounds, now_local

logger = logging.getLogger(__name__)

SCANS_COLLECTION_DEFAULT = "scans"
BATCH_LIMIT = 500


@dataclass(frozen=True)
class StoreConfig:
    credentials_path: str
    project_id: str = ""
    collection: str = SCANS_COLLECTION_DEFAULT


@dataclass(frozen=True)
class ScanEvent:
    code: str
    name: str
    timestamp: Optional[datetime] = None

    def to_document(self) -> dict[str, Any]:
        # Timestamp is assigned by the server when not given.
        return {
            "code": self.code,
            "name": self.name,
            "timestamp": self.timestamp or firestore.SERVER_TIMESTAMP,
        }


@dataclass(frozen=True)
class DuplicateCheck:
    is_duplicate: bool
    name: Optional[str] = None


def load_store_config() -> StoreConfig:
    load_dotenv()

    cred_path = (
        os.getenv("FIREBASE_CREDENTIALS", "").strip()
        or os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "").strip()
        or "private_key.json"
    )
    return StoreConfig(
        credentials_path=cred_path,
        project_id=os.getenv("FIREBASE_PROJECT_ID", "").strip(),
        collection=os.getenv("FIRESTORE_COLLECTION", "").strip() or SCANS_COLLECTION_DEFAULT,
    )


def _firestore_client(cfg: StoreConfig):
    if not firebase_admin._apps:
        if not os.path.exists(cfg.credentials_path):
            raise RuntimeError(f"Firebase credentials not found: {cfg.credentials_path}")
        cred = credentials.Certificate(cfg.credentials_path)
        options = {"projectId": cfg.project_id} if cfg.project_id else None
        firebase_admin.initialize_app(cred, options)
    return firestore.client()


class FirestoreScanStore:
    """Scan history in a Firestore collection.

    Duplicate detection is a same-day range query, not a storage constraint:
    two concurrent scans of a new code can both pass `check_duplicate` before
    either one is recorded.

    Every operation lets client errors propagate to the caller.
    """

    def __init__(self, client, collection: str = SCANS_COLLECTION_DEFAULT):
        self._client = client
        self._collection = collection

    @classmethod
    def from_config(cls, cfg: StoreConfig) -> "FirestoreScanStore":
        return cls(_firestore_client(cfg), cfg.collection)

    def _scans(self):
        return self._client.collection(self._collection)

    def check_duplicate(self, code: str, now: Optional[datetime] = None) -> DuplicateCheck:
        start, end = day_bounds(now or now_local())
        query = (
            self._scans()
            .where(filter=FieldFilter("code", "==", code))
            .where(filter=FieldFilter("timestamp", ">=", start))
            .where(filter=FieldFilter("timestamp", "<", end))
            .limit(1)
        )
        for doc in query.stream():
            data = doc.to_dict() or {}
            return DuplicateCheck(is_duplicate=True, name=data.get("name"))
        return DuplicateCheck(is_duplicate=False)

    def record_event(self, code: str, name: str) -> None:
        self._scans().add(ScanEvent(code=code, name=name).to_document())

    def clear_all(self) -> int:
        """Deletes every scan event in batches. Returns the number deleted."""
        batch = self._client.batch()
        pending = 0
        deleted = 0

        for doc in self._scans().stream():
            batch.delete(doc.reference)
            pending += 1
            if pending >= BATCH_LIMIT:
                batch.commit()
                deleted += pending
                batch = self._client.batch()
                pending = 0

        if pending:
            batch.commit()
            deleted += pending

        if deleted:
            logger.info("Deleted %s scan events", deleted)
        else:
            logger.info("No scans to delete.")
        return deleted
