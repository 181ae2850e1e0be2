"""Firestore client wrapper for chat session reads."""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any

from google.cloud import firestore

from src.config import get_settings

logger = logging.getLogger(__name__)


class FirestoreClient:
    """Read-only access to the chat session collection."""

    def __init__(self, db: firestore.Client | None = None, collection: str | None = None):
        self._db = db
        self.collection_name = collection or get_settings().sessions_collection

    @property
    def db(self) -> firestore.Client:
        """Get or create Firestore client."""
        if self._db is None:
            settings = get_settings()
            # Use project from settings if provided, otherwise auto-detect
            project = settings.google_cloud_project if settings.google_cloud_project else None
            self._db = firestore.Client(project=project)
        return self._db

    async def list_sessions(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """List session documents, newest first, optionally bounded by creation time."""
        query = self.db.collection(self.collection_name).order_by(
            "created_at", direction=firestore.Query.DESCENDING
        )
        if start_date:
            query = query.where("created_at", ">=", start_date)
        if end_date:
            query = query.where("created_at", "<=", end_date)

        sessions = []
        for doc in query.stream():
            data = doc.to_dict() or {}
            data["id"] = doc.id
            sessions.append(data)

        logger.info(f"Fetched {len(sessions)} session documents from {self.collection_name}")
        return sessions

    async def get_session(self, session_id: str) -> dict[str, Any] | None:
        """Get a session document by ID."""
        doc = self.db.collection(self.collection_name).document(session_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return data

    async def list_messages(self, session_id: str) -> list[dict[str, Any]]:
        """Get all messages of a session in chronological order."""
        messages = (
            self.db.collection(self.collection_name)
            .document(session_id)
            .collection("messages")
            .order_by("timestamp", direction=firestore.Query.ASCENDING)
            .stream()
        )
        return [msg.to_dict() or {} for msg in messages]


@lru_cache
def get_firestore_client() -> FirestoreClient:
    """Get Firestore client instance (dependency injection)."""
    return FirestoreClient()
