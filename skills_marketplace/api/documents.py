"""
Document store seam for user/profile documents.

``LocalDocumentStore`` keeps documents in a JSON file under the data
directory. Subscriptions receive the full matching set on every change,
never a diff, and stay open until the caller closes them.
"""

import copy
import json
import logging
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from jsonschema import Draft7Validator

from ..errors import RemoteRejectedError

logger = logging.getLogger(__name__)


USER_DOCUMENT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["email", "role", "profile"],
    "properties": {
        "email": {"type": "string", "minLength": 1},
        "role": {"enum": ["SME", "SDP", "Admin"]},
        "verified": {"type": "boolean"},
        "phone": {"type": "string"},
        "profile": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string"},
                "email": {"type": "string"},
                "sectors": {"type": "array", "items": {"type": "string"}},
                "roles": {"type": "array", "items": {"type": "string"}},
                "specializations": {"type": "array", "items": {"type": "string"}},
                "availability": {"enum": ["Available", "Busy", "Offline", "Away"]},
                "planType": {"enum": ["free", "monthly", "annual"]},
                "planStatus": {"enum": ["trial_active", "active", "pending"]},
            },
        },
    },
}

_validator = Draft7Validator(USER_DOCUMENT_SCHEMA)


def validate_user_document(document: dict) -> list[str]:
    """Return schema violations for a user document (empty when valid)."""
    errors = sorted(_validator.iter_errors(document), key=lambda e: list(e.path))
    return [
        f"{'.'.join(str(p) for p in e.path) or '<root>'}: {e.message}"
        for e in errors
    ]


def _deep_merge(base: dict, changes: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _lookup(document: dict, path: str):
    """Resolve a dotted path such as ``profile.availability``."""
    value = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


class Subscription:
    """
    Cancellable channel of snapshot events.

    Each event is the complete list of matching documents at the time of
    the change. Closing the subscription drops pending events and detaches
    it from the store.
    """

    def __init__(self, store: "LocalDocumentStore", filters: Optional[dict] = None):
        self.filters = dict(filters or {})
        self._store = store
        self._pending: deque = deque()
        self.closed = False

    def matches(self, document: dict) -> bool:
        return all(_lookup(document, k) == v for k, v in self.filters.items())

    def deliver(self, snapshot: list[dict]) -> None:
        """Queue a snapshot; ignored once closed."""
        if self.closed:
            return
        self._pending.append(snapshot)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def latest(self) -> Optional[list[dict]]:
        """Most recent pending snapshot, discarding older ones."""
        if not self._pending:
            return None
        snapshot = self._pending[-1]
        self._pending.clear()
        return snapshot

    def __iter__(self) -> Iterator[list[dict]]:
        while self._pending:
            yield self._pending.popleft()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._pending.clear()
        self._store.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class LocalDocumentStore:
    """User documents persisted to ``users.json`` in the data directory."""

    def __init__(self, data_dir: Path):
        """Initialize the store with a data directory."""
        self.data_dir = Path(data_dir)
        self.documents_file = self.data_dir / "users.json"
        self._subscriptions: list[Subscription] = []
        self._ensure_data_files()

    def _ensure_data_files(self) -> None:
        """Ensure data directory and files exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.documents_file.exists():
            self._save_documents({})

    def _load_documents(self) -> dict:
        """Load all documents keyed by account ID."""
        with open(self.documents_file, "r") as f:
            return json.load(f)

    def _save_documents(self, documents: dict) -> None:
        """Save all documents to storage."""
        with open(self.documents_file, "w") as f:
            json.dump(documents, f, indent=2, default=str)

    def get_document(self, account_id: str) -> Optional[dict]:
        """Get a document by account ID."""
        document = self._load_documents().get(account_id)
        if document is None:
            return None
        return {"id": account_id, **document}

    def write_profile_document(self, account_id: str, data: dict, merge: bool = False) -> dict:
        """
        Create or replace a user document.

        With ``merge`` the data is deep-merged into any existing document.
        The resulting document must satisfy ``USER_DOCUMENT_SCHEMA``.
        """
        documents = self._load_documents()
        existing = documents.get(account_id)
        now = datetime.now(timezone.utc).isoformat()

        if merge and existing:
            document = _deep_merge(existing, data)
        else:
            document = copy.deepcopy(data)
            document["createdAt"] = existing.get("createdAt", now) if existing else now
        document["updatedAt"] = now

        problems = validate_user_document(document)
        if problems:
            raise RemoteRejectedError(f"Invalid user document: {'; '.join(problems)}")

        documents[account_id] = document
        self._save_documents(documents)
        logger.info("Wrote user document %s (merge=%s)", account_id, merge)

        self._publish(documents)
        return {"id": account_id, **document}

    def query(self, filters: Optional[dict] = None) -> list[dict]:
        """Current documents matching equality ``filters``."""
        matcher = Subscription(self, filters)
        return self._snapshot(self._load_documents(), matcher)

    def subscribe(self, filters: Optional[dict] = None) -> Subscription:
        """Open a subscription; the current matching set is delivered at once."""
        subscription = Subscription(self, filters)
        self._subscriptions.append(subscription)
        subscription.deliver(self._snapshot(self._load_documents(), subscription))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _snapshot(self, documents: dict, subscription: Subscription) -> list[dict]:
        snapshot = []
        for account_id, document in documents.items():
            entry = {"id": account_id, **copy.deepcopy(document)}
            if subscription.matches(entry):
                snapshot.append(entry)
        return snapshot

    def _publish(self, documents: dict) -> None:
        for subscription in list(self._subscriptions):
            subscription.deliver(self._snapshot(documents, subscription))
