"""
In-process Firestore stand-in for local development and tests.

Mirrors the subset of the firebase_admin Firestore client API that the
services use:
- db.collection(name).document(id).set / get / update / delete
- collection.where(field, op, value).order_by(field, direction).limit(n).stream()
- db.batch() with set / update / delete / commit (applied atomically)

Documents are deep-copied on every read and write so callers never share
mutable state with the store. When a path is given, the whole store is
written to a JSON file after each commit and reloaded on startup.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from google.api_core.exceptions import NotFound

logger = logging.getLogger(__name__)

ASCENDING = "ASCENDING"
DESCENDING = "DESCENDING"

_OPERATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "not-in": lambda a, b: a not in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
}


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"__datetime__": value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode(obj: Dict) -> Any:
    if "__datetime__" in obj and len(obj) == 1:
        return datetime.fromisoformat(obj["__datetime__"])
    return obj


class MockDocumentSnapshot:
    """Read-only view of a document at the time it was fetched."""

    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field: str) -> Any:
        return (self._data or {}).get(field)


class MockDocumentReference:
    def __init__(self, db: "MockFirestore", collection: str, doc_id: str):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def path(self) -> str:
        return f"{self._collection}/{self.id}"

    def get(self) -> MockDocumentSnapshot:
        with self._db._lock:
            data = self._db._collections.get(self._collection, {}).get(self.id)
            return MockDocumentSnapshot(self, copy.deepcopy(data))

    def set(self, data: Dict, merge: bool = False) -> None:
        batch = self._db.batch()
        batch.set(self, data, merge=merge)
        batch.commit()

    def update(self, data: Dict) -> None:
        batch = self._db.batch()
        batch.update(self, data)
        batch.commit()

    def delete(self) -> None:
        batch = self._db.batch()
        batch.delete(self)
        batch.commit()


class MockQuery:
    def __init__(
        self,
        db: "MockFirestore",
        collection: str,
        filters: Optional[List[Tuple[str, str, Any]]] = None,
        orders: Optional[List[Tuple[str, str]]] = None,
        limit_count: Optional[int] = None,
    ):
        self._db = db
        self._collection = collection
        self._filters = filters or []
        self._orders = orders or []
        self._limit = limit_count

    def _copy(self, **overrides) -> "MockQuery":
        params = {
            "filters": list(self._filters),
            "orders": list(self._orders),
            "limit_count": self._limit,
        }
        params.update(overrides)
        return MockQuery(self._db, self._collection, **params)

    def where(self, field_path: str, op_string: str, value: Any) -> "MockQuery":
        if op_string not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op_string}")
        return self._copy(filters=self._filters + [(field_path, op_string, value)])

    def order_by(self, field_path: str, direction: str = ASCENDING) -> "MockQuery":
        return self._copy(orders=self._orders + [(field_path, direction)])

    def limit(self, count: int) -> "MockQuery":
        return self._copy(limit_count=count)

    def stream(self) -> Iterator[MockDocumentSnapshot]:
        with self._db._lock:
            docs = self._db._collections.get(self._collection, {})
            rows = [
                (doc_id, copy.deepcopy(data))
                for doc_id, data in docs.items()
                if all(_OPERATORS[op](data.get(field), value) for field, op, value in self._filters)
            ]

        # Stable multi-key sort: apply keys from last to first. Nulls sort lowest.
        for field, direction in reversed(self._orders):
            rows.sort(
                key=lambda row: (row[1].get(field) is not None, row[1].get(field)),
                reverse=direction == DESCENDING,
            )

        if self._limit is not None:
            rows = rows[: self._limit]

        for doc_id, data in rows:
            yield MockDocumentSnapshot(MockDocumentReference(self._db, self._collection, doc_id), data)

    def get(self) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollectionReference(MockQuery):
    def __init__(self, db: "MockFirestore", name: str):
        super().__init__(db, name)
        self.id = name

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._db, self._collection, document_id or uuid.uuid4().hex[:20])


class MockWriteBatch:
    """Buffered writes applied all-or-nothing on commit()."""

    def __init__(self, db: "MockFirestore"):
        self._db = db
        self._ops: List[Tuple[str, MockDocumentReference, Optional[Dict], bool]] = []

    def set(self, reference: MockDocumentReference, document_data: Dict, merge: bool = False) -> None:
        self._ops.append(("set", reference, copy.deepcopy(document_data), merge))

    def update(self, reference: MockDocumentReference, field_updates: Dict) -> None:
        self._ops.append(("update", reference, copy.deepcopy(field_updates), False))

    def delete(self, reference: MockDocumentReference) -> None:
        self._ops.append(("delete", reference, None, False))

    def commit(self) -> None:
        with self._db._lock:
            # Stage against a copy so a failing op leaves the store untouched.
            staged = copy.deepcopy(self._db._collections)
            for op, ref, data, merge in self._ops:
                docs = staged.setdefault(ref._collection, {})
                if op == "set":
                    docs[ref.id] = {**docs.get(ref.id, {}), **data} if merge else data
                elif op == "update":
                    if ref.id not in docs:
                        raise NotFound(f"No document to update: {ref.path}")
                    docs[ref.id].update(data)
                else:
                    docs.pop(ref.id, None)
            self._db._collections = staged
            self._ops = []
            self._db._flush()


class MockFirestore:
    def __init__(self, path: Optional[str] = None):
        self._lock = threading.RLock()
        self._path = path
        self._collections: Dict[str, Dict[str, Dict]] = {}
        if path and os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                self._collections = json.load(f, object_hook=_decode)
            logger.info(f"[MOCK DB] Loaded {sum(len(d) for d in self._collections.values())} documents from {path}")

    def collection(self, name: str) -> MockCollectionReference:
        return MockCollectionReference(self, name)

    def collections(self) -> List[MockCollectionReference]:
        with self._lock:
            return [MockCollectionReference(self, name) for name in self._collections]

    def batch(self) -> MockWriteBatch:
        return MockWriteBatch(self)

    def _flush(self) -> None:
        if not self._path:
            return
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._collections, f, default=_encode, indent=2)


def get_mock_db(path: Optional[str] = None) -> MockFirestore:
    return MockFirestore(path)
