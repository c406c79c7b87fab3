"""
Document store backends

MongoStore is the production store. LocalJsonStore keeps one JSON file per
collection and is used when no database is configured or reachable.
Neither retries: a failing operation raises StorageError immediately.
"""
import json
import logging
import os
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, MongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from construct_api.errors import StorageError
from construct_api.models import StorageSettings


logger = logging.getLogger(__name__)


class DuplicateDocumentError(StorageError):
    """Insert rejected by a unique field"""
    status_code = 409

    def __init__(self, field: str, value: Any):
        super().__init__(f"Duplicate value for {field}: {value}")
        self.field = field
        self.value = value


def lookup(doc: Dict, field: str) -> Any:
    """Resolve a dotted field path ("lead.email") in a document"""
    current: Any = doc
    for part in field.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


class DocumentStore(ABC):
    """Minimal collection-of-documents contract used by the gateways"""
    name = "abstract"

    @abstractmethod
    def insert(self, collection: str, doc: Dict, unique_field: Optional[str] = None) -> str:
        """Append a document, returning its id"""

    @abstractmethod
    def find_one(self, collection: str, field: str, value: Any) -> Optional[Dict]:
        """Equality lookup on a (dotted) field"""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Fetch a document by id"""

    @abstractmethod
    def put(self, collection: str, doc_id: str, doc: Dict) -> None:
        """Create or replace a document under a fixed id"""

    @abstractmethod
    def list(self, collection: str, order_by: str = "submittedAt", limit: Optional[int] = None) -> List[Dict]:
        """Documents ordered by `order_by`, newest first"""

    def close(self) -> None:
        pass


# ==================== LOCAL JSON FILES ====================

def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _writable_dir(preferred: Path) -> Path:
    try:
        preferred.mkdir(parents=True, exist_ok=True)
        return preferred
    except OSError as e:
        fallback = Path(tempfile.gettempdir()) / "construct-data"
        logger.warning(f"⚠️ {preferred} is not writable ({e}), using {fallback}")
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


class LocalJsonStore(DocumentStore):
    """
    One JSON array per collection, newest document first

    A process-wide lock covers every read-modify-write, so unique checks
    are atomic within one server process.
    """
    name = "local"

    def __init__(self, data_dir: str):
        self.data_dir = _writable_dir(Path(data_dir))
        self._lock = threading.Lock()

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _read(self, collection: str) -> List[Dict]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = f.read()
            docs = json.loads(raw or "[]")
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Local store file {path} is unreadable: {e}") from e
        if not isinstance(docs, list):
            raise StorageError(f"Local store file {path} does not hold a list")
        return docs

    def _write(self, collection: str, docs: List[Dict]) -> None:
        path = self._path(collection)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(docs, f, indent=2, ensure_ascii=False, default=_json_default)
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Local store write failed for {path}: {e}") from e

    def insert(self, collection: str, doc: Dict, unique_field: Optional[str] = None) -> str:
        with self._lock:
            docs = self._read(collection)
            if unique_field:
                value = lookup(doc, unique_field)
                if any(lookup(existing, unique_field) == value for existing in docs):
                    raise DuplicateDocumentError(unique_field, value)
            entry = dict(doc)
            entry["id"] = entry.get("id") or f"local-{uuid.uuid4().hex[:12]}"
            docs.insert(0, entry)
            self._write(collection, docs)
            return entry["id"]

    def find_one(self, collection: str, field: str, value: Any) -> Optional[Dict]:
        with self._lock:
            docs = self._read(collection)
        return next((doc for doc in docs if lookup(doc, field) == value), None)

    def get(self, collection: str, doc_id: str) -> Optional[Dict]:
        return self.find_one(collection, "id", doc_id)

    def put(self, collection: str, doc_id: str, doc: Dict) -> None:
        with self._lock:
            docs = [d for d in self._read(collection) if d.get("id") != doc_id]
            docs.insert(0, dict(doc, id=doc_id))
            self._write(collection, docs)

    def list(self, collection: str, order_by: str = "submittedAt", limit: Optional[int] = None) -> List[Dict]:
        with self._lock:
            docs = self._read(collection)
        docs.sort(key=lambda d: str(lookup(d, order_by) or ""), reverse=True)
        return docs[:limit] if limit else docs


# ==================== MONGODB ====================

def _to_plain(doc: Optional[Dict]) -> Optional[Dict]:
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if _id is not None:
        doc["id"] = str(_id)
    return doc


class MongoStore(DocumentStore):
    name = "mongo"

    def __init__(self, url: str, database: str, connect_timeout_ms: int = 3000, client: Optional[MongoClient] = None):
        if client is None:
            with self._guard("connect"):
                client = MongoClient(url, serverSelectionTimeoutMS=connect_timeout_ms, tz_aware=True)
        self.client = client
        self.db = self.client[database]
        self._indexed = set()

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except PyMongoError as e:
            logger.error(f"❌ MongoDB {action} failed: {type(e).__name__}: {e}")
            raise StorageError(f"Document store unavailable during {action}") from e

    def ping(self) -> None:
        with self._guard("ping"):
            self.client.admin.command("ping")

    def _ensure_unique(self, collection: str, field: str) -> None:
        if (collection, field) in self._indexed:
            return
        self.db[collection].create_index(field, unique=True)
        self._indexed.add((collection, field))

    def insert(self, collection: str, doc: Dict, unique_field: Optional[str] = None) -> str:
        with self._guard(f"insert into {collection}"):
            if unique_field:
                self._ensure_unique(collection, unique_field)
            try:
                result = self.db[collection].insert_one(dict(doc))
            except DuplicateKeyError as e:
                raise DuplicateDocumentError(unique_field or "_id", lookup(doc, unique_field or "_id")) from e
            return str(result.inserted_id)

    def find_one(self, collection: str, field: str, value: Any) -> Optional[Dict]:
        with self._guard(f"lookup in {collection}"):
            return _to_plain(self.db[collection].find_one({field: value}))

    def get(self, collection: str, doc_id: str) -> Optional[Dict]:
        with self._guard(f"get from {collection}"):
            return _to_plain(self.db[collection].find_one({"_id": doc_id}))

    def put(self, collection: str, doc_id: str, doc: Dict) -> None:
        body = {k: v for k, v in doc.items() if k not in ("_id", "id")}
        with self._guard(f"put into {collection}"):
            self.db[collection].replace_one({"_id": doc_id}, body, upsert=True)

    def list(self, collection: str, order_by: str = "submittedAt", limit: Optional[int] = None) -> List[Dict]:
        with self._guard(f"list {collection}"):
            cursor = self.db[collection].find().sort(order_by, DESCENDING)
            if limit:
                cursor = cursor.limit(limit)
            return [_to_plain(doc) for doc in cursor]

    def close(self) -> None:
        self.client.close()


def open_store(settings: StorageSettings) -> DocumentStore:
    """
    Build the configured store

    backend "mongo" fails fast without a reachable database; "auto" falls
    back to local JSON files with a warning.
    """
    if settings.backend == "local":
        return LocalJsonStore(settings.data_dir)

    if settings.backend == "mongo" and not settings.mongo_url:
        raise StorageError("MONGO_URL is required when the storage backend is 'mongo'.")

    if settings.mongo_url:
        store = None
        try:
            store = MongoStore(settings.mongo_url, settings.database, settings.connect_timeout_ms)
            store.ping()
            return store
        except StorageError:
            if store is not None:
                store.close()
            if settings.backend == "mongo":
                raise
            logger.warning("⚠️ MongoDB unreachable, falling back to local JSON store")

    return LocalJsonStore(settings.data_dir)
