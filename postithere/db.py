from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from postithere.config import Config
from postithere.exceptions import DuplicateDocumentError, StorageError


USERS_COLLECTION = "users"
SUBMITTED_FORMS_COLLECTION = "forms"
# One document per formId, keyed by `_id`, recording which user claimed it.
FORM_IDS_COLLECTION = "form_ids"
CONFIG_COLLECTION = "config"


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def create_client(cfg: Config) -> MongoClient:
    """Build a MongoClient with the project's connection defaults.

    - Credentials (if configured) are checked against MONGO_AUTH_SOURCE.
    - Timeouts bound server selection and connect so requests fail fast.
    - tz_aware=True so timestamps come back as UTC-aware datetimes.
    """
    kwargs: Dict[str, Any] = {
        "serverSelectionTimeoutMS": cfg.MONGO_TIMEOUT_MS,
        "connectTimeoutMS": cfg.MONGO_TIMEOUT_MS,
        "retryWrites": cfg.MONGO_RETRY_WRITES,
        "w": "majority",
        "tz_aware": True,
    }
    if cfg.MONGO_USER:
        kwargs["username"] = cfg.MONGO_USER
        kwargs["password"] = cfg.MONGO_PASSWORD or ""
        kwargs["authSource"] = cfg.MONGO_AUTH_SOURCE
    return MongoClient(cfg.MONGO_URI, **kwargs)


def get_database(client: MongoClient, cfg: Config) -> Database:
    return client[cfg.MONGO_DB]


@contextmanager
def connect(cfg: Config) -> Iterator[Database]:
    """Open a client for the duration of the block and yield the configured database.

    Intended for scripts. The API keeps one client for its whole lifetime.
    """
    client = create_client(cfg)
    try:
        yield get_database(client, cfg)
    finally:
        client.close()


def init_db(db: Database) -> None:
    """Create the indexes the services rely on. Safe to run repeatedly."""
    _debug(f"Ensuring indexes on database {db.name}")
    # Email uniqueness is enforced here, not in application code.
    db[USERS_COLLECTION].create_index([("email", ASCENDING)], unique=True, name="uniq_email")
    db[USERS_COLLECTION].create_index([("forms.formId", ASCENDING)], name="idx_forms_formId")
    db[FORM_IDS_COLLECTION].create_index([("owner", ASCENDING)], name="idx_owner")
    db[SUBMITTED_FORMS_COLLECTION].create_index(
        [("formId", ASCENDING), ("timestamp", ASCENDING)], name="idx_formId_timestamp"
    )
    db[CONFIG_COLLECTION].create_index([("key", ASCENDING)], unique=True, name="uniq_key")


# -----------------------------
# Generic document operations
# -----------------------------


def insert_document(db: Database, collection: str, doc: Mapping[str, Any]) -> str:
    """Insert a document and return its id as a string.

    Raises DuplicateDocumentError on a unique index violation and StorageError
    when the write is not acknowledged.
    """
    try:
        result = db[collection].insert_one(dict(doc))
    except DuplicateKeyError as e:
        raise DuplicateDocumentError(f"duplicate_key:{collection}") from e
    if not result.acknowledged:
        raise StorageError(f"insert_not_acknowledged:{collection}")
    return str(result.inserted_id)


def find_document(db: Database, collection: str, query: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    return db[collection].find_one(dict(query))


def find_documents(
    db: Database,
    collection: str,
    query: Mapping[str, Any],
    *,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection].find(dict(query))
    if sort:
        cursor = cursor.sort(list(sort))
    return list(cursor)


def update_document(
    db: Database,
    collection: str,
    query: Mapping[str, Any],
    update: Mapping[str, Any],
    *,
    upsert: bool = False,
) -> Tuple[int, int]:
    """Apply an update to a single document. Returns (matched_count, modified_count)."""
    try:
        result = db[collection].update_one(dict(query), dict(update), upsert=upsert)
    except DuplicateKeyError as e:
        raise DuplicateDocumentError(f"duplicate_key:{collection}") from e
    if not result.acknowledged:
        raise StorageError(f"update_not_acknowledged:{collection}")
    return int(result.matched_count), int(result.modified_count)
