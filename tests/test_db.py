import pytest
from pymongo.errors import DuplicateKeyError
from pymongo.results import InsertOneResult, UpdateResult

from postithere.db import SUBMITTED_FORMS_COLLECTION, USERS_COLLECTION, insert_document, update_document
from postithere.exceptions import DuplicateDocumentError, StorageError


class _UnacknowledgedCollection:
    """Accepts every write but reports it as unacknowledged (w=0)."""

    def insert_one(self, doc):
        return InsertOneResult(None, acknowledged=False)

    def update_one(self, query, update, upsert=False):
        return UpdateResult(None, acknowledged=False)


class _DuplicateCollection:
    def insert_one(self, doc):
        raise DuplicateKeyError("E11000 duplicate key error", 11000)

    def update_one(self, query, update, upsert=False):
        raise DuplicateKeyError("E11000 duplicate key error", 11000)


def test_insert_returns_string_id(db):
    doc_id = insert_document(db, SUBMITTED_FORMS_COLLECTION, {"formId": "1"})
    assert isinstance(doc_id, str) and doc_id


def test_unacknowledged_insert_is_a_storage_error():
    db = {SUBMITTED_FORMS_COLLECTION: _UnacknowledgedCollection()}
    with pytest.raises(StorageError) as exc:
        insert_document(db, SUBMITTED_FORMS_COLLECTION, {"formId": "1"})
    assert not isinstance(exc.value, DuplicateDocumentError)


def test_unacknowledged_update_is_a_storage_error():
    db = {USERS_COLLECTION: _UnacknowledgedCollection()}
    with pytest.raises(StorageError):
        update_document(db, USERS_COLLECTION, {"_id": 1}, {"$set": {"x": 1}})


def test_duplicate_key_is_wrapped():
    db = {USERS_COLLECTION: _DuplicateCollection()}
    with pytest.raises(DuplicateDocumentError):
        insert_document(db, USERS_COLLECTION, {"email": "user@example.com"})
    with pytest.raises(DuplicateDocumentError):
        update_document(db, USERS_COLLECTION, {"_id": 1}, {"$set": {"email": "x"}})


def test_update_reports_matched_and_modified(db):
    insert_document(db, USERS_COLLECTION, {"email": "user@example.com"})

    assert update_document(db, USERS_COLLECTION, {"email": "user@example.com"}, {"$set": {"n": 1}}) == (1, 1)
    assert update_document(db, USERS_COLLECTION, {"email": "nobody@example.com"}, {"$set": {"n": 1}}) == (0, 0)
