from __future__ import annotations

from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.database import Database

from postithere.db import (
    FORM_IDS_COLLECTION,
    USERS_COLLECTION,
    find_document,
    insert_document,
    update_document,
)
from postithere.exceptions import (
    DuplicateDocumentError,
    DuplicateEmailError,
    FormAlreadyExistsError,
    UserNotFoundError,
)
from postithere.models import Form, User

from .security import PasswordHasher


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def _object_id(user_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(str(user_id))
    except (InvalidId, TypeError):
        return None


class UserDirectory:
    """User accounts: lookup, registration, credential checks and form ownership."""

    def __init__(self, db: Database, hasher: PasswordHasher):
        self._db = db
        self._hasher = hasher

    def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        doc = find_document(self._db, USERS_COLLECTION, {"email": email})
        return User.from_document(doc) if doc is not None else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = find_document(self._db, USERS_COLLECTION, {"_id": oid})
        return User.from_document(doc) if doc is not None else None

    def register(self, email: str, password: str) -> User:
        """Create a user, hashing the password first.

        Uniqueness is left to the unique index on `email`, so two concurrent
        registrations for the same address cannot both succeed.
        """
        doc = {
            "email": email,
            "password_hash": self._hasher.hash(password),
            "api_key": None,
            "forms": [],
        }
        try:
            user_id = insert_document(self._db, USERS_COLLECTION, doc)
        except DuplicateDocumentError as e:
            raise DuplicateEmailError(email) from e

        _debug(f"Registered user id={user_id}")
        return User(id=user_id, email=email, password_hash=doc["password_hash"])

    def verify_credentials(self, email: str, password: str) -> Optional[User]:
        user = self.find_by_email(email)
        if user is None:
            # Keep timing close to the wrong-password path.
            self._hasher.dummy_verify()
            return None
        if not self._hasher.verify(password, user.password_hash):
            return None
        return user

    def find_form_owner(self, form_id: str) -> Optional[User]:
        doc = find_document(self._db, USERS_COLLECTION, {"forms.formId": form_id})
        return User.from_document(doc) if doc is not None else None

    def is_form_id_available(self, form_id: str) -> bool:
        return self.find_form_owner(form_id) is None

    def _claim_form_id(self, form_id: str, owner: ObjectId) -> None:
        """Record `owner` as the holder of `form_id`; the `_id` index makes this atomic."""
        try:
            insert_document(self._db, FORM_IDS_COLLECTION, {"_id": form_id, "owner": owner})
        except DuplicateDocumentError as e:
            claim = find_document(self._db, FORM_IDS_COLLECTION, {"_id": form_id})
            if claim is None or claim.get("owner") != owner:
                raise FormAlreadyExistsError(form_id) from e

    def add_form_to_user(self, user_id: str, form: Form) -> None:
        """Attach a form to a user.

        formIds are unique across all users. Adding the exact same form to the
        same user again is a no-op; reusing a formId with a different name, or
        one owned by someone else, raises FormAlreadyExistsError.
        """
        oid = _object_id(user_id)
        if oid is None:
            raise UserNotFoundError(user_id)

        owner = self.find_form_owner(form.form_id)
        if owner is not None and owner.id != str(oid):
            raise FormAlreadyExistsError(form.form_id)
        if self.find_by_id(str(oid)) is None:
            raise UserNotFoundError(user_id)

        self._claim_form_id(form.form_id, oid)

        # Conditional push: only matches when this user does not have the formId yet.
        matched, _ = update_document(
            self._db,
            USERS_COLLECTION,
            {"_id": oid, "forms.formId": {"$ne": form.form_id}},
            {"$push": {"forms": form.to_document()}},
        )
        if matched == 1:
            _debug(f"Added form formId={form.form_id} to user id={oid}")
            return

        user = self.find_by_id(str(oid))
        if user is None:
            raise UserNotFoundError(user_id)
        existing = user.get_form(form.form_id)
        if existing is not None and existing == form:
            return
        raise FormAlreadyExistsError(form.form_id)
