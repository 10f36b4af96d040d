from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from pymongo import ASCENDING
from pymongo.database import Database

from postithere.db import SUBMITTED_FORMS_COLLECTION, find_documents, insert_document
from postithere.exceptions import FormNotFoundError, InvalidParameterError
from postithere.models import FormSubmit
from postithere.util.time import to_millis, utcnow

if TYPE_CHECKING:
    from postithere.auth.crud import UserDirectory


FORM_ID_PARAM = "formId"


def _debug(msg: str) -> None:
    print(f"[forms] {msg}")


def normalize_parameters(items: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Flatten query-string / url-encoded pairs into a single-valued mapping.

    The routing identifier `formId` is dropped. A key that appears more than
    once raises InvalidParameterError.
    """
    out: Dict[str, str] = {}
    for key, value in items:
        if key == FORM_ID_PARAM:
            continue
        if key in out:
            raise InvalidParameterError(key)
        out[key] = str(value)
    return out


class FormStore:
    """Stores and lists submissions for forms owned by registered users."""

    def __init__(self, db: Database, users: UserDirectory):
        self._db = db
        self._users = users

    def _require_form(self, form_id: str) -> None:
        if not form_id or self._users.find_form_owner(form_id) is None:
            raise FormNotFoundError(form_id)

    def list_submissions(self, form_id: str) -> List[FormSubmit]:
        self._require_form(form_id)
        docs = find_documents(
            self._db,
            SUBMITTED_FORMS_COLLECTION,
            {"formId": form_id},
            # Timestamps are millisecond precision; _id breaks ties in insertion order.
            sort=[("timestamp", ASCENDING), ("_id", ASCENDING)],
        )
        return [FormSubmit.from_document(d) for d in docs]

    def submit(
        self,
        form_id: str,
        origin: Optional[str],
        parameters: Dict[str, str],
        now: Optional[datetime] = None,
    ) -> FormSubmit:
        self._require_form(form_id)
        submission = FormSubmit(
            form_id=form_id,
            origin=origin,
            parameters=dict(parameters),
            timestamp=to_millis(now) if now is not None else utcnow(),
        )
        insert_document(self._db, SUBMITTED_FORMS_COLLECTION, submission.to_document())
        _debug(f"Stored submission formId={form_id} keys={len(submission.parameters)}")
        return submission
