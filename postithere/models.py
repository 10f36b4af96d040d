from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from postithere.util.time import ensure_utc


class ApiKey(BaseModel):
    """Per-user API key record. Stored with the user but not used by any flow yet."""

    key: str
    usages: int = 0
    capacity: int = 0


class Form(BaseModel):
    """A form definition owned by a user. Submissions reference it by `formId`."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    form_id: str = Field(alias="formId", min_length=1)
    name: str

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class User(BaseModel):
    id: str
    email: str
    password_hash: str
    # Older documents may lack these; they decode to the defaults below.
    api_key: Optional[ApiKey] = None
    forms: List[Form] = Field(default_factory=list)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            password_hash=doc["password_hash"],
            api_key=doc.get("api_key"),
            forms=doc.get("forms") or [],
        )

    def get_form(self, form_id: str) -> Optional[Form]:
        for form in self.forms:
            if form.form_id == form_id:
                return form
        return None

    def owns_form(self, form_id: str) -> bool:
        return self.get_form(form_id) is not None

    def public(self) -> Dict[str, Any]:
        d = self.model_dump(mode="json", by_alias=True)
        d.pop("password_hash", None)
        return d


class FormSubmit(BaseModel):
    """One immutable submission posted against a form."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    form_id: str = Field(alias="formId")
    origin: Optional[str] = None
    parameters: Dict[str, str] = Field(default_factory=dict)
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "FormSubmit":
        return cls(
            form_id=doc["formId"],
            origin=doc.get("origin"),
            parameters=doc.get("parameters") or {},
            timestamp=doc["timestamp"],
        )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class EmailPasswordCredential(BaseModel):
    """Login/registration payload. Consumed once and discarded."""

    email: str
    password: str
