# visa_tracker/schemas/applicant.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ========= Document reference (entry of Applicant.Documents) =========
class DocumentRef(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    url: str


# ========= Fields accepted from clients (create / update) =========
class ApplicantIn(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    FullName: Optional[str] = None
    PassportNumber: Optional[str] = None
    FileNumber: Optional[str] = None
    UIDNumber: Optional[str] = None
    Email: Optional[str] = None
    Phone: Optional[str] = None
    Nationality: Optional[str] = None

    Documents: List[DocumentRef] = Field(default_factory=list)
    # step name -> True / completion date; anything falsy is "not done"
    StepsCompleted: Dict[str, Union[bool, str, None]] = Field(default_factory=dict)
    # keys the model does not know about, kept apart from the named fields
    Extra: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_unknown_keys(cls, data):
        if not isinstance(data, dict):
            return data
        known = set(cls.model_fields) | {"id"}
        unknown = {k: v for k, v in data.items() if k not in known}
        if not unknown:
            return data
        out = {k: v for k, v in data.items() if k in known}
        extra = out.get("Extra")
        out["Extra"] = {**(extra if isinstance(extra, dict) else {}), **unknown}
        return out

    @field_validator("Documents", mode="before")
    @classmethod
    def _parse_documents(cls, v):
        """Older clients send Documents as a JSON-encoded string."""
        if v is None or v == "":
            return []
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError("Documents must be a list of {name, url}") from e
        return v

    @field_validator("StepsCompleted", "Extra", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return {} if v is None else v


# ========= Stored record =========
class Applicant(ApplicantIn):
    id: str

    def to_record(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


def is_step_complete(state: Any) -> bool:
    if isinstance(state, str):
        return bool(state.strip())
    return bool(state)


class ApplicantProgress(BaseModel):
    id: str
    awaiting_step: Optional[str] = None
    completed: List[str] = Field(default_factory=list)
    total: int = 0
