# ================================
# file: visa_tracker/services/applicants.py
# ================================
from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, List, Mapping, Optional

from fastapi import Depends
from pydantic import ValidationError

from ..core.errors import NotFound, StorageIOError, ValidationFailed
from ..db.store import APPLICANTS, DocumentStore, get_store
from ..schemas.applicant import Applicant, ApplicantIn, ApplicantProgress, is_step_complete

log = logging.getLogger(__name__)


def awaiting_step(visa_steps: Iterable[str], steps_completed: Optional[Mapping[str, Any]]) -> Optional[str]:
    """First configured step not marked complete; None once every step is done."""
    done = steps_completed or {}
    for step in visa_steps:
        if not is_step_complete(done.get(step)):
            return step
    return None


def _validation_message(e: ValidationError) -> str:
    first = e.errors()[0] if e.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()))
    return f"Invalid applicant data: {where}" if where else "Invalid applicant data."


def parse_fields(fields: Any) -> ApplicantIn:
    try:
        return ApplicantIn.model_validate(fields)
    except ValidationError as e:
        raise ValidationFailed(_validation_message(e)) from e


def normalize_record(record: Any) -> dict:
    """Validate a full stored/imported record (must carry an id)."""
    try:
        return Applicant.model_validate(record).to_record()
    except ValidationError as e:
        raise ValidationFailed(_validation_message(e)) from e


class ApplicantRegistry:
    """
    CRUD over the applicant list. Each mutation reads the whole list,
    changes it in memory and writes it back; concurrent writers can
    overwrite each other unless the store locks.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def _load(self) -> List[dict]:
        data = self.store.get(APPLICANTS)
        if not isinstance(data, list):
            raise StorageIOError("Failed to read applicants.")
        return data

    @staticmethod
    def _index_of(applicants: List[dict], applicant_id: str) -> int:
        for i, a in enumerate(applicants):
            if isinstance(a, dict) and a.get("id") == applicant_id:
                return i
        return -1

    def list(self) -> List[dict]:
        return self._load()

    def get(self, applicant_id: str) -> dict:
        applicants = self._load()
        idx = self._index_of(applicants, applicant_id)
        if idx == -1:
            raise NotFound("Applicant not found.")
        return applicants[idx]

    def create(self, fields: Any) -> dict:
        payload = parse_fields(fields)
        record = Applicant(id=str(uuid.uuid4()), **payload.model_dump()).to_record()
        with self.store.lock(APPLICANTS):
            applicants = self._load()
            # newest first
            applicants.insert(0, record)
            self.store.put(APPLICANTS, applicants)
        log.info("Applicant created id=%s", record["id"])
        return record

    def update(self, applicant_id: str, fields: Any) -> dict:
        patch = parse_fields(fields).model_dump(mode="json", exclude_unset=True)
        with self.store.lock(APPLICANTS):
            applicants = self._load()
            idx = self._index_of(applicants, applicant_id)
            if idx == -1:
                raise NotFound("Applicant not found.")
            # overlay on the stored dict as-is; fields not sent are left untouched
            updated = dict(applicants[idx])
            for key, value in patch.items():
                if key == "Extra":
                    current_extra = updated.get("Extra")
                    value = {**(current_extra if isinstance(current_extra, dict) else {}), **(value or {})}
                if value is None:
                    updated.pop(key, None)
                else:
                    updated[key] = value
            updated["id"] = applicant_id
            applicants[idx] = updated
            self.store.put(APPLICANTS, applicants)
        log.info("Applicant updated id=%s fields=%s", applicant_id, sorted(patch))
        return updated

    def delete(self, applicant_id: str) -> None:
        # uploaded files are left in place
        with self.store.lock(APPLICANTS):
            applicants = self._load()
            remaining = [a for a in applicants if not (isinstance(a, dict) and a.get("id") == applicant_id)]
            if len(remaining) == len(applicants):
                raise NotFound("Applicant not found.")
            self.store.put(APPLICANTS, remaining)
        log.info("Applicant deleted id=%s", applicant_id)

    def progress(self, applicant_id: str, visa_steps: List[str]) -> ApplicantProgress:
        record = self.get(applicant_id)
        done = record.get("StepsCompleted") or {}
        if not isinstance(done, dict):
            done = {}
        return ApplicantProgress(
            id=applicant_id,
            awaiting_step=awaiting_step(visa_steps, done),
            completed=[s for s in visa_steps if is_step_complete(done.get(s))],
            total=len(visa_steps),
        )


def get_applicant_registry(store: DocumentStore = Depends(get_store)) -> ApplicantRegistry:
    return ApplicantRegistry(store)
