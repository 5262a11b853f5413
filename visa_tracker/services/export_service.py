# ================================
# visa_tracker/services/export_service.py
# ================================
from __future__ import annotations

import io
import json
import logging
import os
import re
import zipfile
from io import BytesIO
from typing import Any, Iterable, Iterator, List, Optional

from fastapi import Depends, Request
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from pydantic import ValidationError

from ..core.errors import NotFound, ValidationFailed
from ..db.store import APPLICANTS, SETTINGS, DocumentStore, get_store
from ..schemas.applicant import is_step_complete
from ..schemas.settings import SETTINGS_ID, VisaSettings
from .applicants import awaiting_step, normalize_record
from .uploads import UploadStore, get_upload_store

log = logging.getLogger(__name__)

SUMMARY_NAME = "applicant-data.txt"
SUMMARY_DELIMITER = "-----------------------"
CHUNK_SIZE = 64 * 1024

# label, field
SUMMARY_FIELDS = [
    ("Name", "FullName"),
    ("Passport", "PassportNumber"),
    ("File Number", "FileNumber"),
    ("UID", "UIDNumber"),
    ("Email", "Email"),
    ("Phone", "Phone"),
    ("Nationality", "Nationality"),
]

_NOT_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_NOT_ALNUM_DOT = re.compile(r"[^a-z0-9.]", re.IGNORECASE)


# ---------- Helpers ----------
def folder_name(full_name: Optional[str]) -> str:
    return _NOT_ALNUM.sub("_", full_name or "unknown_applicant").lower()


def document_name(name: Optional[str]) -> str:
    return _NOT_ALNUM_DOT.sub("_", name or "unknown_doc").lower()


def documents_of(applicant: dict) -> List[dict]:
    """Documents may still be a JSON string in records written by old clients."""
    docs = applicant.get("Documents") or []
    if isinstance(docs, str):
        docs = json.loads(docs)
    if not isinstance(docs, list):
        raise ValueError("Documents is not a list")
    return [d for d in docs if isinstance(d, dict)]


def build_summary(applicants: Iterable[dict]) -> str:
    lines = ["Applicant Data Export", "=======================", ""]
    for a in applicants:
        for label, field in SUMMARY_FIELDS:
            lines.append(f"{label}: {a.get(field) or 'N/A'}")
        lines.append(SUMMARY_DELIMITER)
    return "\r\n".join(lines) + "\r\n"


class _ChunkSink(io.RawIOBase):
    """Write-only, non-seekable sink; zipfile falls back to data descriptors."""

    def __init__(self):
        super().__init__()
        self._chunks: List[bytes] = []

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if b:
            self._chunks.append(bytes(b))
        return len(b)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def _autosize(ws):
    ws.freeze_panes = "A2"
    for col in ws.columns:
        w = max(10, *(len(str(c.value)) if c.value else 0 for c in col)) + 2
        ws.column_dimensions[col[0].column_letter].width = min(w, 40)


class ExportBundler:
    def __init__(self, store: DocumentStore, uploads: UploadStore):
        self.store = store
        self.uploads = uploads

    # ---------- selection ----------
    def select(self, ids: Optional[List[str]] = None) -> List[dict]:
        applicants = self.store.get(APPLICANTS)
        if not ids:
            return applicants
        wanted = set(ids)
        return [a for a in applicants if isinstance(a, dict) and a.get("id") in wanted]

    # ---------- backup (JSON) ----------
    def snapshot(self, ids: Optional[List[str]] = None, redact: bool = False) -> dict:
        applicants = self.select(ids)
        settings_doc = self.store.get(SETTINGS)
        if redact and isinstance(settings_doc, dict):
            settings_doc = {k: v for k, v in settings_doc.items() if k != "ADMIN_PASSWORD"}
        return {"settings": settings_doc, "applicants": applicants}

    # ---------- zip archive ----------
    def stream_archive(self, ids: Optional[List[str]] = None) -> Iterator[bytes]:
        # read up front so storage errors surface before the response starts
        applicants = self.select(ids)
        return self._zip_chunks(applicants)

    def _zip_chunks(self, applicants: List[dict]) -> Iterator[bytes]:
        sink = _ChunkSink()
        with zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            archive.writestr(SUMMARY_NAME, build_summary(applicants))
            yield sink.drain()

            for applicant in applicants:
                try:
                    docs = documents_of(applicant)
                except ValueError as e:
                    log.error("Could not parse documents for applicant %s: %s", applicant.get("id"), e)
                    continue

                folder = folder_name(applicant.get("FullName"))
                for doc in docs:
                    url = str(doc.get("url") or "")
                    try:
                        path = self.uploads.resolve(url)
                    except NotFound:
                        log.warning("File not found, skipping: %s", self.uploads.path_for(url))
                        continue
                    arcname = f"{folder}/{document_name(doc.get('name'))}{os.path.splitext(url)[1]}"
                    with path.open("rb") as src, archive.open(arcname, "w", force_zip64=True) as dest:
                        while True:
                            chunk = src.read(CHUNK_SIZE)
                            if not chunk:
                                break
                            dest.write(chunk)
                            data = sink.drain()
                            if data:
                                yield data
                    data = sink.drain()
                    if data:
                        yield data
        # central directory
        yield sink.drain()

    # ---------- spreadsheet ----------
    def build_workbook(self, ids: Optional[List[str]] = None) -> bytes:
        applicants = self.select(ids)
        steps = [str(s) for s in (self.store.get(SETTINGS).get("VISA_STEPS") or [])]

        wb = Workbook()
        ws = wb.active
        ws.title = "Applicants"
        ws.append([label for label, _ in SUMMARY_FIELDS] + ["Awaiting Step"] + steps)
        for cell in ws[1]:
            cell.font = Font(bold=True)

        for a in applicants:
            done = a.get("StepsCompleted") if isinstance(a.get("StepsCompleted"), dict) else {}
            row = [a.get(field) or "" for _, field in SUMMARY_FIELDS]
            row.append(awaiting_step(steps, done) or "Completed")
            for step in steps:
                state = done.get(step)
                if not is_step_complete(state):
                    row.append("")
                else:
                    row.append(state if isinstance(state, str) else "Yes")
            ws.append(row)

        for col in ws.iter_cols(min_col=len(SUMMARY_FIELDS) + 2, min_row=2):
            for c in col:
                c.alignment = Alignment(horizontal="center")

        _autosize(ws)
        out = BytesIO()
        wb.save(out)
        return out.getvalue()

    # ---------- import ----------
    def import_snapshot(self, raw: Any) -> dict:
        """
        Validate a backup and overwrite both collections.
        Nothing is written unless the whole payload validates; settings are
        written before applicants and there is no rollback between the two.
        """
        data = raw
        if isinstance(raw, (bytes, bytearray, str)):
            try:
                data = json.loads(raw)
            except ValueError as e:
                raise ValidationFailed("Invalid backup file format.") from e

        if not isinstance(data, dict) or not data.get("settings") or not isinstance(data.get("applicants"), list):
            raise ValidationFailed("Invalid backup file format.")

        try:
            settings_doc = VisaSettings.model_validate(data["settings"])
        except ValidationError as e:
            raise ValidationFailed("Invalid backup file format.") from e
        settings_doc.id = SETTINGS_ID
        applicants = [normalize_record(a) for a in data["applicants"]]
        ids = [a["id"] for a in applicants]
        if len(set(ids)) != len(ids):
            raise ValidationFailed("Invalid backup file format.")

        with self.store.lock(SETTINGS), self.store.lock(APPLICANTS):
            self.store.replace({
                SETTINGS: settings_doc.to_document(),
                APPLICANTS: applicants,
            })
        log.info("Import applied: %d applicants", len(applicants))
        return {"settings": settings_doc.to_document(), "applicants": applicants}


def get_export_bundler(
    request: Request,
    store: DocumentStore = Depends(get_store),
) -> ExportBundler:
    return ExportBundler(store, get_upload_store(request))
