# visa_tracker/routers/export.py
from __future__ import annotations

import json
import time

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from starlette.datastructures import UploadFile
from starlette.responses import StreamingResponse

from visa_tracker.core.errors import UploadMissing
from visa_tracker.routers.auth import hides_admin_password, require_admin, require_viewer
from visa_tracker.schemas.export import EXPORT_TYPES, ExportRequest
from visa_tracker.services.export_service import ExportBundler, get_export_bundler

router = APIRouter(tags=["Export"])

BACKUP_FILENAME = "visa-tracker-backup.json"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


# ================= EXPORT =================
@router.post("/export")
def export_data(
    request: Request,
    body: ExportRequest,
    bundler: ExportBundler = Depends(get_export_bundler),
    role: str = Depends(require_viewer),
):
    if body.type not in EXPORT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid export type.")

    if body.type == "backup":
        data = bundler.snapshot(body.ids, redact=hides_admin_password(request, role))
        return Response(
            content=json.dumps(data, indent=2, ensure_ascii=False),
            media_type="application/json",
            headers=_attachment(BACKUP_FILENAME),
        )

    stamp = int(time.time() * 1000)
    if body.type == "xlsx":
        return Response(
            content=bundler.build_workbook(body.ids),
            media_type=XLSX_MEDIA_TYPE,
            headers=_attachment(f"visa-tracker-applicants-{stamp}.xlsx"),
        )

    return StreamingResponse(
        bundler.stream_archive(body.ids),
        media_type="application/zip",
        headers=_attachment(f"visa-tracker-export-{stamp}.zip"),
    )


# ================= IMPORT =================
@router.post("/import")
async def import_data(
    request: Request,
    bundler: ExportBundler = Depends(get_export_bundler),
    role: str = Depends(require_admin),
):
    """Backup as multipart field 'backupFile' (or 'file'), or as the raw JSON body."""
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("backupFile") or form.get("file")
        if not isinstance(upload, UploadFile):
            raise UploadMissing("No backup file uploaded.")
        raw = await upload.read()
    else:
        raw = await request.body()
    if not raw:
        raise UploadMissing("No backup file uploaded.")

    bundler.import_snapshot(raw)
    return {"message": "Import successful. Application data has been restored."}
