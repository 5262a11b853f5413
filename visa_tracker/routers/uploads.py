# visa_tracker/routers/uploads.py
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from visa_tracker.core.errors import UploadMissing
from visa_tracker.routers.auth import require_admin
from visa_tracker.services.uploads import UploadStore, get_upload_store

router = APIRouter(tags=["Upload"])


@router.post("/upload")
def upload_file(
    file: Optional[UploadFile] = File(None),
    uploads: UploadStore = Depends(get_upload_store),
    role: str = Depends(require_admin),
):
    if file is None or not file.filename:
        raise UploadMissing("No file uploaded.")
    return uploads.store(file.file, file.filename, field="file")
