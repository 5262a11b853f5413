# visa_tracker/services/uploads.py
from __future__ import annotations

import logging
import os
import random
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Dict

from fastapi import Request

from ..core.errors import NotFound, StorageIOError

log = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"
CHUNK_SIZE = 1024 * 1024


class UploadStore:
    """Flat directory of uploaded blobs, addressed by /uploads/<filename>."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    @staticmethod
    def make_filename(field: str, original_name: str | None) -> str:
        # <field>-<epoch ms>-<random>.<ext>
        ext = os.path.splitext(original_name or "")[1]
        suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{field}-{suffix}{ext}"

    def store(self, stream: BinaryIO, original_name: str | None, field: str = "file") -> Dict[str, str]:
        filename = self.make_filename(field, original_name)
        dest = self.root / filename
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with dest.open("wb") as f:
                shutil.copyfileobj(stream, f, CHUNK_SIZE)
        except OSError as e:
            log.error("upload write failed for %s: %s", dest, e)
            raise StorageIOError("Failed to store uploaded file.") from e
        log.info("Stored upload %s (%d bytes)", filename, dest.stat().st_size)
        return {"url": f"{URL_PREFIX}{filename}"}

    def path_for(self, url: str) -> Path:
        # only the basename counts so a URL cannot point outside root
        name = os.path.basename((url or "").replace("\\", "/"))
        return self.root / name

    def resolve(self, url: str) -> Path:
        path = self.path_for(url)
        if not path.name or not path.is_file():
            raise NotFound("File not found.")
        return path


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.uploads
