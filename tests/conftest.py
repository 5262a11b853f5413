"""Shared fixtures: an app wired to temporary data/upload/web directories."""
import pytest
from fastapi.testclient import TestClient

from visa_tracker.core.config import Settings
from visa_tracker.db.store import APPLICANTS, SETTINGS, JsonFileStore, MemoryStore
from visa_tracker.main import create_app
from visa_tracker.services.settings_service import default_settings
from visa_tracker.services.uploads import UploadStore


@pytest.fixture
def cfg(tmp_path):
    web = tmp_path / "web"
    web.mkdir()
    (web / "index.html").write_text("<html>visa tracker</html>", encoding="utf-8")
    (web / "app.js").write_text("console.log('ok')", encoding="utf-8")
    return Settings(
        DATA_DIR=str(tmp_path / "data"),
        UPLOADS_DIR=str(tmp_path / "uploads"),
        WEB_DIR=str(web),
        AUTH_ENABLED=False,
    )


@pytest.fixture
def client(cfg):
    with TestClient(create_app(cfg)) as c:
        yield c


@pytest.fixture
def auth_client(cfg):
    cfg.AUTH_ENABLED = True
    with TestClient(create_app(cfg)) as c:
        yield c


@pytest.fixture
def file_store(cfg):
    return JsonFileStore(cfg.data_path)


@pytest.fixture
def memory_store():
    return MemoryStore({SETTINGS: default_settings(), APPLICANTS: []})


@pytest.fixture
def upload_store(cfg):
    return UploadStore(cfg.uploads_path)
