"""
End-to-end tests for the HTTP API.

Endpoints tested:
- /api/applicants (list, create, update, delete, progress)
- /api/settings (get, save)
- /api/upload and /uploads static files
- /api/export and /api/import
- auth roles, error shape and client fallback routing
"""
import io
import json
import zipfile


class TestApplicantsApi:
    def test_create_list_delete_scenario(self, client):
        assert client.get("/api/applicants").json() == []

        resp = client.post("/api/applicants", json={"FullName": "Jane Doe"})
        assert resp.status_code == 201
        created = resp.json()
        assert created["id"]
        assert created["FullName"] == "Jane Doe"

        listed = client.get("/api/applicants").json()
        assert len(listed) == 1
        assert listed[0] == created

        resp = client.delete(f"/api/applicants/{created['id']}")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Applicant deleted successfully."}
        assert client.get("/api/applicants").json() == []

    def test_update_and_get(self, client):
        created = client.post("/api/applicants", json={"FullName": "Jane", "Phone": "1"}).json()
        resp = client.put(f"/api/applicants/{created['id']}", json={"Phone": "2"})
        assert resp.status_code == 200
        assert resp.json() == {**created, "Phone": "2"}
        assert client.get(f"/api/applicants/{created['id']}").json()["Phone"] == "2"

    def test_missing_applicant_is_404(self, client):
        assert client.put("/api/applicants/nope", json={"FullName": "X"}).status_code == 404
        resp = client.delete("/api/applicants/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Applicant not found."}

    def test_invalid_body_is_400(self, client):
        resp = client.post("/api/applicants", json=["not", "an", "object"])
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_progress(self, client):
        created = client.post("/api/applicants", json={"StepsCompleted": {"Offer Letter": True}}).json()
        resp = client.get(f"/api/applicants/{created['id']}/progress")
        assert resp.status_code == 200
        assert resp.json()["awaiting_step"] == "Labour Fees"

    def test_data_file_is_written(self, client, cfg):
        client.post("/api/applicants", json={"FullName": "On Disk"})
        on_disk = json.loads((cfg.data_path / "applicants.json").read_text(encoding="utf-8"))
        assert on_disk[0]["FullName"] == "On Disk"


class TestSettingsApi:
    def test_seeded_defaults(self, client):
        doc = client.get("/api/settings").json()
        assert doc["id"] == "settings_1"
        assert doc["VISA_STEPS"][0] == "Offer Letter"

    def test_reorder_steps(self, client):
        doc = client.get("/api/settings").json()
        doc["VISA_STEPS"] = doc["VISA_STEPS"][::-1]
        resp = client.post("/api/settings", json=doc)
        assert resp.status_code == 200
        assert resp.json() == doc
        assert client.get("/api/settings").json()["VISA_STEPS"] == doc["VISA_STEPS"]

    def test_corrupt_settings_file_is_500(self, client, cfg):
        (cfg.data_path / "settings.json").write_text("{oops", encoding="utf-8")
        resp = client.get("/api/settings")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to read settings."}


class TestUploadApi:
    def test_upload_and_fetch(self, client):
        resp = client.post("/api/upload", files={"file": ("visa.pdf", b"pdf-bytes", "application/pdf")})
        assert resp.status_code == 200
        url = resp.json()["url"]
        assert url.startswith("/uploads/file-") and url.endswith(".pdf")
        assert client.get(url).content == b"pdf-bytes"

    def test_upload_without_file(self, client):
        resp = client.post("/api/upload")
        assert resp.status_code == 400
        assert resp.json() == {"error": "No file uploaded."}

    def test_missing_upload_is_404(self, client):
        assert client.get("/uploads/file-0-0.pdf").status_code == 404


class TestExportImportApi:
    def test_backup_export(self, client):
        a = client.post("/api/applicants", json={"FullName": "A"}).json()
        client.post("/api/applicants", json={"FullName": "B"})
        resp = client.post("/api/export", json={"type": "backup", "ids": [a["id"]]})
        assert resp.status_code == 200
        assert 'filename="visa-tracker-backup.json"' in resp.headers["content-disposition"]
        body = resp.json()
        assert body["applicants"] == [a]
        assert body["settings"]["id"] == "settings_1"

    def test_zip_export_with_missing_document(self, client, cfg):
        url = client.post("/api/upload", files={"file": ("id.jpg", b"jpg", "image/jpeg")}).json()["url"]
        client.post("/api/applicants", json={
            "FullName": "Jane Doe",
            "Documents": json.dumps([
                {"name": "Emirates ID", "url": url},
                {"name": "Deleted", "url": "/uploads/file-1-1.pdf"},
            ]),
        })
        resp = client.post("/api/export", json={"type": "zip"})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/zip"
        with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
            assert sorted(zf.namelist()) == ["applicant-data.txt", "jane_doe/emirates_id.jpg"]

    def test_xlsx_export(self, client):
        client.post("/api/applicants", json={"FullName": "A"})
        resp = client.post("/api/export", json={"type": "xlsx"})
        assert resp.status_code == 200
        assert resp.content[:2] == b"PK"

    def test_invalid_export_type(self, client):
        resp = client.post("/api/export", json={"type": "pdf"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid export type."}

    def test_backup_round_trip_through_import(self, client):
        client.post("/api/applicants", json={"FullName": "Jane", "StepsCompleted": {"Offer Letter": True}})
        backup = client.post("/api/export", json={"type": "backup"}).content

        client.post("/api/applicants", json={"FullName": "Added later"})
        resp = client.post("/api/import", files={"backupFile": ("backup.json", backup, "application/json")})
        assert resp.status_code == 200
        assert resp.json()["message"].startswith("Import successful")

        restored = json.loads(backup)
        assert client.get("/api/applicants").json() == restored["applicants"]
        assert client.get("/api/settings").json() == restored["settings"]

    def test_import_json_body(self, client):
        resp = client.post("/api/import", json={
            "settings": {"id": "settings_1", "VISA_STEPS": ["Only"]},
            "applicants": [{"id": "x1", "FullName": "Imported"}],
        })
        assert resp.status_code == 200
        assert client.get("/api/applicants").json()[0]["id"] == "x1"

    def test_bad_import_leaves_store_unchanged(self, client):
        client.post("/api/applicants", json={"FullName": "Keep"})
        before = client.get("/api/applicants").json()
        resp = client.post("/api/import", json={"settings": {"VISA_STEPS": []}, "applicants": "not-an-array"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid backup file format."}
        assert client.get("/api/applicants").json() == before

    def test_import_without_file(self, client):
        resp = client.post("/api/import", files={"other": ("x.txt", b"x", "text/plain")})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No backup file uploaded."}


class TestAuth:
    def test_open_api_by_default(self, client):
        assert client.get("/api/me").json() == {"role": "admin"}

    def test_anonymous_is_rejected(self, auth_client):
        assert auth_client.get("/api/applicants").status_code == 401

    def test_viewer_is_read_only(self, auth_client):
        resp = auth_client.post("/api/login", data={"password": ""})
        assert resp.json() == {"ok": True, "role": "viewer"}
        assert auth_client.get("/api/applicants").status_code == 200
        assert "ADMIN_PASSWORD" not in auth_client.get("/api/settings").json()
        assert auth_client.post("/api/applicants", json={"FullName": "X"}).status_code == 403
        assert auth_client.post("/api/settings", json={"VISA_STEPS": []}).status_code == 403

    def test_admin_login(self, auth_client):
        assert auth_client.post("/api/login", json={"password": "wrong"}).status_code == 401
        resp = auth_client.post("/api/login", json={"password": "admin123"})
        assert resp.json()["role"] == "admin"
        assert auth_client.post("/api/applicants", json={"FullName": "X"}).status_code == 201
        assert auth_client.get("/api/settings").json()["ADMIN_PASSWORD"] == "admin123"

        auth_client.post("/api/logout")
        assert auth_client.get("/api/applicants").status_code == 401

    def test_viewer_backup_omits_admin_password(self, auth_client):
        auth_client.post("/api/login", json={"password": ""})
        resp = auth_client.post("/api/export", json={"type": "backup"})
        assert resp.status_code == 200
        assert resp.json()["settings"]["id"] == "settings_1"
        assert "ADMIN_PASSWORD" not in resp.json()["settings"]

        auth_client.post("/api/login", json={"password": "admin123"})
        resp = auth_client.post("/api/export", json={"type": "backup"})
        assert resp.json()["settings"]["ADMIN_PASSWORD"] == "admin123"


class TestRouting:
    def test_health_and_correlation_id(self, client):
        resp = client.get("/api/health", headers={"X-Correlation-ID": "abc"})
        assert resp.json()["ok"] is True
        assert resp.headers["X-Correlation-ID"] == "abc"

    def test_unknown_api_path(self, client):
        resp = client.get("/api/nothing")
        assert resp.status_code == 404
        assert resp.json() == {"error": "API endpoint not found."}

    def test_spa_fallback(self, client):
        assert "visa tracker" in client.get("/applicants/123").text
        assert "visa tracker" in client.get("/").text
        assert client.get("/app.js").text == "console.log('ok')"

    def test_request_size_ceiling(self, client, cfg):
        cfg.MAX_REQUEST_MB = 0
        resp = client.post("/api/applicants", json={"FullName": "Too big"})
        assert resp.status_code == 413

    def test_chunked_body_over_ceiling(self, client, cfg):
        cfg.MAX_REQUEST_MB = 0

        def chunks():
            yield b'{"settings": {"VISA_STEPS": []}, '
            yield b'"applicants": []}'

        resp = client.post("/api/import", content=chunks(), headers={"Content-Type": "application/json"})
        assert resp.status_code == 413
        assert resp.json() == {"error": "Request body too large."}
        assert client.get("/api/applicants").json() == []
