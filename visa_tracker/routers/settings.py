# visa_tracker/routers/settings.py
from fastapi import APIRouter, Body, Depends, Request

from visa_tracker.routers.auth import hides_admin_password, require_admin, require_viewer
from visa_tracker.services.settings_service import SettingsRegistry, get_settings_registry

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("")
def read_settings(
    request: Request,
    registry: SettingsRegistry = Depends(get_settings_registry),
    role: str = Depends(require_viewer),
):
    doc = registry.get()
    if hides_admin_password(request, role) and isinstance(doc, dict):
        doc.pop("ADMIN_PASSWORD", None)
    return doc


@router.post("")
def save_settings(
    payload: dict = Body(...),
    registry: SettingsRegistry = Depends(get_settings_registry),
    role: str = Depends(require_admin),
):
    return registry.set(payload)
