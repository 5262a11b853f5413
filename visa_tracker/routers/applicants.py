# visa_tracker/routers/applicants.py
from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from visa_tracker.routers.auth import require_admin, require_viewer
from visa_tracker.services.applicants import ApplicantRegistry, get_applicant_registry
from visa_tracker.services.settings_service import SettingsRegistry, get_settings_registry

router = APIRouter(prefix="/applicants", tags=["Applicants"])


# ================= LIST =================
@router.get("")
def list_applicants(
    registry: ApplicantRegistry = Depends(get_applicant_registry),
    role: str = Depends(require_viewer),
):
    return registry.list()


# ================= GET one =================
@router.get("/{applicant_id}")
def get_applicant(
    applicant_id: str,
    registry: ApplicantRegistry = Depends(get_applicant_registry),
    role: str = Depends(require_viewer),
):
    return registry.get(applicant_id)


@router.get("/{applicant_id}/progress")
def applicant_progress(
    applicant_id: str,
    registry: ApplicantRegistry = Depends(get_applicant_registry),
    settings_registry: SettingsRegistry = Depends(get_settings_registry),
    role: str = Depends(require_viewer),
):
    return registry.progress(applicant_id, settings_registry.visa_steps())


# ================= CREATE =================
@router.post("", status_code=201)
def create_applicant(
    payload: dict = Body(...),  # plain dict; the registry validates
    registry: ApplicantRegistry = Depends(get_applicant_registry),
    role: str = Depends(require_admin),
):
    return registry.create(payload)


# ================= UPDATE =================
@router.put("/{applicant_id}")
def update_applicant(
    applicant_id: str,
    payload: dict = Body(...),
    registry: ApplicantRegistry = Depends(get_applicant_registry),
    role: str = Depends(require_admin),
):
    return registry.update(applicant_id, payload)


# ================= DELETE =================
@router.delete("/{applicant_id}")
def delete_applicant(
    applicant_id: str,
    registry: ApplicantRegistry = Depends(get_applicant_registry),
    role: str = Depends(require_admin),
):
    registry.delete(applicant_id)
    return {"message": "Applicant deleted successfully."}
