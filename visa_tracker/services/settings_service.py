# ================================
# file: visa_tracker/services/settings_service.py
# ================================
from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends
from pydantic import ValidationError

from ..core.errors import ValidationFailed
from ..core.security import verify_password
from ..db.store import APPLICANTS, SETTINGS, DocumentStore, get_store
from ..schemas.settings import SETTINGS_ID, VisaSettings

log = logging.getLogger(__name__)

# Default visa process, in order
DEFAULT_VISA_STEPS = [
    "Offer Letter",
    "Labour Fees",
    "Labour Insurance",
    "Entry Permit",
    "Change Status",
    "Medical Test",
    "Emirates ID",
    "Contract Submition",
    "Visa Stamping",
]

# Placeholder; the operator must change it
DEFAULT_ADMIN_PASSWORD = "admin123"


def default_settings() -> dict:
    return {
        "id": SETTINGS_ID,
        "VISA_STEPS": list(DEFAULT_VISA_STEPS),
        "ADMIN_PASSWORD": DEFAULT_ADMIN_PASSWORD,
    }


def seed_defaults(store: DocumentStore) -> None:
    """Create the applicant list and settings document if they are missing."""
    if not store.exists(APPLICANTS):
        store.put(APPLICANTS, [])
        log.info("Seeded empty applicant list")
    if not store.exists(SETTINGS):
        store.put(SETTINGS, default_settings())
        log.info("Seeded default settings")


class SettingsRegistry:
    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self) -> dict:
        return self.store.get(SETTINGS)

    def set(self, payload: Any) -> dict:
        """Replace the whole settings document; nothing is merged."""
        try:
            doc = VisaSettings.model_validate(payload)
        except ValidationError as e:
            raise ValidationFailed("Invalid settings format.") from e
        doc.id = SETTINGS_ID
        data = doc.to_document()
        with self.store.lock(SETTINGS):
            self.store.put(SETTINGS, data)
        log.info("Settings saved (%d visa steps)", len(doc.VISA_STEPS))
        if not data.get("ADMIN_PASSWORD"):
            log.warning("Settings saved without ADMIN_PASSWORD; admin login is disabled until one is set")
        return data

    def visa_steps(self) -> list:
        steps = self.get().get("VISA_STEPS") or []
        return [str(s) for s in steps] if isinstance(steps, list) else []

    def verify_admin_password(self, candidate: str) -> bool:
        return verify_password(candidate, self.get().get("ADMIN_PASSWORD"))

    def uses_default_password(self) -> bool:
        return self.get().get("ADMIN_PASSWORD") == DEFAULT_ADMIN_PASSWORD


def get_settings_registry(store: DocumentStore = Depends(get_store)) -> SettingsRegistry:
    return SettingsRegistry(store)
