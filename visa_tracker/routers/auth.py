# visa_tracker/routers/auth.py
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from visa_tracker.services.settings_service import SettingsRegistry, get_settings_registry

log = logging.getLogger(__name__)

router = APIRouter()

ADMIN = "admin"
VIEWER = "viewer"
ROLES = (ADMIN, VIEWER)


def _auth_enabled(request: Request) -> bool:
    return bool(request.app.state.settings.AUTH_ENABLED)


def get_current_role(request: Request) -> Optional[str]:
    # with auth off every caller acts as admin
    if not _auth_enabled(request):
        return ADMIN
    role = request.session.get("role")
    return role if role in ROLES else None


def require_roles(*roles: str):
    def _dep(role: Optional[str] = Depends(get_current_role)) -> str:
        if not role:
            raise HTTPException(HTTP_401_UNAUTHORIZED, "Login required.")
        if roles and role not in roles:
            raise HTTPException(HTTP_403_FORBIDDEN, "Forbidden")
        return role
    return _dep


require_admin = require_roles(ADMIN)
require_viewer = require_roles(ADMIN, VIEWER)


def hides_admin_password(request: Request, role: Optional[str]) -> bool:
    """Only admins may read ADMIN_PASSWORD once auth is on."""
    return _auth_enabled(request) and role != ADMIN


async def _read_password(request: Request) -> str:
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(400, "Invalid request body.")
        value = body.get("password") if isinstance(body, dict) else None
    else:
        form = await request.form()
        value = form.get("password")
    return value if isinstance(value, str) else ""


@router.post("/login")
async def login(
    request: Request,
    registry: SettingsRegistry = Depends(get_settings_registry),
):
    """Blank password opens a read-only viewer session."""
    password = await _read_password(request)
    if not password:
        role = VIEWER
    elif registry.verify_admin_password(password):
        role = ADMIN
    else:
        log.warning("Failed admin login from %s", request.client.host if request.client else "?")
        raise HTTPException(HTTP_401_UNAUTHORIZED, "Invalid credentials")

    request.session.clear()
    request.session["role"] = role
    request.session["_login_at"] = int(time.time())
    return {"ok": True, "role": role}


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"ok": True}


@router.get("/me")
def me(role: str = Depends(require_viewer)):
    return {"role": role}
