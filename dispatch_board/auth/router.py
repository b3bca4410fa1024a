from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response, Query, Body
from fastapi.responses import JSONResponse

from ..schemas.auth import (
    PinRequest,
    PinResponse,
    AdminLoginRequest,
    AdminLoginResponse,
    ActorResponse,
)
from ..services.audit import get_admin_login_logs, serialize_log
from ..services.storage import run_storage
from .identity import ActorIdentity
from .security import get_gate, require_admin, PinSessionGate, AccountSessionGate, SessionGate

logger = structlog.get_logger(__name__)


# Mounted in every mode
session_router = APIRouter(tags=["auth"])

# Mounted only when AUTH_MODE=pin
pin_router = APIRouter(prefix="/api", tags=["auth"])

# Mounted only when AUTH_MODE=account
account_router = APIRouter(prefix="/api", tags=["auth"])


@session_router.get("/admin/session", response_model=ActorResponse)
async def admin_session(request: Request, actor: ActorIdentity = Depends(require_admin)):
    gate = get_gate(request)
    return ActorResponse(user_id=actor.user_id, email=actor.email, name=actor.name, mode=gate.mode)


@session_router.post("/api/logout")
def logout(response: Response, gate: SessionGate = Depends(get_gate)):
    gate.clear_session(response)
    return {"status": "logged_out"}


@pin_router.post("/verify-pin", response_model=PinResponse)
def verify_pin(req: PinRequest, gate: PinSessionGate = Depends(get_gate)):
    granted = gate.verify_pin(req.pin)
    logger.info("pin_verification", granted=granted)
    if not granted:
        return JSONResponse(status_code=401, content={"granted": False})
    response = JSONResponse(status_code=200, content={"granted": True})
    gate.grant(response)
    return response


@account_router.post("/admin-login", response_model=AdminLoginResponse)
async def admin_login(
    request: Request,
    req: Optional[AdminLoginRequest] = Body(default=None),
    gate: AccountSessionGate = Depends(get_gate),
    actor: ActorIdentity = Depends(require_admin),
):
    logged = await gate.record_entry(request, actor, req.model_dump() if req else None)
    if not logged:
        return JSONResponse(status_code=202, content={"success": False, "message": "Login not logged"})
    return JSONResponse(status_code=201, content={"success": True, "message": "Login logged successfully"})


@account_router.get("/admin-login-logs")
async def admin_login_logs(
    request: Request,
    limit: int = Query(default=100),
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
    _: ActorIdentity = Depends(require_admin),
):
    session_factory = request.app.state.session_factory

    def _read():
        with session_factory() as db:
            return [serialize_log(e) for e in get_admin_login_logs(db, user_id=user_id, user_email=user_email, limit=limit)]

    return await run_storage(_read, timeout=request.app.state.settings.storage_timeout_seconds, op="admin_login_logs.list")
