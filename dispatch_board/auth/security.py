"""
Session gate for the admin surface.

Two mutually exclusive variants, picked by ``settings.auth_mode``:

* ``pin``: a shared numeric PIN is exchanged for a client-side marker cookie
  (24h). The marker is NOT validated server-side: anyone who can set a cookie
  named ``dispatch_session`` passes the gate, and PIN checks have no rate limit
  or lockout (the generic request ceiling exempts ``/api/verify-pin``).
  Suitable only for a physically controlled kiosk.
* ``account``: identity is delegated to an external account provider; the gate
  resolves the caller's access token to an ActorIdentity and records admin
  panel entries in the login audit trail.
"""
import json
import secrets
from typing import Any, Dict, Optional

import structlog
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import sessionmaker

from ..config import Settings
from ..errors import AuthError, StorageError
from ..services.audit import create_admin_login_log
from ..services.storage import run_storage
from .identity import ActorIdentity, AccountIdentityProvider

logger = structlog.get_logger(__name__)


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class SessionGate:
    mode = ""

    def __init__(self, cfg: Settings) -> None:
        self.cfg = cfg

    @property
    def sign_in_url(self) -> str:
        raise NotImplementedError

    @property
    def cookie_name(self) -> str:
        raise NotImplementedError

    async def verify_admin(self, request: Request) -> ActorIdentity:
        """Return the acting identity or raise AuthError."""
        raise NotImplementedError

    def clear_session(self, response: Response) -> None:
        response.delete_cookie(self.cookie_name, path="/")


class PinSessionGate(SessionGate):
    mode = "pin"

    @property
    def sign_in_url(self) -> str:
        return self.cfg.login_path

    @property
    def cookie_name(self) -> str:
        return self.cfg.session_cookie_name

    def verify_pin(self, candidate: Optional[str]) -> bool:
        if not self.cfg.admin_pin:
            return False
        return secrets.compare_digest(str(candidate or "").encode(), self.cfg.admin_pin.encode())

    def grant(self, response: Response) -> None:
        # Plain marker readable by the browser, same as the kiosk frontend sets it
        response.set_cookie(
            self.cookie_name,
            "true",
            max_age=self.cfg.session_ttl_seconds,
            expires=self.cfg.session_ttl_seconds,
            path="/",
            samesite="lax",
        )

    async def verify_admin(self, request: Request) -> ActorIdentity:
        if self.cookie_name not in request.cookies:
            raise AuthError("PIN session missing or expired")
        return ActorIdentity.unknown()


class AccountSessionGate(SessionGate):
    mode = "account"

    def __init__(self, cfg: Settings, provider: AccountIdentityProvider, session_factory: sessionmaker) -> None:
        super().__init__(cfg)
        self.provider = provider
        self._session_factory = session_factory

    @property
    def sign_in_url(self) -> str:
        return self.cfg.identity_sign_in_url

    @property
    def cookie_name(self) -> str:
        return self.cfg.identity_access_cookie

    def access_token(self, request: Request) -> Optional[str]:
        auth = request.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            return auth[7:].strip() or None
        raw = request.cookies.get(self.cookie_name)
        if not raw:
            return None
        # The provider's browser SDK stores ["<refresh>", "<access>"]
        if raw.startswith("["):
            try:
                parts = json.loads(raw)
                return parts[-1] if parts else None
            except ValueError:
                return None
        return raw

    async def verify_admin(self, request: Request) -> ActorIdentity:
        token = self.access_token(request)
        if not token:
            raise AuthError("Not authenticated")
        return await self.provider.fetch_identity(token)

    async def record_entry(self, request: Request, actor: ActorIdentity, body: Optional[Dict[str, Any]] = None) -> bool:
        """Best-effort admin entry log. A failure is logged and never blocks access."""
        body = body or {}
        try:
            await run_storage(
                self._write_entry,
                {
                    "user_id": actor.user_id or body.get("user_id"),
                    "user_email": actor.email or body.get("user_email"),
                    "ip_address": client_ip(request) or body.get("ip_address"),
                    "user_agent": request.headers.get("user-agent") or body.get("user_agent"),
                    "session_info": body.get("session_info"),
                },
                timeout=self.cfg.storage_timeout_seconds,
                op="admin_login_logs.create",
            )
        except StorageError as e:
            logger.warning("admin_login_log_failed", user_email=actor.email, error=e.message)
            return False
        logger.info("admin_login_logged", user_email=actor.email)
        return True

    def _write_entry(self, values: Dict[str, Any]) -> None:
        with self._session_factory() as db:
            create_admin_login_log(db, **values)


def build_gate(cfg: Settings, session_factory: sessionmaker, provider: Optional[AccountIdentityProvider] = None) -> SessionGate:
    if cfg.auth_mode == "account":
        return AccountSessionGate(cfg, provider or AccountIdentityProvider(cfg), session_factory)
    if not cfg.admin_pin:
        logger.warning("admin_pin_not_configured")
    return PinSessionGate(cfg)


def get_gate(request: Request) -> SessionGate:
    return request.app.state.session_gate


async def require_admin(request: Request) -> ActorIdentity:
    actor = getattr(request.state, "actor", None)
    if actor is None:
        actor = await get_gate(request).verify_admin(request)
        request.state.actor = actor
    return actor


async def admin_route_guard(request: Request, call_next):
    """Redirect unauthenticated visitors of admin pages to the sign-in surface."""
    gate: SessionGate = request.app.state.session_gate
    prefix = gate.cfg.admin_path_prefix
    path = request.url.path
    if path == prefix or path.startswith(prefix + "/"):
        try:
            await require_admin(request)
        except AuthError:
            return RedirectResponse(url=gate.sign_in_url, status_code=307)
    return await call_next(request)
