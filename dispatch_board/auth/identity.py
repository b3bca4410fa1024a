"""
Actor identities and the external account provider lookup.
"""
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from ..config import Settings
from ..errors import AuthError

logger = structlog.get_logger(__name__)

UNKNOWN_ACTOR = "unknown"


@dataclass(frozen=True)
class ActorIdentity:
    email: str
    name: str
    user_id: Optional[str] = None

    @classmethod
    def unknown(cls) -> "ActorIdentity":
        return cls(email=UNKNOWN_ACTOR, name=UNKNOWN_ACTOR)


class AccountIdentityProvider:
    """Resolves a provider-issued access token to the signed-in account."""

    def __init__(self, cfg: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = cfg.identity_api_url.rstrip("/")
        self.project_id = cfg.identity_project_id
        self.secret_key = cfg.identity_secret_key
        self.timeout = cfg.identity_timeout_seconds
        self._transport = transport

    def _headers(self, access_token: str) -> dict:
        return {
            "x-stack-project-id": self.project_id or "",
            "x-stack-access-type": "server",
            "x-stack-secret-server-key": self.secret_key or "",
            "x-stack-access-token": access_token,
        }

    async def fetch_identity(self, access_token: str) -> ActorIdentity:
        if not self.project_id or not self.secret_key:
            raise AuthError("Identity provider is not configured")
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get("/api/v1/users/me", headers=self._headers(access_token))
        except httpx.HTTPError as e:
            logger.warning("identity_lookup_failed", error=str(e))
            raise AuthError("Identity provider unavailable")
        if resp.status_code != 200:
            raise AuthError("Session expired or invalid")
        data = resp.json()
        email = data.get("primary_email") or ""
        if not email:
            raise AuthError("Account has no email")
        return ActorIdentity(
            email=email,
            name=data.get("display_name") or email,
            user_id=str(data.get("id")) if data.get("id") else None,
        )
