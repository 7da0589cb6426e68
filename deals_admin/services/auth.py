"""Caller identity via Supabase Auth + user_profiles role.

Session verification is delegated to Supabase (GET /auth/v1/user with the
caller's access token). The admin role is not trusted from token claims; it
is read from the caller's row in user_profiles.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from deals_admin.errors import PersistenceFailedError, UnauthorizedError
from deals_admin.models import UserProfile
from deals_admin.models.user_profile import ROLE_ADMIN
from deals_admin.stores.postgres import Database

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class Caller:
    """Authenticated caller of an admin action."""

    uid: str
    email: str | None = None
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class AuthProviderError(RuntimeError):
    pass


class SupabaseAuthClient:
    """Verifies access tokens against Supabase Auth."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self._transport = transport

    async def get_user(self, access_token: str) -> dict[str, Any] | None:
        """Return the Supabase user for a token, or None if the token is rejected.

        Raises:
            AuthProviderError: If Supabase is misconfigured, unreachable or
                answers with an unexpected status.
        """
        if not self.base_url:
            logger.error("SUPABASE_URL is not set - cannot verify sessions")
            raise AuthProviderError("SUPABASE_URL is not set")

        headers = {"apikey": self.anon_key, "Authorization": f"Bearer {access_token}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"[auth] Supabase request failed: {type(e).__name__}")
            raise AuthProviderError("Auth provider unreachable") from e

        if resp.status_code in (401, 403):
            return None
        if resp.status_code != 200:
            logger.error(f"[auth] Supabase error: {resp.status_code} - {resp.text[:200]}")
            raise AuthProviderError(f"Unexpected auth provider status {resp.status_code}")

        data = resp.json()
        if not isinstance(data, dict) or not data.get("id"):
            raise AuthProviderError("Unexpected response from auth provider")
        return data


async def load_role(db: Database, uid: str) -> str | None:
    """Role stored on the caller's profile (None when there is no profile)."""
    try:
        async with db.session() as session:
            result = await session.execute(select(UserProfile.role).where(UserProfile.id == uid))
            return result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.exception(f"[auth] role lookup failed uid={uid}")
        raise PersistenceFailedError("Failed to verify session")


async def resolve_caller(auth_client: SupabaseAuthClient, db: Database, access_token: str | None) -> Caller:
    """Turn a bearer token into a Caller with its profile role.

    Raises:
        UnauthorizedError: Missing, invalid or expired token.
    """
    if not access_token:
        raise UnauthorizedError("Missing session token")

    try:
        user = await auth_client.get_user(access_token)
    except AuthProviderError:
        raise UnauthorizedError("Unable to verify session")
    if user is None:
        raise UnauthorizedError("Invalid or expired session")

    uid = str(user["id"])
    role = await load_role(db, uid)
    return Caller(uid=uid, email=user.get("email"), role=role)
