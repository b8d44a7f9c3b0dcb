import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import unauthorized

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class CallerIdentity:
    """Authenticated user resolved from a Supabase access token"""

    id: str
    email: Optional[str]
    access_token: str


class SupabaseAuthClient:
    """
    Thin client for the Supabase auth and PostgREST endpoints the relay needs.

    Requests are made with the caller's own access token so that row-level
    security on the hosted database applies exactly as it does for the app.
    """

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.transport = transport

    def headers(self, access_token: str) -> dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token}",
        }

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.supabase_url, timeout=self.timeout, transport=self.transport
        )

    async def get_user(self, access_token: str) -> Optional[CallerIdentity]:
        """Resolve a bearer token to a caller identity, or None if it is not valid"""
        try:
            async with self.client() as client:
                response = await client.get("/auth/v1/user", headers=self.headers(access_token))
        except httpx.HTTPError as e:
            logger.error(f"❌ Error reaching Supabase auth: {str(e)}")
            return None

        if response.status_code != 200:
            logger.warning(f"⚠️ Supabase rejected token: HTTP {response.status_code}")
            return None

        try:
            user = response.json()
        except ValueError:
            logger.error("❌ Supabase auth returned a non-JSON body")
            return None

        if not isinstance(user, dict) or not user.get("id"):
            logger.error("❌ Supabase auth response missing user id")
            return None

        return CallerIdentity(id=user["id"], email=user.get("email"), access_token=access_token)

    async def get_profile_name(self, access_token: str, user_id: str) -> Optional[str]:
        """Look up user_profiles.full_name; any failure yields None"""
        try:
            async with self.client() as client:
                response = await client.get(
                    "/rest/v1/user_profiles",
                    params={"select": "full_name", "id": f"eq.{user_id}"},
                    headers=self.headers(access_token),
                )
            if response.status_code != 200:
                logger.debug(f"Profile lookup for {user_id} returned HTTP {response.status_code}")
                return None
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"⚠️ Profile lookup failed for {user_id}: {e}")
            return None

        if isinstance(rows, list) and rows and isinstance(rows[0], dict):
            return rows[0].get("full_name") or None
        return None


def get_auth_client(request: Request) -> SupabaseAuthClient:
    return request.app.state.auth_client


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
) -> CallerIdentity:
    """Resolve the caller from the Authorization header"""
    if not credentials or not credentials.credentials:
        logger.warning("⚠️ Request without bearer credentials")
        raise unauthorized("Missing authorization header")

    caller = await auth_client.get_user(credentials.credentials)
    if not caller:
        raise unauthorized("Unauthorized")

    logger.debug(f"✅ Caller authenticated: {caller.id}")
    return caller
