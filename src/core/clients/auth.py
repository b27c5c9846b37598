"""
Authentication service client.

Purpose
-------
Resolve the caller's credentials into an ``AuthenticatedUser`` by asking the
external auth service for the caller's profile.

Responsibilities
----------------
- Require the ``Authorization``, ``x-refresh-token`` and ``x-service`` headers
- Forward them to ``GET {base_url}/api/auth/profile``
- Reject inactive users and, for admin checks, anyone but the admin identity
- Convert every failure into ``AuthenticationError`` with a transport status

Non-Responsibilities
--------------------
- Token validation (the auth service owns it)
- Authorization policy beyond the single admin identity

Failure Mapping
---------------
- missing header -> 401
- upstream non-2xx -> upstream ``msg`` and status
- inactive user -> 403
- admin mismatch -> 403
- auth service unreachable or malformed reply -> 503
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from src.core.logging.logger import get_logger
from src.modules.shared.exceptions import AuthenticationError

logger = get_logger(__name__)

AUTH_HEADER_REQUIRED = "Authorization header is required"
REFRESH_TOKEN_REQUIRED = "x-refresh-token header is required"
SERVICE_REQUIRED = "service header is required"
AUTH_FAILED = "Authentication failed"
AUTH_UNAVAILABLE = "Authentication service unavailable"
USER_INACTIVE = "User account is inactive"
UNAUTHORIZED = "Unauthorized access"


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    fullname: str
    email: str


class AuthClient:
    """
    Async client for the auth service profile endpoint.

    Args:
        http: Shared ``httpx.AsyncClient``
        base_url: Auth service root, without trailing slash
    """

    profile_path = "/api/auth/profile"

    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")

    async def authenticate(
        self,
        authorization: Optional[str],
        refresh_token: Optional[str],
        service: Optional[str],
    ) -> AuthenticatedUser:
        """
        Resolve credentials into a user.

        Raises:
            AuthenticationError: See module docstring for status mapping
        """
        if not authorization:
            raise AuthenticationError(AUTH_HEADER_REQUIRED, 401)
        if not refresh_token:
            raise AuthenticationError(REFRESH_TOKEN_REQUIRED, 401)
        if not service:
            raise AuthenticationError(SERVICE_REQUIRED, 401)

        try:
            response = await self.http.get(
                f"{self.base_url}{self.profile_path}",
                headers={
                    "Content-Type": "application/json",
                    "Authorization": authorization,
                    "x-refresh-token": refresh_token,
                    "x-service": service,
                },
            )
        except httpx.HTTPError as e:
            logger.error(
                "Auth service unreachable",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise AuthenticationError(AUTH_UNAVAILABLE, 503) from e

        if not response.is_success:
            raise AuthenticationError(
                self._upstream_message(response) or AUTH_FAILED,
                response.status_code,
            )

        try:
            user: Dict[str, Any] = response.json()["data"]["user"]
            is_active = bool(user.get("isActive"))
            authenticated = AuthenticatedUser(
                id=str(user["id"]),
                fullname=user.get("fullname") or "",
                email=user.get("email") or "",
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Auth service returned a malformed profile", extra={"error": str(e)})
            raise AuthenticationError(AUTH_UNAVAILABLE, 503) from e

        if not is_active:
            raise AuthenticationError(USER_INACTIVE, 403)

        return authenticated

    async def authenticate_optional(
        self,
        authorization: Optional[str],
        refresh_token: Optional[str],
        service: Optional[str],
    ) -> Optional[AuthenticatedUser]:
        """
        Like ``authenticate`` but anonymous when no ``Authorization`` is sent.

        Credentials that are present but rejected still raise.
        """
        if not authorization:
            return None
        return await self.authenticate(authorization, refresh_token, service)

    async def authenticate_admin(
        self,
        authorization: Optional[str],
        refresh_token: Optional[str],
        service: Optional[str],
        admin_email: str,
    ) -> AuthenticatedUser:
        """Authenticate, then require the caller to be the admin identity."""
        user = await self.authenticate(authorization, refresh_token, service)
        if not admin_email or user.email != admin_email:
            logger.info("Admin check rejected", extra={"user_id": user.id})
            raise AuthenticationError(UNAUTHORIZED, 403)
        return user

    @staticmethod
    def _upstream_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("msg") or None
        return None
