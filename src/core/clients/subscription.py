"""
Subscription service client.

Purpose
-------
Ask the external subscription service whether a user holds premium access
to a topic.

Responsibilities
----------------
- Issue the status request with the ``x-service`` header
- Parse ``{"data": {"is_premium": bool}}``
- Raise ``UpstreamServiceError`` for every failure mode

Non-Responsibilities
--------------------
- Deciding what "unavailable" means for the caller (the premium gate
  degrades to "not premium")
- Caching entitlement
"""

from __future__ import annotations

from typing import Any, Dict

import httpx

from src.core.exceptions import UpstreamServiceError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "subscription"


class SubscriptionClient:
    """
    Thin async client for ``GET {base_url}/api/premium/status``.

    Args:
        http: Shared ``httpx.AsyncClient`` (timeout configured by its owner)
        base_url: Subscription service root, without trailing slash
        service_name: Value sent in the ``x-service`` header
    """

    status_path = "/api/premium/status"

    def __init__(self, http: httpx.AsyncClient, base_url: str, service_name: str) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.service_name = service_name

    async def check_status(self, user_id: str, topic_id: str) -> bool:
        """
        Return whether ``user_id`` is premium for ``topic_id``.

        The upstream API reads its parameters from a JSON body on a GET
        request, so the request is built with ``request()`` rather than
        ``get()``.

        Raises:
            UpstreamServiceError: Transport failure, non-2xx status or an
                unexpected response body
        """
        try:
            response = await self.http.request(
                "GET",
                f"{self.base_url}{self.status_path}",
                headers={
                    "Content-Type": "application/json",
                    "x-service": self.service_name,
                },
                json={"user_id": user_id, "topic_id": topic_id},
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Subscription service unreachable",
                extra={"user_id": user_id, "topic_id": topic_id, "error": str(e)},
            )
            raise UpstreamServiceError(SERVICE_NAME, str(e)) from e

        if not response.is_success:
            raise UpstreamServiceError(
                SERVICE_NAME,
                f"status request returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body: Dict[str, Any] = response.json()
            is_premium = body["data"]["is_premium"]
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamServiceError(
                SERVICE_NAME, "malformed status response", status_code=response.status_code
            ) from e

        if not isinstance(is_premium, bool):
            raise UpstreamServiceError(
                SERVICE_NAME, "malformed status response", status_code=response.status_code
            )

        logger.debug(
            "Subscription status resolved",
            extra={"user_id": user_id, "topic_id": topic_id, "is_premium": is_premium},
        )
        return is_premium
