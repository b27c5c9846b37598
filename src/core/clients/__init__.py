"""
HTTP clients for the external services Cortex consumes.

- ``AuthClient``: resolves a bearer credential into an ``AuthenticatedUser``
- ``SubscriptionClient``: premium status for a (user, topic) pair

Both take an injected ``httpx.AsyncClient``; the service container owns its
lifecycle.
"""

from src.core.clients.auth import AuthClient, AuthenticatedUser
from src.core.clients.subscription import SubscriptionClient

__all__ = ["AuthClient", "AuthenticatedUser", "SubscriptionClient"]
