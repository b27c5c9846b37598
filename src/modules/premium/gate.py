"""
Premium Gate
============

Purpose
-------
Hide premium-flagged questions from callers without an active subscription.

Rules
-----
- No premium item in the batch: returned unchanged, no external call
- Anonymous caller: premium items dropped
- Authenticated caller: one subscription lookup for (user, topic of the
  first item); a batch is assumed to share one topic
- Subscription service unavailable: treated as "not premium"
- Single-item fetch filtered down to nothing: ``PremiumRequiredError``, so
  callers can tell "exists but not entitled" from "not found"
- Multi-item pages simply shrink; ``total_count`` is left to the caller and
  is not reduced
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from src.core.exceptions import UpstreamServiceError
from src.modules.shared.exceptions import PremiumRequiredError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.clients.subscription import SubscriptionClient
    from src.modules.catalog.schemas import QuestionRecord


PREMIUM_REQUIRED = "Subscription required to access this content"


class PremiumGate:
    """
    Entitlement filter for question batches.

    Args:
        subscriptions: Client for the external subscription service
        logger: Structured logger instance
    """

    def __init__(self, subscriptions: SubscriptionClient, logger: Logger) -> None:
        self.subscriptions = subscriptions
        self.log = logger

    async def filter(
        self,
        items: Sequence[QuestionRecord],
        user_id: Optional[str],
        single: Optional[bool] = None,
    ) -> List[QuestionRecord]:
        """
        Return the items the caller may see.

        Args:
            items: Questions from one topic
            user_id: Authenticated caller, or None for anonymous
            single: Whether this was a single-item fetch; defaults to
                ``len(items) == 1``

        Raises:
            PremiumRequiredError: Single-item fetch and the caller is not
                entitled to it
        """
        batch = list(items)
        if not batch or not any(item.is_premium for item in batch):
            return batch

        is_single = len(batch) == 1 if single is None else single

        if user_id and await self._is_premium(user_id, batch[0].topic_id):
            return batch

        visible = [item for item in batch if not item.is_premium]
        if is_single and not visible:
            raise PremiumRequiredError(PREMIUM_REQUIRED)

        self.log.debug(
            "Premium items filtered",
            extra={
                "user_id": user_id,
                "requested": len(batch),
                "visible": len(visible),
            },
        )
        return visible

    async def _is_premium(self, user_id: str, topic_id: str) -> bool:
        try:
            return await self.subscriptions.check_status(user_id, topic_id)
        except UpstreamServiceError as e:
            self.log.warning(
                "Subscription check failed; treating as not premium",
                extra={
                    "user_id": user_id,
                    "topic_id": topic_id,
                    "error_code": e.error_code,
                    "status_code": e.status_code,
                },
            )
            return False
