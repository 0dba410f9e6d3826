"""Per-tier draft and publish quotas

Both checks read the owner's current count and then let the caller act; they
are not transactional, so two creations racing in the same window can
overshoot a limit by one.
"""

import logging

from quizdraft.config import DEFAULT_TIER_LIMITS, TierLimits
from quizdraft.crud.store import DocumentStore
from quizdraft.errors import DraftLimitReached, PublishLimitReached


logger = logging.getLogger(__name__)

FALLBACK_TIER = "free"


def limits_for(tier: str | None, limits: dict[str, TierLimits] | None = None) -> TierLimits:
    """Limits for tier; unknown or missing tiers get the free tier's limits."""
    limits = limits if limits is not None else DEFAULT_TIER_LIMITS
    if tier in limits:
        return limits[tier]
    return limits.get(FALLBACK_TIER, DEFAULT_TIER_LIMITS[FALLBACK_TIER])


async def check_draft_quota(store: DocumentStore, owner_id: str, limits: TierLimits) -> int:
    """Raise DraftLimitReached when the owner's unpublished count is at the limit; return the count."""
    if limits.draft_limit is None:
        return 0
    count = len(await store.query(owner_id, is_published=False))
    if count >= limits.draft_limit:
        logger.warning("Draft limit reached for %s: %d/%d", owner_id, count, limits.draft_limit)
        raise DraftLimitReached(limits.draft_limit, count)
    return count


async def check_publish_quota(store: DocumentStore, owner_id: str, limits: TierLimits) -> int:
    """Raise PublishLimitReached when the owner's published count is at the limit; return the count."""
    if limits.published_limit is None:
        return 0
    count = len(await store.query(owner_id, is_published=True))
    if count >= limits.published_limit:
        logger.warning("Publish limit reached for %s: %d/%d", owner_id, count, limits.published_limit)
        raise PublishLimitReached(limits.published_limit, count)
    return count
