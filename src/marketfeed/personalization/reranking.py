"""Final ordering pass over feed candidates.

Two rules, applied in order:
1. Freshness: markets created within the last 24 hours move ahead of older
   ones. Relative order inside each group is preserved.
2. Diversity: the first ``TOP_SLOTS`` positions hold at most
   ``MAX_PER_CATEGORY_IN_TOP`` markets per category. Items that would break
   the cap are pushed after the top slots, in the order they were skipped.

The pass only reorders; it never adds or drops items.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import TypeVar

from marketfeed.personalization.schemas import RerankableItem, ensure_utc

TOP_SLOTS = 10
MAX_PER_CATEGORY_IN_TOP = 2
FRESHNESS_WINDOW = timedelta(hours=24)

ItemT = TypeVar("ItemT", bound=RerankableItem)


def apply_freshness(items: Sequence[ItemT], now: datetime) -> list[ItemT]:
    """Stable partition: recent items first, then older ones."""
    cutoff = now - FRESHNESS_WINDOW
    recent = [item for item in items if ensure_utc(item.created_at) >= cutoff]
    older = [item for item in items if ensure_utc(item.created_at) < cutoff]
    return recent + older


def apply_diversity(items: Sequence[ItemT]) -> list[ItemT]:
    """Enforce the per-category cap inside the top slots."""
    top: list[ItemT] = []
    deferred: list[ItemT] = []
    per_category: Counter[str] = Counter()

    for item in items:
        if len(top) < TOP_SLOTS and per_category[item.category] < MAX_PER_CATEGORY_IN_TOP:
            top.append(item)
            per_category[item.category] += 1
        else:
            deferred.append(item)

    return top + deferred


def rerank_feed(items: Sequence[ItemT], now: datetime | None = None) -> list[ItemT]:
    """Reorder feed items for freshness and category diversity.

    Args:
        items: Feed items in candidate order.
        now: Reference time for the freshness window; defaults to now.

    Returns:
        A permutation of ``items``.

    Examples:
        >>> ranked = rerank_feed(entries)
        >>> len(ranked) == len(entries)
        True
    """
    if not items:
        return []
    now = ensure_utc(now) if now else datetime.now(UTC)
    return apply_diversity(apply_freshness(items, now))
