"""
Deterministic recommendation ranking.

Partitions a candidate list into personalized, related and trending
buckets. Buckets are independent: no padding, no borrowing between them.
All sorts are stable, so ties keep candidate order.
"""

import re
from typing import Dict, List, Optional, Sequence

from models import Product
from logger import log_function_call

BUCKET_SIZE = 3
MIN_PERSONALIZED_RATING = 4.0
MIN_TRENDING_REVIEWS = 10

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d*\.?\d*")


def parse_price(price: Optional[str]) -> float:
    """
    Extract a numeric price from display text.

    Strips everything but digits and dots, then reads the leading number
    ("$1,299.99" -> 1299.99). Anything unparseable is 0.
    """
    if not price:
        return 0.0
    cleaned = _NON_NUMERIC.sub("", str(price))
    match = _LEADING_NUMBER.match(cleaned)
    try:
        return float(match.group()) if match else 0.0
    except ValueError:
        return 0.0


def rank_personalized(candidates: Sequence[Product], limit: int = BUCKET_SIZE) -> List[Product]:
    """Highly rated products, best rating first."""
    rated = [p for p in candidates if p.rating is not None and p.rating >= MIN_PERSONALIZED_RATING]
    return sorted(rated, key=lambda p: p.rating, reverse=True)[:limit]


def rank_related(candidates: Sequence[Product], limit: int = BUCKET_SIZE) -> List[Product]:
    """Products in a category present in the candidate set, cheapest first."""
    categories = {p.category for p in candidates if p.category}
    related = [p for p in candidates if p.category in categories]
    return sorted(related, key=lambda p: parse_price(p.price))[:limit]


def rank_trending(candidates: Sequence[Product], limit: int = BUCKET_SIZE) -> List[Product]:
    """Products with more than a handful of reviews, most reviewed first."""
    reviewed = [p for p in candidates if p.reviews is not None and p.reviews > MIN_TRENDING_REVIEWS]
    return sorted(reviewed, key=lambda p: p.reviews, reverse=True)[:limit]


@log_function_call()
def partition(candidates: Sequence[Product]) -> Dict[str, List[Product]]:
    return {
        "personalized": rank_personalized(candidates),
        "related": rank_related(candidates),
        "trending": rank_trending(candidates),
    }


def positional_partition(candidates: Sequence[Product]) -> Dict[str, List[Product]]:
    """Slice candidates into consecutive buckets of three."""
    return {
        "personalized": list(candidates[0:BUCKET_SIZE]),
        "related": list(candidates[BUCKET_SIZE:2 * BUCKET_SIZE]),
        "trending": list(candidates[2 * BUCKET_SIZE:3 * BUCKET_SIZE]),
    }
