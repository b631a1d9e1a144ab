"""
Leaderboard ranking of scraped values.
"""
from typing import List, Optional, Sequence

from core.models.price import ValueObservation
from core.numbers import price_sort_key


def rank_observations(
    observations: Sequence[ValueObservation],
    limit: Optional[int] = None,
) -> List[ValueObservation]:
    """
    Sort observations by value, highest first, and keep the top ``limit``.

    The sort is stable, so equal values keep their scrape order. Failed and
    unparseable observations rank below every real value.

    Args:
        observations: Observations in scrape order
        limit: Number of entries to keep; None keeps all

    Returns:
        New list; the input is not modified
    """
    ranked = sorted(observations, key=lambda obs: price_sort_key(obs.value), reverse=True)
    if limit is not None:
        ranked = ranked[: max(limit, 0)]
    return ranked
