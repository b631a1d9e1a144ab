"""
Player search over the catalog ('playerreports' collection).

Candidates for a campaign are the players of the requested seasons whose best
overall rating meets the threshold, highest rated first, each joined with its
price record and season image. One query runs per season range and the
results are concatenated; a player belongs to exactly one season, so no
de-duplication is needed.
"""
import re
from typing import Any, Dict, Iterable, List, Optional, Union

from pymongo.collection import Collection

from core.config import config
from core.logging import get_logger
from core.models.catalog import CatalogEntry, normalize_season, season_range

logger = get_logger("player-search")

# Catalog document fields
RATING_FIELD = "능력치.포지션능력치.최고능력치"
SORT_FIELD = "능력치.포지션능력치.포지션최고능력치"
PLAYER_INFO_FIELD = "선수정보"
PRICE_REF_FIELD = f"{PLAYER_INFO_FIELD}.prices"
SEASON_IMAGE_REF_FIELD = f"{PLAYER_INFO_FIELD}.시즌이미지"

RESULT_LIMIT = 10000


def build_match_conditions(
    min_rating: int = 0,
    name: Optional[str] = None,
    season_number: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """``$and`` clauses for one catalog query."""
    conditions: List[Dict[str, Any]] = []

    if name:
        conditions.append({"name": {"$regex": re.escape(name)}})

    if min_rating and min_rating > 0:
        conditions.append({RATING_FIELD: {"$gte": int(min_rating)}})

    if season_number is not None:
        low, high = season_range(season_number)
        conditions.append({"id": {"$gte": low, "$lte": high}})

    return conditions


def build_search_pipeline(
    conditions: List[Dict[str, Any]],
    price_collection: Optional[str] = None,
    season_collection: Optional[str] = None,
    limit: int = RESULT_LIMIT,
) -> List[Dict[str, Any]]:
    """Aggregation pipeline: filter, sort, cap, then join price and season image."""
    price_collection = price_collection or config.PRICE_COLLECTION
    season_collection = season_collection or config.SEASON_COLLECTION

    return [
        {"$match": {"$and": conditions} if conditions else {}},
        {"$sort": {SORT_FIELD: -1}},
        {"$limit": limit},
        {"$lookup": {
            "from": price_collection,
            "localField": PRICE_REF_FIELD,
            "foreignField": "_id",
            "as": "_price",
        }},
        {"$lookup": {
            "from": season_collection,
            "localField": SEASON_IMAGE_REF_FIELD,
            "foreignField": "_id",
            "as": "_season_image",
        }},
        {"$set": {
            PRICE_REF_FIELD: {"$first": "$_price"},
            SEASON_IMAGE_REF_FIELD: {"$first": "$_season_image"},
        }},
        {"$unset": ["_price", "_season_image"]},
    ]


def search_players(
    collection: Collection,
    seasons: Optional[Iterable[Union[int, str]]] = None,
    min_rating: int = 0,
    name: Optional[str] = None,
) -> List[CatalogEntry]:
    """
    Find campaign candidates.

    Args:
        collection: The 'playerreports' collection
        seasons: Season codes (last three digits are the season number);
            empty or None searches every season
        min_rating: Minimum best overall rating; 0 disables the filter
        name: Optional substring of the player name

    Returns:
        Catalog entries, per season highest rated first, seasons in the given order
    """
    season_numbers = [normalize_season(s) for s in (seasons or [])]
    queries = season_numbers or [None]

    players: List[CatalogEntry] = []
    for season_number in queries:
        pipeline = build_search_pipeline(
            build_match_conditions(min_rating=min_rating, name=name, season_number=season_number)
        )
        docs = list(collection.aggregate(pipeline))
        players.extend(CatalogEntry.model_validate(doc) for doc in docs)
        logger.debug(
            f"Season {season_number if season_number is not None else 'ALL'}: {len(docs)} players",
            extra={"season": season_number, "min_rating": min_rating},
        )

    logger.info(
        f"Found {len(players)} players",
        extra={"seasons": season_numbers, "min_rating": min_rating},
    )
    return players
