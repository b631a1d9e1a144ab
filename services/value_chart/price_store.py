"""
Price store - upserts scraped values into the 'prices' collection.

Every observation becomes an independent (player, grade) upsert:
the grade entry is overwritten when present, appended otherwise, and the
player's record is created on first sight. The full grade list of a record is
never replaced, so grades written by other campaigns survive.
"""
from typing import Dict, List, Optional, Sequence

from pymongo import UpdateOne
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from core.logging import get_logger, log_execution_time
from core.models.price import PriceRecord, ValueObservation, apply_observations

logger = get_logger("price-store")


def build_price_operations(observations: Sequence[ValueObservation]) -> List[UpdateOne]:
    """
    Bulk operations equivalent to one upsert per (player, grade).

    Per observation, in order:
    1. create the record if missing
    2. overwrite the price of the matching grade entry
    3. append the grade entry if the record has none for that grade
    """
    operations: List[UpdateOne] = []
    for obs in observations:
        key = str(obs.player_id)
        entry = {"grade": obs.grade, "price": obs.price_text}
        operations.extend([
            UpdateOne(
                {"id": key},
                {"$setOnInsert": {"prices": []}},
                upsert=True,
            ),
            UpdateOne(
                {"id": key, "prices.grade": obs.grade},
                {"$set": {"prices.$.price": obs.price_text}},
            ),
            UpdateOne(
                {"id": key, "prices.grade": {"$ne": obs.grade}},
                {"$push": {"prices": entry}},
            ),
        ])
    return operations


@log_execution_time(logger)
def save_price_observations(
    collection: Collection,
    observations: Sequence[ValueObservation],
    dry_run: bool = False,
) -> Dict[str, int]:
    """
    Persist observations as one ordered bulk write.

    Write failures are logged and reported in the stats; they never raise, so
    the caller can keep ranking with the in-memory results.

    Args:
        collection: The 'prices' collection
        observations: Scraped observations (failures included)
        dry_run: If True, log the resulting records without writing

    Returns:
        Stats dictionary with operations/matched/modified/upserted/errors counts
    """
    stats = {"operations": 0, "matched": 0, "modified": 0, "upserted": 0, "errors": 0}

    if not observations:
        logger.warning("No data to save")
        return stats

    if dry_run:
        preview_price_records(collection, observations)
        return stats

    operations = build_price_operations(observations)
    stats["operations"] = len(operations)

    try:
        result = collection.bulk_write(operations, ordered=True)
        stats["matched"] = result.matched_count
        stats["modified"] = result.modified_count
        stats["upserted"] = result.upserted_count
        logger.info("Prices updated", extra=stats)
    except PyMongoError as e:
        stats["errors"] = 1
        logger.error(f"Price bulk write failed: {e}", extra={"operations": len(operations)})

    return stats


def preview_price_records(
    collection: Collection,
    observations: Sequence[ValueObservation],
) -> Dict[str, PriceRecord]:
    """Log the records a save would produce, reading but not writing."""
    keys = sorted({str(obs.player_id) for obs in observations})
    existing: Dict[str, PriceRecord] = {}
    try:
        for doc in collection.find({"id": {"$in": keys}}):
            existing[doc["id"]] = PriceRecord.model_validate(doc)
    except PyMongoError as e:
        logger.warning(f"Could not read existing prices for preview: {e}")

    records = apply_observations(existing, observations)

    logger.info("DRY RUN - price records not written", extra={"records": len(records)})
    for key in keys:
        grades = ", ".join(f"+{p.grade}: {p.price}" for p in records[key].prices)
        print(f"✓ {key} | {grades}")
    return records


def find_price_record(collection: Collection, player_id: int) -> Optional[PriceRecord]:
    """Latest stored price record of a player, or None."""
    doc = collection.find_one({"id": str(player_id)}, sort=[("_id", -1)])
    if doc is None:
        return None
    return PriceRecord.model_validate(doc)
