"""
Value chart store - merges computed packs into the 'eventvaluecharts' document.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from pymongo.collection import Collection

from core.logging import get_logger
from core.models.value_chart import EventValueChart, Pack, merge_season_packs

logger = get_logger("chart-store")


def load_value_chart(collection: Collection, chart_id: str) -> Optional[EventValueChart]:
    doc = collection.find_one({"id": chart_id})
    if doc is None:
        return None
    return EventValueChart.model_validate(doc)


def save_value_chart(
    collection: Collection,
    chart_id: str,
    packs: Sequence[Pack],
    now: Optional[datetime] = None,
) -> List[Dict]:
    """
    Merge ``packs`` into the chart document and write it back.

    Packs with the same name are replaced, new ones appended, all others kept.
    A missing document is created (upsert) with exactly the incoming packs.
    Only ``seasonPack`` of the stored document is read; ``updateTime`` is
    overwritten whatever it held.

    Returns:
        The merged pack list as written
    """
    existing = collection.find_one({"id": chart_id})
    existing_packs = (existing or {}).get("seasonPack") or []

    merged = merge_season_packs(existing_packs, [pack.to_dict_for_db() for pack in packs])
    update_time = now or datetime.now(timezone.utc)

    collection.update_one(
        {"id": chart_id},
        {"$set": {"updateTime": update_time, "seasonPack": merged}},
        upsert=True,
    )

    logger.info(
        f"Value chart '{chart_id}' updated",
        extra={
            "chart_id": chart_id,
            "merged_packs": [pack.pack_name for pack in packs],
            "total_packs": len(merged),
            "chart_created": existing is None,
        },
    )
    return merged
