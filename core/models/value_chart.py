"""
Event value chart schemas - named leaderboards ("season packs") per event.

Stored in the 'eventvaluecharts' collection, one document per chart id.
Packs are merged by name: a run replaces the packs it computed and leaves
every other pack in the document untouched.

Example Document:
    {
        "id": "아이콘 로드 3500",
        "updateTime": ISODate("2025-06-01T03:00:00Z"),
        "seasonPack": [
            {
                "packName": "HG TOP 100",
                "playerPrice": [
                    {"grade": 8, "playerPrice": ObjectId("...")},
                    ...
                ]
            },
            ...
        ]
    }
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

PACK_NAME_KEY = "packName"


class LeaderboardEntry(BaseModel):
    """Ranked position referencing a stored price record by _id."""
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    grade: int
    price_record_id: ObjectId = Field(..., alias="playerPrice")


class Pack(BaseModel):
    """One named leaderboard."""
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    pack_name: str = Field(..., alias="packName", min_length=1)
    entries: List[LeaderboardEntry] = Field(default_factory=list, alias="playerPrice")

    def to_dict_for_db(self) -> dict:
        return self.model_dump(by_alias=True)


class EventValueChart(BaseModel):
    """Aggregate document holding every current pack of one event."""
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="allow",
    )

    object_id: Optional[Any] = Field(None, alias="_id")
    chart_id: str = Field(..., alias="id")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    season_pack: List[Dict[str, Any]] = Field(default_factory=list, alias="seasonPack")

    @field_validator("update_time", mode="wrap")
    @classmethod
    def _lenient_time(cls, value, handler):
        # Hand-edited charts may hold "" or free text until the next merge
        try:
            return handler(value)
        except ValidationError:
            return None

    @property
    def pack_names(self) -> List[str]:
        return [pack.get(PACK_NAME_KEY) for pack in self.season_pack]


def merge_season_packs(
    existing: Iterable[Mapping[str, Any]],
    incoming: Iterable[Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Merge incoming packs into an existing pack list by ``packName``.

    - A pack whose name already exists is replaced at its current position.
    - A new name is appended after the existing packs.
    - Packs not named in ``incoming`` are returned unchanged (same objects).
    - Duplicate names collapse to one pack at the first-seen position; within
      ``incoming`` the last occurrence wins.

    Args:
        existing: Packs currently stored in the chart document (may be empty)
        incoming: Newly computed packs as stored dicts

    Returns:
        Merged pack list in deterministic first-seen order
    """
    merged: Dict[str, Mapping[str, Any]] = {}

    for pack in existing:
        name = pack.get(PACK_NAME_KEY)
        if name not in merged:
            merged[name] = pack

    for pack in incoming:
        # dict assignment keeps the original insertion position
        merged[pack[PACK_NAME_KEY]] = pack

    return list(merged.values())
