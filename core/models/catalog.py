"""
Player catalog entries (read-only to this project).

Player identifiers encode the season in their leading digits:
``season_number * 1_000_000 + serial``. A season range is the contiguous
block of identifiers belonging to one season.
"""
from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

SEASON_ID_MULTIPLIER = 1_000_000


def normalize_season(season: Union[int, str]) -> int:
    """
    Season number from a season code.

    Only the last three digits are significant, so both ``274`` and
    ``"100274"`` name season 274.
    """
    return int(str(season).strip()[-3:])


def season_range(season_number: int) -> Tuple[int, int]:
    """Inclusive player id bounds for one season."""
    low = season_number * SEASON_ID_MULTIPLIER
    return low, low + SEASON_ID_MULTIPLIER - 1


class CatalogEntry(BaseModel):
    """
    One player report from the catalog.

    Only the identifier is required by the pipeline; every other field
    (ratings, joined price record, season image) is carried through untouched.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    object_id: Optional[Any] = Field(None, alias="_id")
    id: int = Field(..., description="Player (spid) identifier")
    name: Optional[str] = Field(None, description="Display name")

    @property
    def season_number(self) -> int:
        return self.id // SEASON_ID_MULTIPLIER
