"""
Campaign configuration - which players to price and how to rank them.

A campaign produces one pack: it searches the catalog by season and minimum
rating, prices every match at each grade, and keeps the top N. Campaign lists
are data (config/campaigns.json); disabled campaigns stay in the file and are
skipped at run time.

Example File:
    {
        "chart_id": "아이콘 로드 3500",
        "campaigns": [
            {
                "pack_name": "HG TOP 100",
                "seasons": [283],
                "min_rating": 0,
                "grades": [8],
                "top_n": 100
            }
        ]
    }
"""
import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class Campaign(BaseModel):
    pack_name: str = Field(..., min_length=1, description="Pack name, the merge key in the chart")
    seasons: List[int] = Field(default_factory=list, description="Season codes; empty means all seasons")
    min_rating: int = Field(0, ge=0, description="Minimum overall rating")
    grades: List[int] = Field(..., min_length=1, description="Enhancement grades to price")
    top_n: Optional[int] = Field(None, ge=1, description="Leaderboard size; None keeps every player")
    enabled: bool = True

    @field_validator("grades", "seasons", mode="before")
    @classmethod
    def _listify(cls, value):
        if isinstance(value, (int, str)):
            return [value]
        return value


class CampaignFile(BaseModel):
    chart_id: Optional[str] = None
    campaigns: List[Campaign] = Field(default_factory=list)

    @field_validator("campaigns")
    @classmethod
    def _unique_pack_names(cls, campaigns: List[Campaign]) -> List[Campaign]:
        seen = set()
        for campaign in campaigns:
            if campaign.pack_name in seen:
                raise ValueError(f"Duplicate pack_name: {campaign.pack_name}")
            seen.add(campaign.pack_name)
        return campaigns

    def enabled_campaigns(self, only: Optional[List[str]] = None) -> List[Campaign]:
        """
        Campaigns to run, in file order.

        With ``only``, exactly the named campaigns run, disabled or not;
        otherwise every enabled campaign.
        """
        if only:
            wanted = set(only)
            return [c for c in self.campaigns if c.pack_name in wanted]
        return [c for c in self.campaigns if c.enabled]


def load_campaigns(path: Union[str, Path]) -> CampaignFile:
    """Load and validate a campaign file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return CampaignFile.model_validate(data)
