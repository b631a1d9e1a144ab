"""
Price schemas - raw value observations and persisted per-player price records.

Flow:
- The datacenter scraper yields one ValueObservation per (player, grade)
- Observations are upserted into the 'prices' collection as PriceRecords
- Leaderboards reference PriceRecords by their MongoDB _id

Example Document ('prices'):
    {
        "_id": ObjectId("..."),
        "id": "274101001",
        "prices": [
            {"grade": 5, "price": "12,000"},
            {"grade": 8, "price": "1,234억"}
        ]
    }
"""
from enum import Enum
from typing import Dict, Iterable, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.numbers import Number, parse_price_text

# Price text stored for a (player, grade) whose value could not be read
ERROR_PRICE_TEXT = "Error"


# ============================================================================
# VALUE OBSERVATIONS (ephemeral, one pipeline run)
# ============================================================================

class ObservationStatus(str, Enum):
    OK = "ok"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Why a value could not be read from the valuation page."""
    NAVIGATION = "navigation"
    TIMEOUT = "timeout"
    EXTRACTION = "extraction"


class ValueObservation(BaseModel):
    """
    Result of reading one (player, grade) value from the valuation page.

    Either ``ok`` with the displayed ``raw_text`` or ``error`` with an
    ``error_kind``; ranking works on the tag, not on the stored text.
    """
    model_config = ConfigDict(frozen=True)

    player_id: int = Field(..., description="Player (spid) identifier")
    grade: int = Field(..., ge=0, description="Enhancement grade")
    status: ObservationStatus
    raw_text: Optional[str] = Field(None, description="Displayed value text")
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @model_validator(mode="after")
    def _check_tag(self) -> "ValueObservation":
        if self.status == ObservationStatus.OK and self.raw_text is None:
            raise ValueError("successful observation requires raw_text")
        if self.status == ObservationStatus.ERROR and self.error_kind is None:
            raise ValueError("failed observation requires error_kind")
        return self

    @property
    def ok(self) -> bool:
        return self.status == ObservationStatus.OK

    @property
    def value(self) -> Optional[Number]:
        """Numeric value, or None for failures and unparseable text."""
        if not self.ok:
            return None
        return parse_price_text(self.raw_text)

    @property
    def price_text(self) -> str:
        """Text persisted in the price record."""
        return self.raw_text if self.ok else ERROR_PRICE_TEXT


def observation_success(player_id: int, grade: int, raw_text: str) -> ValueObservation:
    return ValueObservation(
        player_id=player_id,
        grade=grade,
        status=ObservationStatus.OK,
        raw_text=raw_text,
    )


def observation_failure(
    player_id: int,
    grade: int,
    error_kind: ErrorKind,
    error_message: Optional[str] = None,
) -> ValueObservation:
    return ValueObservation(
        player_id=player_id,
        grade=grade,
        status=ObservationStatus.ERROR,
        error_kind=error_kind,
        error_message=error_message,
    )


# ============================================================================
# PRICE RECORDS (persisted, shared across runs)
# ============================================================================

class GradePrice(BaseModel):
    grade: int
    price: str


class PriceRecord(BaseModel):
    """
    Stored prices of one player, one entry per observed grade.

    Stored in the 'prices' collection. Grade entries accumulate across
    campaigns and are updated in place.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    object_id: Optional[ObjectId] = Field(None, alias="_id")
    id: str = Field(..., description="Player identifier as stored (string)")
    prices: List[GradePrice] = Field(default_factory=list)

    def price_for(self, grade: int) -> Optional[str]:
        for entry in self.prices:
            if entry.grade == grade:
                return entry.price
        return None

    def with_grade_price(self, grade: int, price: str) -> "PriceRecord":
        """
        Return a copy with ``grade`` set to ``price``.

        Overwrites the first entry for the grade (as a positional $ update
        does) or appends a new one; every other entry is kept as is.
        """
        prices = []
        replaced = False
        for entry in self.prices:
            if entry.grade == grade and not replaced:
                prices.append(GradePrice(grade=grade, price=price))
                replaced = True
            else:
                prices.append(entry)
        if not replaced:
            prices.append(GradePrice(grade=grade, price=price))
        return self.model_copy(update={"prices": prices})

    def to_dict_for_db(self) -> dict:
        """Convert to dictionary for MongoDB insertion."""
        return self.model_dump(by_alias=True, exclude_none=True)


def apply_observations(
    records: Dict[str, PriceRecord],
    observations: Iterable[ValueObservation],
) -> Dict[str, PriceRecord]:
    """
    Apply observations to in-memory price records keyed by stored player id.

    Mirrors the per-(player, grade) upsert the price store performs, so
    applying the same observations twice gives the same result as once.
    """
    result = dict(records)
    for obs in observations:
        key = str(obs.player_id)
        record = result.get(key) or PriceRecord(id=key)
        result[key] = record.with_grade_price(obs.grade, obs.price_text)
    return result
