"""
Core Models

Exports for price observations/records, catalog entries, value charts and
campaign configuration.
"""

# Price models (observations and stored records)
from core.models.price import (
    # Enums and constants
    ObservationStatus,
    ErrorKind,
    ERROR_PRICE_TEXT,
    # Observations
    ValueObservation,
    observation_success,
    observation_failure,
    # Stored records
    GradePrice,
    PriceRecord,
    apply_observations,
)

# Catalog models (read-only player reports)
from core.models.catalog import (
    CatalogEntry,
    SEASON_ID_MULTIPLIER,
    normalize_season,
    season_range,
)

# Value chart models (packs and aggregate document)
from core.models.value_chart import (
    LeaderboardEntry,
    Pack,
    EventValueChart,
    merge_season_packs,
)

# Campaign configuration
from core.models.campaign import (
    Campaign,
    CampaignFile,
    load_campaigns,
)

__all__ = [
    # Price models
    "ObservationStatus",
    "ErrorKind",
    "ERROR_PRICE_TEXT",
    "ValueObservation",
    "observation_success",
    "observation_failure",
    "GradePrice",
    "PriceRecord",
    "apply_observations",
    # Catalog models
    "CatalogEntry",
    "SEASON_ID_MULTIPLIER",
    "normalize_season",
    "season_range",
    # Value chart models
    "LeaderboardEntry",
    "Pack",
    "EventValueChart",
    "merge_season_packs",
    # Campaign models
    "Campaign",
    "CampaignFile",
    "load_campaigns",
]
