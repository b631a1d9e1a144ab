"""
Configuration loader for the value chart crawler.
Loads environment variables from .env file.
"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


# Load .env from the project root
PROJECT_ROOT = Path(__file__).parent.parent
ENV_PATH = PROJECT_ROOT / ".env"
load_dotenv(ENV_PATH)

DEFAULT_CHROME_PATH = "/usr/bin/google-chrome-stable"


class Config:
    """Application configuration."""
    MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017/fconline")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "fconline")
    MONGO_TIMEOUT_MS: int = int(os.getenv("MONGO_TIMEOUT_MS", "10000"))

    # Execution mode: "production" runs against the system Chrome binary
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "development")).lower()
    CHROME_EXECUTABLE_PATH: Optional[str] = os.getenv("CHROME_EXECUTABLE_PATH")

    # Valuation page
    DATACENTER_BASE_URL: str = os.getenv(
        "DATACENTER_BASE_URL", "https://fconline.nexon.com/DataCenter"
    )
    VALUE_TIMEOUT_MS: int = int(os.getenv("VALUE_TIMEOUT_MS", "80000"))

    # Target chart and campaign definitions
    CHART_ID: str = os.getenv("CHART_ID", "아이콘 로드 3500")
    CAMPAIGNS_PATH: Path = Path(
        os.getenv("CAMPAIGNS_PATH", str(PROJECT_ROOT / "config" / "campaigns.json"))
    )

    # Collections
    PRICE_COLLECTION: str = os.getenv("PRICE_COLLECTION", "prices")
    PLAYER_REPORT_COLLECTION: str = os.getenv("PLAYER_REPORT_COLLECTION", "playerreports")
    SEASON_COLLECTION: str = os.getenv("SEASON_COLLECTION", "seasonids")
    VALUE_CHART_COLLECTION: str = os.getenv("VALUE_CHART_COLLECTION", "eventvaluecharts")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def chrome_executable_path(self) -> Optional[str]:
        """
        Browser binary for the current execution mode.

        Production uses the system Chrome (overridable with
        CHROME_EXECUTABLE_PATH); development uses Playwright's bundled Chromium.
        """
        if self.is_production:
            return self.CHROME_EXECUTABLE_PATH or DEFAULT_CHROME_PATH
        return None


# Singleton instance
config = Config()
