#!/usr/bin/env python3
"""
Event Value Chart Crawler - Builds ranked player packs for an event chart.

For each enabled campaign (config/campaigns.json), in order:
1. search the catalog for candidate players (seasons, minimum rating)
2. read each player's value per grade from the FC Online DataCenter
3. upsert the values into the 'prices' collection
4. rank by value and keep the campaign's top N
5. build a pack whose entries reference the stored price records

After the last campaign, all packs are merged into the chart document by
pack name; packs of other campaigns already in the chart are kept.

Usage:
    # Activate venv first
    source venv/bin/activate

    # Run every enabled campaign against the configured chart
    python services/value_chart/main.py

    # Only some campaigns, explicit chart id
    python services/value_chart/main.py --only "ICON TM TOP ALL" --chart-id "아이콘 로드 3500"

    # Dry run - scrape and rank, no database writes
    python services/value_chart/main.py --dry-run --headed
"""
import argparse
import sys
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

# Add project root to path
project_root = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(project_root))

from pymongo.collection import Collection
from pymongo.database import Database

from core.browser import BrowserSession
from core.config import config
from core.database import close_db, get_db
from core.logging import get_logger, log_execution_time
from core.models.campaign import Campaign, load_campaigns
from core.models.price import ValueObservation
from core.models.value_chart import LeaderboardEntry, Pack
from services.scrapers.datacenter_scraper import (
    delay_range_from_args,
    positive_int,
    scrape_player_values,
)
from services.value_chart.chart_store import save_value_chart
from services.value_chart.player_search import search_players
from services.value_chart.price_store import find_price_record, save_price_observations
from services.value_chart.ranking import rank_observations

# Initialize logger
logger = get_logger("value-chart")


# ============================================================================
# PIPELINE STAGES
# ============================================================================

def build_pack(
    price_collection: Collection,
    pack_name: str,
    ranked: Sequence[ValueObservation],
) -> Pack:
    """
    Turn ranked observations into a pack of price record references.

    Each entry points at the stored record (by _id), so later edits to the
    record show up in the chart without another merge. Observations without a
    stored record are skipped.
    """
    entries: List[LeaderboardEntry] = []
    for obs in ranked:
        record = find_price_record(price_collection, obs.player_id)
        if record is None or record.object_id is None:
            logger.warning(
                f"No price record for ID {obs.player_id}, skipping",
                extra={"pack_name": pack_name, "grade": obs.grade},
            )
            continue
        entries.append(LeaderboardEntry(grade=obs.grade, price_record_id=record.object_id))

    return Pack(pack_name=pack_name, entries=entries)


@log_execution_time(logger)
def run_campaign(
    db: Database,
    session: BrowserSession,
    campaign: Campaign,
    timeout_ms: Optional[int] = None,
    delay_range: Optional[Tuple[float, float]] = None,
    dry_run: bool = False,
    session_id: Optional[str] = None,
) -> Pack:
    """
    Search, scrape, store, rank and assemble one campaign's pack.

    Per-player failures are absorbed by the scraper and the price store;
    anything raised here is fatal for the run.
    """
    logger.info(
        f"Campaign '{campaign.pack_name}'",
        extra={
            "seasons": campaign.seasons,
            "min_rating": campaign.min_rating,
            "grades": campaign.grades,
            "top_n": campaign.top_n,
            "correlation_id": session_id,
        },
    )

    players = search_players(
        db[config.PLAYER_REPORT_COLLECTION],
        seasons=campaign.seasons,
        min_rating=campaign.min_rating,
    )

    if players:
        results = scrape_player_values(
            session,
            players,
            campaign.grades,
            timeout_ms=timeout_ms,
            delay_range=delay_range,
            session_id=session_id,
        )
    else:
        logger.warning(f"No players found for '{campaign.pack_name}'")
        results = []

    price_collection = db[config.PRICE_COLLECTION]
    save_price_observations(price_collection, results, dry_run=dry_run)

    ranked = rank_observations(results, campaign.top_n)
    pack = build_pack(price_collection, campaign.pack_name, ranked)

    logger.info(
        f"Pack '{pack.pack_name}' ready with {len(pack.entries)} entries",
        extra={"scraped": len(results), "ranked": len(ranked), "correlation_id": session_id},
    )
    return pack


def run_value_chart(
    db: Database,
    session: BrowserSession,
    campaigns: Sequence[Campaign],
    chart_id: str,
    timeout_ms: Optional[int] = None,
    delay_range: Optional[Tuple[float, float]] = None,
    dry_run: bool = False,
    session_id: Optional[str] = None,
) -> List[Pack]:
    """
    Run campaigns one after another, then merge all packs into the chart once.

    Returns:
        The packs computed in this run, in campaign order
    """
    packs: List[Pack] = []
    for campaign in campaigns:
        packs.append(
            run_campaign(
                db,
                session,
                campaign,
                timeout_ms=timeout_ms,
                delay_range=delay_range,
                dry_run=dry_run,
                session_id=session_id,
            )
        )

    if not packs:
        logger.warning("No campaigns to run")
        return packs

    if dry_run:
        logger.info("DRY RUN - value chart not written", extra={"chart_id": chart_id})
        for pack in packs:
            print(f"✓ {pack.pack_name}: {len(pack.entries)} entries")
        return packs

    save_value_chart(db[config.VALUE_CHART_COLLECTION], chart_id, packs)
    return packs


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Event Value Chart Crawler - ranked player packs per event",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Every enabled campaign
    python services/value_chart/main.py

    # Selected campaigns (runs them even if disabled in the file)
    python services/value_chart/main.py --only "24KB ALL"

    # Dry run with a visible browser
    python services/value_chart/main.py --dry-run --headed
        """,
    )
    parser.add_argument(
        "--campaigns",
        type=Path,
        default=config.CAMPAIGNS_PATH,
        help=f"Campaign file (default: {config.CAMPAIGNS_PATH})",
    )
    parser.add_argument(
        "--chart-id",
        default=None,
        help="Target chart id (default: chart_id from the campaign file, then CHART_ID)",
    )
    parser.add_argument(
        "--only",
        nargs="+",
        metavar="PACK_NAME",
        help="Run only these campaigns",
    )
    parser.add_argument(
        "--timeout-ms",
        type=positive_int,
        default=config.VALUE_TIMEOUT_MS,
        help=f"Per-player value timeout (default: {config.VALUE_TIMEOUT_MS})",
    )
    parser.add_argument(
        "--delay",
        type=float,
        nargs=2,
        metavar=("MIN", "MAX"),
        help="Random pause between players, seconds (default: none)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scrape and rank without database writes",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Run browser in headed mode (for debugging)",
    )
    args = parser.parse_args(argv)
    try:
        args.delay_range = delay_range_from_args(args.delay)
    except ValueError as e:
        parser.error(str(e))
    return args


def main(argv: Optional[Sequence[str]] = None):
    """Main CLI entry point. Exits 0 on success, 1 on any fatal error."""
    args = parse_args(argv)
    session_id = str(uuid.uuid4())[:8]

    logger.info("=" * 60)
    logger.info("EVENT VALUE CHART CRAWLER")
    logger.info("=" * 60)

    session: Optional[BrowserSession] = None
    try:
        campaign_file = load_campaigns(args.campaigns)
        campaigns = campaign_file.enabled_campaigns(args.only)
        chart_id = args.chart_id or campaign_file.chart_id or config.CHART_ID

        if args.only:
            missing = set(args.only) - {c.pack_name for c in campaigns}
            if missing:
                logger.warning(f"Unknown campaigns ignored: {sorted(missing)}")

        logger.info(
            "Starting crawler session",
            extra={
                "session_id": session_id,
                "chart_id": chart_id,
                "campaigns": [c.pack_name for c in campaigns],
                "dry_run": args.dry_run,
                "headless": not args.headed,
            },
        )

        db = get_db()
        session = BrowserSession(headless=not args.headed)
        packs = run_value_chart(
            db,
            session,
            campaigns,
            chart_id,
            timeout_ms=args.timeout_ms,
            delay_range=args.delay_range,
            dry_run=args.dry_run,
            session_id=session_id,
        )

        summary: Dict[str, int] = {pack.pack_name: len(pack.entries) for pack in packs}
        logger.info("Crawling process completed", extra={"session_id": session_id, "packs": summary})

        print("\n" + "=" * 60)
        print("VALUE CHART SESSION SUMMARY")
        print("=" * 60)
        print(f"Session ID:         {session_id}")
        print(f"Chart:              {chart_id}")
        for name, count in summary.items():
            print(f"  {name}: {count}")
        print("=" * 60)

    except KeyboardInterrupt:
        logger.info("Crawler interrupted by user")
        print("\n\nCrawler interrupted by user")
        sys.exit(1)

    except Exception as e:
        logger.critical("Error in crawler", exc_info=True, extra={"session_id": session_id})
        print(f"\n\n❌ Fatal error: {e}")
        print("   Check logs: logs/value-chart.log")
        sys.exit(1)

    finally:
        if session is not None:
            session.release()
        close_db()


if __name__ == "__main__":
    main()
