#!/usr/bin/env python3
"""
FC Online DataCenter Scraper - Reads player market values per enhancement grade.

The DataCenter player page computes the market value client-side after the
document loads. The scraper opens one page per (player, grade), blocks heavy
and telemetry requests, waits until the value element carries a non-empty
title, and reads its text.

URL Structure:
- Player value: /PlayerInfo?spid={player_id}&n1Strong={grade}

Failure policy:
- Navigation errors, readiness timeouts and extraction errors are recorded as
  failed observations; one broken player never aborts the batch.

Usage:
    # Price two players at grade 5 (prints results, no database writes)
    python services/scrapers/datacenter_scraper.py --players 274101001 274101002 --grades 5

    # Several grades, visible browser
    python services/scrapers/datacenter_scraper.py --players 274101001 --grades 5 6 7 8 --headed
"""
import argparse
import random
import sys
import time
import uuid
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

# Add project root to path
project_root = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(project_root))

from playwright.sync_api import BrowserContext, Page, Route
from playwright.sync_api import Error as PlaywrightError

from core.browser import BrowserSession
from core.config import config
from core.logging import get_logger, log_execution_time
from core.models.catalog import CatalogEntry
from core.models.price import (
    ErrorKind,
    ValueObservation,
    observation_failure,
    observation_success,
)
from core.polling import PollTimeoutError, poll_until

# Initialize logger
logger = get_logger("datacenter-scraper")

# ============================================================================
# CONFIGURATION
# ============================================================================

VALUE_SELECTOR = ".txt strong"
POLL_INTERVAL_S = 0.5

BLOCKED_RESOURCE_TYPES = {"image", "stylesheet", "font", "media"}
BLOCKED_DOMAINS = ("google-analytics.com", "doubleclick.net")

# Returns the value text once the element has a non-empty title, else null
READ_VALUE_JS = """
(selector) => {
    const element = document.querySelector(selector);
    if (!element) return null;
    const title = element.getAttribute("title");
    if (!title || title.trim() === "") return null;
    return element.textContent;
}
"""

PlayerLike = Union[int, CatalogEntry, dict]


# ============================================================================
# PAGE HELPERS
# ============================================================================

def build_player_url(player_id: int, grade: int, base_url: Optional[str] = None) -> str:
    """Build the DataCenter value URL for one (player, grade)."""
    base = (base_url or config.DATACENTER_BASE_URL).rstrip("/")
    return f"{base}/PlayerInfo?spid={player_id}&n1Strong={grade}"


def should_block_request(resource_type: str, url: str) -> bool:
    """True for heavy resources and analytics requests."""
    if resource_type in BLOCKED_RESOURCE_TYPES:
        return True
    return any(domain in url for domain in BLOCKED_DOMAINS)


def block_unwanted_resources(route: Route):
    """Route handler: abort blocked requests, continue everything else."""
    request = route.request
    if should_block_request(request.resource_type, request.url):
        route.abort()
    else:
        route.continue_()


def read_value_text(page: Page) -> Optional[str]:
    """
    Check for the rendered value.

    Returns None while the page is still computing (or mid-navigation).
    """
    try:
        text = page.evaluate(READ_VALUE_JS, VALUE_SELECTOR)
    except PlaywrightError as e:
        logger.debug(f"Value check failed, retrying: {e}")
        return None
    if text is None:
        return None
    return text.strip() or None


def player_id_of(player: PlayerLike) -> int:
    """Player id from a catalog entry, a raw catalog document or a bare id."""
    if isinstance(player, CatalogEntry):
        return player.id
    if isinstance(player, dict):
        return int(player["id"])
    return int(player)


def normalize_grades(grades: Union[int, Iterable[int]]) -> List[int]:
    if isinstance(grades, int):
        return [grades]
    return list(grades)


def positive_int(value: str) -> int:
    """argparse type for timeouts; Playwright reads 0 as no limit at all."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def delay_range_from_args(delay: Optional[Sequence[float]]) -> Optional[Tuple[float, float]]:
    """Validate a '--delay MIN MAX' pair."""
    if not delay:
        return None
    low, high = delay
    if low < 0 or high < low:
        raise ValueError(f"invalid delay range {low}..{high}")
    return low, high


# ============================================================================
# SCRAPING FUNCTIONS
# ============================================================================

def extract_player_value(
    context: BrowserContext,
    player_id: int,
    grade: int,
    timeout_ms: Optional[int] = None,
    poll_interval_s: float = POLL_INTERVAL_S,
) -> ValueObservation:
    """
    Read the displayed value for one (player, grade).

    Args:
        context: Isolated browser context of the current batch
        player_id: Player (spid) identifier
        grade: Enhancement grade
        timeout_ms: Readiness timeout (default VALUE_TIMEOUT_MS, 80s)
        poll_interval_s: Delay between readiness checks

    Returns:
        Successful observation with the value text, or a failed observation
        tagged with the failure kind. Never raises.
    """
    timeout_ms = config.VALUE_TIMEOUT_MS if timeout_ms is None else timeout_ms
    url = build_player_url(player_id, grade)

    try:
        page = context.new_page()
    except Exception as e:
        logger.error(f"Could not open page for ID {player_id}, Grade {grade}: {e}")
        return observation_failure(player_id, grade, ErrorKind.NAVIGATION, str(e))

    try:
        page.route("**/*", block_unwanted_resources)

        logger.info(f"Navigating to {url}")
        try:
            # Playwright treats 0 as "no timeout"
            page.goto(url, wait_until="domcontentloaded", timeout=max(timeout_ms, 1))
        except Exception as e:
            logger.error(f"Navigation failed for ID {player_id}, Grade {grade}: {e}")
            return observation_failure(player_id, grade, ErrorKind.NAVIGATION, str(e))

        try:
            value_text = poll_until(
                lambda: read_value_text(page),
                timeout_s=timeout_ms / 1000,
                interval_s=poll_interval_s,
                description=f"value of {player_id} at grade {grade}",
                # Waiting inside Playwright keeps route handlers dispatching
                sleep=lambda seconds: page.wait_for_timeout(seconds * 1000),
            )
        except PollTimeoutError as e:
            logger.error(f"Timed out for ID {player_id}, Grade {grade}: {e}")
            return observation_failure(player_id, grade, ErrorKind.TIMEOUT, str(e))

        logger.info(f"ID {player_id} / Grade {grade} -> {value_text}")
        return observation_success(player_id, grade, value_text)

    except Exception as e:
        logger.error(f"Extraction failed for ID {player_id}, Grade {grade}: {e}")
        return observation_failure(player_id, grade, ErrorKind.EXTRACTION, str(e))

    finally:
        try:
            page.close()
        except Exception as e:
            logger.warning(f"Failed to close page for ID {player_id}: {e}")


@log_execution_time(logger)
def scrape_player_values(
    session: BrowserSession,
    players: Sequence[PlayerLike],
    grades: Union[int, Iterable[int]],
    timeout_ms: Optional[int] = None,
    delay_range: Optional[Tuple[float, float]] = None,
    session_id: Optional[str] = None,
) -> List[ValueObservation]:
    """
    Price every player at every grade with one browser session.

    Iteration is grade-major (all players at the first grade, then the next
    grade). The session is acquired for the batch and always released.

    Args:
        session: Browser session owned by the current run
        players: Catalog entries, catalog documents or bare player ids
        grades: One grade or a sequence of grades
        timeout_ms: Per-item readiness timeout
        delay_range: Optional (min, max) seconds to wait between items (not
            before the first one)
        session_id: Correlation ID for logs

    Returns:
        Flat list of observations, failures included, in iteration order
    """
    grade_list = normalize_grades(grades)
    player_ids = [player_id_of(p) for p in players]
    correlation_id = session_id or str(uuid.uuid4())[:8]

    logger.info(
        "Starting value scrape",
        extra={
            "players": len(player_ids),
            "grades": grade_list,
            "correlation_id": correlation_id,
        },
    )

    results: List[ValueObservation] = []
    try:
        session.acquire()
        context = session.new_isolated_context()

        for grade in grade_list:
            for player_id in player_ids:
                if delay_range and results:
                    time.sleep(random.uniform(*delay_range))
                results.append(
                    extract_player_value(context, player_id, grade, timeout_ms=timeout_ms)
                )
    finally:
        session.release()

    failed = sum(1 for obs in results if not obs.ok)
    logger.info(
        f"Scraped {len(results)} values ({failed} failed)",
        extra={"correlation_id": correlation_id, "failed": failed},
    )
    return results


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def main():
    """Ad-hoc pricing of a few players; prints results, writes nothing."""
    parser = argparse.ArgumentParser(
        description="FC Online DataCenter value scraper (no database writes)",
    )
    parser.add_argument("--players", type=int, nargs="+", required=True, help="Player (spid) ids")
    parser.add_argument("--grades", type=int, nargs="+", default=[5], help="Enhancement grades (default: 5)")
    parser.add_argument("--timeout-ms", type=positive_int, default=config.VALUE_TIMEOUT_MS, help="Per-item timeout")
    parser.add_argument("--delay", type=float, nargs=2, metavar=("MIN", "MAX"), help="Random pause between items, seconds")
    parser.add_argument("--headed", action="store_true", help="Run browser in headed mode (for debugging)")
    args = parser.parse_args()

    try:
        delay_range = delay_range_from_args(args.delay)
    except ValueError as e:
        parser.error(str(e))

    session = BrowserSession(headless=not args.headed)
    try:
        results = scrape_player_values(
            session,
            args.players,
            args.grades,
            timeout_ms=args.timeout_ms,
            delay_range=delay_range,
        )
    except KeyboardInterrupt:
        logger.info("Scraper interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.critical("Fatal error", exc_info=True)
        print(f"\n\n❌ Fatal error: {e}")
        sys.exit(1)

    print("\n" + "=" * 60)
    for obs in results:
        marker = "✓" if obs.ok else "✗"
        detail = obs.raw_text if obs.ok else f"{obs.error_kind.value}: {obs.error_message}"
        print(f"{marker} {obs.player_id} / +{obs.grade}: {detail}")
    print("=" * 60)


if __name__ == "__main__":
    main()
