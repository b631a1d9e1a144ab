#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Test suite for the DataCenter value scraper.
Pages, contexts and sessions are mocks; no network access.
"""
import argparse
import sys
from pathlib import Path
from unittest.mock import MagicMock, call

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import pytest
from playwright.sync_api import Error as PlaywrightError

from core.models.catalog import CatalogEntry
from core.models.price import ErrorKind, observation_success
from services.scrapers import datacenter_scraper
from services.scrapers.datacenter_scraper import (
    block_unwanted_resources,
    build_player_url,
    delay_range_from_args,
    extract_player_value,
    positive_int,
    read_value_text,
    scrape_player_values,
    should_block_request,
)


def make_context(evaluate_results=None):
    context = MagicMock(name="context")
    page = context.new_page.return_value
    if evaluate_results is not None:
        page.evaluate.side_effect = list(evaluate_results)
    return context, page


# ============================================================================
# PAGE HELPERS
# ============================================================================

def test_build_player_url():
    url = build_player_url(2741001, 5, base_url="https://fconline.nexon.com/DataCenter/")
    assert url == "https://fconline.nexon.com/DataCenter/PlayerInfo?spid=2741001&n1Strong=5"


def test_request_filtering():
    print("\n=== Test 1: Request Filtering ===")

    for resource_type in ("image", "stylesheet", "font", "media"):
        assert should_block_request(resource_type, "https://fconline.nexon.com/a")

    assert should_block_request("script", "https://www.google-analytics.com/analytics.js")
    assert should_block_request("xhr", "https://stats.g.doubleclick.net/collect")
    assert not should_block_request("document", "https://fconline.nexon.com/DataCenter/PlayerInfo")
    assert not should_block_request("script", "https://fconline.nexon.com/app.js")
    print("✓ Heavy and analytics requests blocked")


def test_route_handler():
    blocked = MagicMock()
    blocked.request.resource_type = "font"
    blocked.request.url = "https://fconline.nexon.com/font.woff"
    block_unwanted_resources(blocked)
    blocked.abort.assert_called_once()
    blocked.continue_.assert_not_called()

    allowed = MagicMock()
    allowed.request.resource_type = "xhr"
    allowed.request.url = "https://fconline.nexon.com/api/price"
    block_unwanted_resources(allowed)
    allowed.continue_.assert_called_once()
    allowed.abort.assert_not_called()


def test_read_value_text_while_navigating():
    page = MagicMock()
    page.evaluate.side_effect = PlaywrightError("Execution context was destroyed")
    assert read_value_text(page) is None

    page = MagicMock()
    page.evaluate.return_value = "   "
    assert read_value_text(page) is None


# ============================================================================
# VALUE EXTRACTOR
# ============================================================================

def test_extract_success():
    print("\n=== Test 2: Extract Value ===")
    context, page = make_context([None, None, " 1,234억 "])

    obs = extract_player_value(context, 2741001, 5, timeout_ms=5000, poll_interval_s=0)

    assert obs.ok
    assert obs.raw_text == "1,234억"
    assert obs.player_id == 2741001 and obs.grade == 5
    page.route.assert_called_once_with("**/*", block_unwanted_resources)
    assert page.goto.call_args.kwargs["wait_until"] == "domcontentloaded"
    assert "spid=2741001&n1Strong=5" in page.goto.call_args.args[0]
    page.close.assert_called_once()
    print(f"✓ Extracted {obs.raw_text}")


def test_extract_timeout():
    context, page = make_context()
    page.evaluate.return_value = None

    obs = extract_player_value(context, 2741002, 5, timeout_ms=0)

    assert not obs.ok
    assert obs.error_kind == ErrorKind.TIMEOUT
    assert obs.price_text == "Error"
    page.close.assert_called_once()


def test_extract_navigation_error():
    context, page = make_context()
    page.goto.side_effect = PlaywrightError("net::ERR_CONNECTION_RESET")

    obs = extract_player_value(context, 2741002, 8, timeout_ms=1000)

    assert obs.error_kind == ErrorKind.NAVIGATION
    assert "ERR_CONNECTION_RESET" in obs.error_message
    page.evaluate.assert_not_called()
    page.close.assert_called_once()


def test_extract_unexpected_error():
    context, page = make_context()
    page.route.side_effect = RuntimeError("route failed")

    obs = extract_player_value(context, 2741003, 5, timeout_ms=1000)

    assert obs.error_kind == ErrorKind.EXTRACTION
    page.close.assert_called_once()


def test_page_close_error_is_swallowed():
    context, page = make_context(["12,000"])
    page.close.side_effect = PlaywrightError("Target closed")

    obs = extract_player_value(context, 2741001, 5, timeout_ms=1000)

    assert obs.ok and obs.raw_text == "12,000"


def test_new_page_failure():
    context = MagicMock()
    context.new_page.side_effect = PlaywrightError("Browser has been closed")

    obs = extract_player_value(context, 2741001, 5, timeout_ms=1000)

    assert obs.error_kind == ErrorKind.NAVIGATION


# ============================================================================
# BATCH SCRAPER
# ============================================================================

def test_batch_is_grade_major(monkeypatch):
    print("\n=== Test 3: Batch Order ===")
    calls = []

    def fake_extract(context, player_id, grade, timeout_ms=None):
        calls.append((player_id, grade))
        return observation_success(player_id, grade, str(player_id))

    monkeypatch.setattr(datacenter_scraper, "extract_player_value", fake_extract)
    session = MagicMock()

    players = [CatalogEntry(id=2741001), {"id": 2741002}]
    results = scrape_player_values(session, players, [5, 6])

    assert calls == [(2741001, 5), (2741002, 5), (2741001, 6), (2741002, 6)]
    assert [(o.player_id, o.grade) for o in results] == calls
    session.acquire.assert_called_once()
    session.new_isolated_context.assert_called_once()
    session.release.assert_called_once()
    print("✓ All players at grade 5 before grade 6")


def test_batch_accepts_single_grade(monkeypatch):
    monkeypatch.setattr(
        datacenter_scraper,
        "extract_player_value",
        lambda context, player_id, grade, timeout_ms=None: observation_success(player_id, grade, "1"),
    )

    results = scrape_player_values(MagicMock(), [1, 2, 3], 8)

    assert [o.grade for o in results] == [8, 8, 8]


def test_batch_keeps_failures():
    context, page = make_context()
    page.evaluate.side_effect = ["12,000", None]
    session = MagicMock()
    session.new_isolated_context.return_value = context

    results = scrape_player_values(session, [2741001, 2741002], 5, timeout_ms=0)

    assert [o.ok for o in results] == [True, False]
    assert results[1].error_kind == ErrorKind.TIMEOUT


def test_batch_releases_session_on_error(monkeypatch):
    def exploding_extract(*args, **kwargs):
        raise KeyboardInterrupt

    monkeypatch.setattr(datacenter_scraper, "extract_player_value", exploding_extract)
    session = MagicMock()

    with pytest.raises(KeyboardInterrupt):
        scrape_player_values(session, [2741001], 5)

    session.release.assert_called_once()


def test_batch_releases_session_when_acquire_fails():
    session = MagicMock()
    session.acquire.side_effect = RuntimeError("no chrome")

    with pytest.raises(RuntimeError):
        scrape_player_values(session, [2741001], 5)

    session.release.assert_called_once()


def test_readiness_wait_stays_inside_playwright():
    print("\n=== Test 4: Readiness Wait ===")
    context, page = make_context([None, None, "12,000"])

    obs = extract_player_value(context, 2741001, 5, timeout_ms=60_000, poll_interval_s=0.25)

    assert obs.ok
    assert page.wait_for_timeout.call_args_list == [call(250.0), call(250.0)]
    print("✓ Route handlers keep running between checks")


def test_zero_timeout_still_bounds_navigation():
    context, page = make_context()
    page.evaluate.return_value = None

    extract_player_value(context, 2741001, 5, timeout_ms=0)

    assert page.goto.call_args.kwargs["timeout"] == 1


def test_timeout_argument_must_be_positive():
    assert positive_int("80000") == 80000
    for bad in ("0", "-5"):
        with pytest.raises(argparse.ArgumentTypeError):
            positive_int(bad)


def test_delay_between_items(monkeypatch):
    sleeps = []
    monkeypatch.setattr(datacenter_scraper.time, "sleep", sleeps.append)
    monkeypatch.setattr(
        datacenter_scraper,
        "extract_player_value",
        lambda context, player_id, grade, timeout_ms=None: observation_success(player_id, grade, "1"),
    )

    results = scrape_player_values(MagicMock(), [1, 2, 3], [5, 8], delay_range=(0.5, 1.0))

    assert len(results) == 6
    assert len(sleeps) == 5
    assert all(0.5 <= s <= 1.0 for s in sleeps)


def test_delay_range_validation():
    assert delay_range_from_args(None) is None
    assert delay_range_from_args([1.0, 2.0]) == (1.0, 2.0)
    assert delay_range_from_args([0.0, 0.0]) == (0.0, 0.0)
    for bad in ([2.0, 1.0], [-1.0, 1.0]):
        with pytest.raises(ValueError):
            delay_range_from_args(bad)
