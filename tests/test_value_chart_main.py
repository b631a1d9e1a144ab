#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Test suite for the value chart pipeline.
Catalog search and scraping are stubbed; MongoDB collections are mocks.
"""
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import mongomock
import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from core.config import config
from core.models.campaign import Campaign
from core.models.catalog import CatalogEntry
from core.models.price import ErrorKind, observation_failure, observation_success
from core.models.value_chart import Pack
from services.value_chart import main as value_chart_main
from services.value_chart.main import build_pack, run_value_chart

CHART_ID = "아이콘 로드 3500"


def make_price_collection(known_ids):
    """'prices' mock whose find_one returns a record for each known player id."""
    object_ids = {str(player_id): ObjectId() for player_id in known_ids}
    collection = MagicMock(name="prices")

    def find_one(filter_, sort=None):
        oid = object_ids.get(filter_["id"])
        if oid is None:
            return None
        return {"_id": oid, "id": filter_["id"], "prices": []}

    collection.find_one.side_effect = find_one
    return collection, object_ids


def make_db(price_collection, chart_doc=None):
    charts = MagicMock(name="eventvaluecharts")
    charts.find_one.return_value = chart_doc
    return {
        config.PLAYER_REPORT_COLLECTION: MagicMock(name="playerreports"),
        config.PRICE_COLLECTION: price_collection,
        config.VALUE_CHART_COLLECTION: charts,
    }


# ============================================================================
# PACK ASSEMBLY
# ============================================================================

def test_build_pack_references_price_records():
    print("\n=== Test 1: Build Pack ===")
    prices, object_ids = make_price_collection([2741001, 2741002])
    ranked = [
        observation_success(2741001, 5, "12,000"),
        observation_failure(2741002, 5, ErrorKind.TIMEOUT),
    ]

    pack = build_pack(prices, "ICON TM TOP ALL", ranked)

    assert pack.pack_name == "ICON TM TOP ALL"
    assert [(e.grade, e.price_record_id) for e in pack.entries] == [
        (5, object_ids["2741001"]),
        (5, object_ids["2741002"]),
    ]
    print("✓ Entries reference stored records in rank order")


def test_build_pack_skips_missing_records():
    prices, object_ids = make_price_collection([2741002])
    ranked = [observation_success(2741001, 5, "9"), observation_success(2741002, 5, "1")]

    pack = build_pack(prices, "A", ranked)

    assert [e.price_record_id for e in pack.entries] == [object_ids["2741002"]]


# ============================================================================
# PIPELINE
# ============================================================================

def stub_stages(monkeypatch, catalog, values):
    """Replace catalog search and scraping with in-memory data."""
    searches = []

    def fake_search(collection, seasons=None, min_rating=0, name=None):
        searches.append((list(seasons), min_rating))
        return [CatalogEntry(id=pid) for season in seasons for pid in catalog.get(season, [])]

    def fake_scrape(session, players, grades, timeout_ms=None, delay_range=None, session_id=None):
        return [
            observation_success(p.id, grade, values[p.id]) if values.get(p.id)
            else observation_failure(p.id, grade, ErrorKind.TIMEOUT)
            for grade in grades
            for p in players
        ]

    monkeypatch.setattr(value_chart_main, "search_players", fake_search)
    monkeypatch.setattr(value_chart_main, "scrape_player_values", fake_scrape)
    return searches


def test_run_merges_packs_into_chart(monkeypatch):
    print("\n=== Test 2: End-To-End Run ===")
    searches = stub_stages(
        monkeypatch,
        catalog={100: [100000001, 100000002], 830: [830000001, 830000002, 830000003]},
        values={100000001: "12,000", 830000001: "1,000", 830000002: "3,000", 830000003: "2,000"},
    )
    prices, object_ids = make_price_collection(
        [100000001, 100000002, 830000001, 830000002, 830000003]
    )
    b_old = {"packName": "B", "playerPrice": []}
    db = make_db(prices, {
        "_id": ObjectId(),
        "id": CHART_ID,
        "updateTime": "",
        "seasonPack": [{"packName": "A", "playerPrice": []}, b_old],
    })
    campaigns = [
        Campaign(pack_name="A", seasons=[100], grades=[5]),
        Campaign(pack_name="C", seasons=[830], min_rating=110, grades=[8], top_n=1),
    ]

    packs = run_value_chart(db, MagicMock(), campaigns, CHART_ID, session_id="test")

    assert searches == [([100], 0), ([830], 110)]
    assert [p.pack_name for p in packs] == ["A", "C"]
    assert [e.price_record_id for e in packs[0].entries] == [
        object_ids["100000001"], object_ids["100000002"],
    ]
    assert [e.price_record_id for e in packs[1].entries] == [object_ids["830000002"]]

    # Both campaigns wrote prices, one chart write at the end
    assert prices.bulk_write.call_count == 2
    charts = db[config.VALUE_CHART_COLLECTION]
    charts.update_one.assert_called_once()
    written = charts.update_one.call_args.args[1]["$set"]["seasonPack"]
    assert [p["packName"] for p in written] == ["A", "B", "C"]
    assert written[1] == b_old
    assert written[2]["playerPrice"][0]["grade"] == 8
    print("✓ A replaced, B kept, C appended")


def test_price_write_failure_does_not_stop_run(monkeypatch):
    stub_stages(monkeypatch, catalog={100: [100000001]}, values={100000001: "5"})
    prices, object_ids = make_price_collection([100000001])
    prices.bulk_write.side_effect = ServerSelectionTimeoutError("no primary")
    db = make_db(prices)

    packs = run_value_chart(db, MagicMock(), [Campaign(pack_name="A", seasons=[100], grades=[5])], CHART_ID)

    assert len(packs[0].entries) == 1
    db[config.VALUE_CHART_COLLECTION].update_one.assert_called_once()


def test_empty_catalog_gives_empty_pack(monkeypatch):
    stub_stages(monkeypatch, catalog={}, values={})
    prices, _ = make_price_collection([])
    db = make_db(prices)
    session = MagicMock()

    packs = run_value_chart(db, session, [Campaign(pack_name="A", seasons=[999], grades=[5])], CHART_ID)

    assert packs == [Pack(pack_name="A")]
    prices.bulk_write.assert_not_called()
    written = db[config.VALUE_CHART_COLLECTION].update_one.call_args.args[1]["$set"]["seasonPack"]
    assert written == [{"packName": "A", "playerPrice": []}]


def test_dry_run_writes_nothing(monkeypatch):
    stub_stages(monkeypatch, catalog={100: [100000001]}, values={100000001: "5"})
    prices, _ = make_price_collection([100000001])
    prices.find.return_value = []
    db = make_db(prices)

    packs = run_value_chart(
        db, MagicMock(), [Campaign(pack_name="A", seasons=[100], grades=[5])], CHART_ID, dry_run=True
    )

    assert len(packs) == 1
    prices.bulk_write.assert_not_called()
    db[config.VALUE_CHART_COLLECTION].update_one.assert_not_called()


def test_no_campaigns_skips_chart_write():
    prices, _ = make_price_collection([])
    db = make_db(prices)

    assert run_value_chart(db, MagicMock(), [], CHART_ID) == []
    db[config.VALUE_CHART_COLLECTION].update_one.assert_not_called()


# ============================================================================
# CLI
# ============================================================================

def test_main_exits_on_database_failure(monkeypatch):
    print("\n=== Test 3: Fatal Error Exit ===")

    def unreachable():
        raise ServerSelectionTimeoutError("no servers")

    close_db = MagicMock()
    monkeypatch.setattr(value_chart_main, "get_db", unreachable)
    monkeypatch.setattr(value_chart_main, "close_db", close_db)

    with pytest.raises(SystemExit) as exc_info:
        value_chart_main.main([])

    assert exc_info.value.code == 1
    close_db.assert_called_once()
    print("✓ Exit status 1")


def test_main_runs_selected_campaigns(monkeypatch):
    calls = {}
    session = MagicMock()

    def fake_run(db, session_, campaigns, chart_id, timeout_ms=None, delay_range=None,
                 dry_run=False, session_id=None):
        calls.update(campaigns=[c.pack_name for c in campaigns], chart_id=chart_id,
                     dry_run=dry_run, timeout_ms=timeout_ms, delay_range=delay_range)
        return [Pack(pack_name=c.pack_name) for c in campaigns]

    monkeypatch.setattr(value_chart_main, "get_db", lambda: {})
    monkeypatch.setattr(value_chart_main, "close_db", MagicMock())
    monkeypatch.setattr(value_chart_main, "BrowserSession", MagicMock(return_value=session))
    monkeypatch.setattr(value_chart_main, "run_value_chart", fake_run)

    value_chart_main.main([
        "--only", "UT,JNM,24HEROES,DC,JVA,CC,FCA,23HW,HG,RTN,23HEROES,RMCF,LN,SPL,23NG,LOL,FA,"
                  "23KFA,22HEROES,BTB,CAP,CFA,EBS TOP 400",
        "24KB ALL",
        "--chart-id", "test chart",
        "--timeout-ms", "1000",
        "--delay", "0.5", "1.5",
        "--dry-run",
    ])

    assert calls["campaigns"][0] == "24KB ALL"
    assert len(calls["campaigns"]) == 2
    assert calls["chart_id"] == "test chart"
    assert calls["dry_run"] is True
    assert calls["timeout_ms"] == 1000
    assert calls["delay_range"] == (0.5, 1.5)
    session.release.assert_called_once()


def test_main_success_exits_normally(monkeypatch):
    print("\n=== Test 4: Successful Run ===")
    stub_stages(monkeypatch, catalog={}, values={})
    db = mongomock.MongoClient().db
    monkeypatch.setattr(value_chart_main, "get_db", lambda: db)
    monkeypatch.setattr(value_chart_main, "close_db", MagicMock())
    monkeypatch.setattr(value_chart_main, "BrowserSession", MagicMock())

    # Returns instead of raising SystemExit
    value_chart_main.main([])

    chart = db[config.VALUE_CHART_COLLECTION].find_one({"id": CHART_ID})
    assert [p["packName"] for p in chart["seasonPack"]][:2] == ["ICON TM TOP ALL", "24KB ALL"]
    assert len(chart["seasonPack"]) == 3
    print("✓ Chart written, no exit status")


def test_cli_rejects_unbounded_timeout():
    with pytest.raises(SystemExit) as exc_info:
        value_chart_main.parse_args(["--timeout-ms", "0"])
    assert exc_info.value.code == 2

    assert value_chart_main.parse_args(["--timeout-ms", "1"]).timeout_ms == 1


def test_cli_delay_range():
    assert value_chart_main.parse_args([]).delay_range is None
    assert value_chart_main.parse_args(["--delay", "1", "3"]).delay_range == (1.0, 3.0)

    for bad in (["--delay", "3", "1"], ["--delay", "-1", "1"]):
        with pytest.raises(SystemExit) as exc_info:
            value_chart_main.parse_args(bad)
        assert exc_info.value.code == 2


if __name__ == "__main__":
    print("Run with pytest: pytest tests/test_value_chart_main.py -v")
