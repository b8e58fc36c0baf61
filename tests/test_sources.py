"""Tests for record adapters, record sources, location lookup and the CLI."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date

import httpx
import pytest
from click.testing import CliRunner

from medireach.adapters import ADAPTER_MAP
from medireach.adapters.base import RecordAdapter
from medireach.adapters.camps import CampAdapter
from medireach.adapters.donors import DonorAdapter
from medireach.adapters.hospitals import HospitalAdapter
from medireach.cli import cli
from medireach.clients import supabase_client
from medireach.clients.supabase_client import SupabaseClient
from medireach.config import Settings
from medireach import db
from medireach.db import build_select, fetch_table_rows
from medireach.errors import InvalidCoordinateError, RecordSourceError
from medireach.geo import Coordinate
from medireach.location import DEFAULT_LOCATION, resolve_location, should_refresh
from medireach.records import fetch_records, load_records_from_file
from medireach.sources import TABLES

SETTINGS = Settings(supabase_url="https://demo.supabase.co/", supabase_key="anon-key")

HOSPITAL_ROWS = [
    {
        "id": "h-far", "name": "Safdarjung Hospital", "type": "government", "status": "open",
        "address": "Ring Road", "contact": "011-2673", "latitude": 28.7489, "longitude": 77.2090,
        "services": ["trauma"],
    },
    {
        "id": "h-here", "name": "Lok Nayak Hospital", "type": "Government", "status": "Full",
        "address": "Delhi Gate", "contact": "011-2323", "latitude": 28.6139, "longitude": 77.2090,
        "services": None,
    },
    {
        "id": "h-near", "name": "Max Saket", "type": "private", "status": "open",
        "address": "Saket", "contact": "011-2651", "latitude": 28.6589, "longitude": 77.2090,
        "services": ["icu", "cardiology"],
    },
]


@pytest.fixture
def no_sleep(monkeypatch):
    slept: list[float] = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    monkeypatch.setattr(supabase_client.asyncio, "sleep", fake_sleep)
    return slept


# ── Adapter tests ────────────────────────────────────────────────────────


class TestHospitalAdapter:
    def test_adapt(self):
        record = HospitalAdapter().adapt(HOSPITAL_ROWS[1])
        assert record.id == "h-here"
        assert record.kind == "hospital"
        assert record.location == Coordinate(28.6139, 77.2090)
        assert record.attributes["type"] == "government"
        assert record.attributes["status"] == "full"
        assert record.attributes["services"] == []

    def test_registry(self):
        assert set(ADAPTER_MAP) == set(TABLES)
        assert isinstance(ADAPTER_MAP["hospitals"], HospitalAdapter)


class TestAdaptRows:
    def test_skips_malformed_rows(self, caplog):
        rows = [
            HOSPITAL_ROWS[0],
            {"id": "no-coords", "name": "Nowhere"},
            {"id": "bad-lat", "name": "Pole+", "latitude": "north", "longitude": 0},
            {"id": "out-of-range", "name": "Far", "latitude": 95.0, "longitude": 0},
            {"id": "", "name": "Anonymous", "latitude": 1.0, "longitude": 1.0},
        ]
        with caplog.at_level(logging.WARNING):
            records = HospitalAdapter().adapt_rows(rows)
        assert [r.id for r in records] == ["h-far"]
        assert "no-coords" in caplog.text
        assert "out-of-range" in caplog.text

    def test_validate(self):
        record = HospitalAdapter().adapt(HOSPITAL_ROWS[0])
        assert RecordAdapter.validate(record) == []


class TestOtherAdapters:
    def test_blood_bank_groups_uppercased(self):
        record = ADAPTER_MAP["blood_banks"].adapt({
            "id": 7, "name": "Red Cross", "blood_groups": ["a+", "O-"],
            "latitude": 20.29, "longitude": 85.82,
        })
        assert record.id == "7"
        assert record.attributes["blood_groups"] == ["A+", "O-"]

    def test_blood_bank_groups_as_string_is_malformed(self):
        records = ADAPTER_MAP["blood_banks"].adapt_rows([{
            "id": 8, "name": "Odd", "blood_groups": "A+", "latitude": 1, "longitude": 1,
        }])
        assert records == []

    def test_camp_date(self):
        record = CampAdapter().adapt({
            "id": "c1", "name": "Polio Drive", "type": "Vaccine", "date": "2024-06-10",
            "latitude": 20.3, "longitude": 85.8,
        })
        assert record.attributes["date"] == date(2024, 6, 10)
        assert record.attributes["type"] == "vaccine"

    def test_camp_timestamp_date(self):
        record = CampAdapter().adapt({
            "id": "c2", "name": "Eye Camp", "date": "2024-06-10T08:30:00+05:30",
            "latitude": 20.3, "longitude": 85.8,
        })
        assert record.attributes["date"] == date(2024, 6, 10)

    def test_donor(self):
        record = DonorAdapter().adapt({
            "id": "d1", "name": "Asha", "phone": "98", "blood_group": "ab+",
            "latitude": 20.3, "longitude": 85.8, "sos_enabled": True,
            "last_donation_date": "2024-01-02",
        })
        assert record.attributes["blood_group"] == "AB+"
        assert record.attributes["sos_enabled"] is True
        assert record.attributes["last_donation_date"] == date(2024, 1, 2)


# ── Supabase client tests ────────────────────────────────────────────────


class TestSupabaseClient:
    def test_fetch_rows(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"id": "d1"}])

        client = SupabaseClient(SETTINGS, TABLES["donors"], transport=httpx.MockTransport(handler))

        async def go():
            try:
                return await client.fetch_rows(limit=5)
            finally:
                await client.close()

        rows = asyncio.run(go())
        assert rows == [{"id": "d1"}]

        request = seen[0]
        assert request.url.path == "/rest/v1/donors"
        assert request.url.params["sos_enabled"] == "eq.true"
        assert request.url.params["order"] == "name.asc"
        assert request.url.params["limit"] == "5"
        assert "blood_group" in request.url.params["select"]
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer anon-key"

    def test_retries_then_succeeds(self, no_sleep):
        responses = [httpx.Response(503), httpx.Response(200, json=[])]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        client = SupabaseClient(SETTINGS, TABLES["hospitals"], transport=httpx.MockTransport(handler))
        assert asyncio.run(client.fetch_rows()) == []
        assert 1.0 in no_sleep

    def test_gives_up(self, no_sleep):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = SupabaseClient(SETTINGS, TABLES["camps"], transport=httpx.MockTransport(handler))
        with pytest.raises(RecordSourceError):
            asyncio.run(client.fetch_rows())
        assert len(calls) == TABLES["camps"].max_retries + 1

    def test_client_error_not_retried(self, no_sleep):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, json={"message": "Invalid API key"})

        client = SupabaseClient(SETTINGS, TABLES["hospitals"], transport=httpx.MockTransport(handler))
        with pytest.raises(RecordSourceError, match="401"):
            asyncio.run(client.fetch_rows())
        assert len(calls) == 1

    def test_rate_limited_response_retried(self, no_sleep):
        responses = [httpx.Response(429), httpx.Response(200, json=[{"id": "b1"}])]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        client = SupabaseClient(SETTINGS, TABLES["blood_banks"], transport=httpx.MockTransport(handler))
        assert asyncio.run(client.fetch_rows()) == [{"id": "b1"}]

    def test_pacer_spaces_requests(self, no_sleep):
        pacer = supabase_client.RequestPacer(rpm=60)

        async def go():
            await pacer.wait()
            await pacer.wait()

        asyncio.run(go())
        assert len(no_sleep) == 1
        assert 0.9 < no_sleep[0] <= 1.0

    def test_missing_url(self):
        client = SupabaseClient(Settings(), TABLES["camps"])
        with pytest.raises(ValueError):
            asyncio.run(client.fetch_rows())


class TestFetchRecords:
    def test_adapts_rows(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=HOSPITAL_ROWS + [{"id": "junk"}])

        client = SupabaseClient(SETTINGS, TABLES["hospitals"], transport=httpx.MockTransport(handler))
        records = asyncio.run(fetch_records("hospitals", SETTINGS, client=client))
        assert [r.id for r in records] == ["h-far", "h-here", "h-near"]


class TestBuildSelect:
    def test_filters_and_limit(self):
        query, params = build_select(TABLES["donors"], limit=5)
        assert params == [True, 5]

    def test_no_filters(self):
        query, params = build_select(TABLES["hospitals"])
        assert params == []


class _FakeCursor:
    def __init__(self, rows):
        self.rows = rows
        self.executed = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params):
        self.executed.append((query, params))

    def fetchall(self):
        return self.rows


class _FakeConnection:
    def __init__(self, rows):
        self.cursor_obj = _FakeCursor(rows)
        self.closed = False

    def cursor(self, cursor_factory=None):
        return self.cursor_obj

    def close(self):
        self.closed = True


class TestFetchTableRows:
    def test_returns_rows_and_closes(self, monkeypatch):
        conn = _FakeConnection([{"id": "d1", "name": "Asha"}])
        monkeypatch.setattr(db, "get_connection", lambda settings: conn)

        rows = fetch_table_rows(SETTINGS, TABLES["donors"], limit=2)
        assert rows == [{"id": "d1", "name": "Asha"}]
        assert conn.cursor_obj.executed[0][1] == [True, 2]
        assert conn.closed

    def test_closes_on_error(self, monkeypatch):
        conn = _FakeConnection([])

        def boom(query, params):
            raise RuntimeError("relation does not exist")

        conn.cursor_obj.execute = boom
        monkeypatch.setattr(db, "get_connection", lambda settings: conn)

        with pytest.raises(RuntimeError):
            fetch_table_rows(SETTINGS, TABLES["camps"])
        assert conn.closed


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
        monkeypatch.setenv("MEDIREACH_BACKEND", "Postgres")
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings.from_env()
        assert settings.backend == "postgres"
        assert settings.rest_url == "https://x.supabase.co/rest/v1"
        assert settings.database_url == Settings.database_url

    def test_bad_backend(self, monkeypatch):
        monkeypatch.setenv("MEDIREACH_BACKEND", "mongo")
        with pytest.raises(ValueError):
            Settings.from_env()


# ── Location tests ───────────────────────────────────────────────────────


class TestResolveLocation:
    def test_explicit(self):
        resolved = asyncio.run(resolve_location(Coordinate(12.97, 77.59)))
        assert resolved.method == "explicit"
        assert not resolved.approximate

    def test_explicit_invalid(self):
        with pytest.raises(InvalidCoordinateError):
            asyncio.run(resolve_location(Coordinate(100, 0)))

    def test_ip_lookup(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"latitude": 19.07, "longitude": 72.87})
        )
        resolved = asyncio.run(resolve_location(transport=transport))
        assert resolved.method == "ip"
        assert resolved.coordinate == Coordinate(19.07, 72.87)
        assert resolved.approximate

    def test_ip_error_payload_falls_back(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"error": True, "reason": "RateLimited"})
        )
        resolved = asyncio.run(resolve_location(transport=transport))
        assert resolved.method == "default"
        assert resolved.coordinate == DEFAULT_LOCATION

    def test_ip_network_failure_falls_back(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        resolved = asyncio.run(resolve_location(transport=httpx.MockTransport(handler)))
        assert resolved.method == "default"

    def test_ip_invalid_coordinates_fall_back(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"latitude": 400, "longitude": 0})
        )
        resolved = asyncio.run(resolve_location(transport=transport))
        assert resolved.method == "default"

    def test_skip_ip(self):
        resolved = asyncio.run(resolve_location(use_ip=False))
        assert resolved.coordinate == DEFAULT_LOCATION
        assert "Bhubaneswar" in resolved.message


class TestShouldRefresh:
    def test_first_fix(self):
        assert should_refresh(None, DEFAULT_LOCATION, 0)

    def test_stale_fix(self):
        assert should_refresh(DEFAULT_LOCATION, DEFAULT_LOCATION, 16)

    def test_small_move(self):
        moved = Coordinate(DEFAULT_LOCATION.lat + 0.0001, DEFAULT_LOCATION.lng)  # ~11 m
        assert not should_refresh(DEFAULT_LOCATION, moved, 2)

    def test_large_move(self):
        moved = Coordinate(DEFAULT_LOCATION.lat + 0.001, DEFAULT_LOCATION.lng)  # ~111 m
        assert should_refresh(DEFAULT_LOCATION, moved, 2)

    def test_invalid_fix_ignored(self):
        assert not should_refresh(None, Coordinate(0, 999), 100)


# ── CLI tests ────────────────────────────────────────────────────────────


@pytest.fixture
def hospitals_file(tmp_path):
    path = tmp_path / "hospitals.json"
    path.write_text(json.dumps(HOSPITAL_ROWS))
    return str(path)


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv("MEDIREACH_BACKEND", raising=False)
    return CliRunner()


class TestCLI:
    def test_search_json(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file,
            "--lat", "28.6139", "--lng", "77.2090", "--radius", "10", "--json",
        ])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [r["id"] for r in rows] == ["h-here", "h-near"]
        assert rows[0]["distance_km"] == 0.0
        assert abs(rows[1]["distance_km"] - 5.0) < 0.1

    def test_search_filters(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file,
            "--type", "private", "--json",
        ])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [r["id"] for r in rows] == ["h-near"]
        assert rows[0]["distance_km"] is None

    def test_search_table(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file,
            "--lat", "28.6139", "--lng", "77.2090",
        ])
        assert result.exit_code == 0, result.output
        assert "Max Saket" in result.stdout

    def test_search_empty(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file, "--text", "nonexistent",
        ])
        assert result.exit_code == 0
        assert "No records found" in result.stdout

    def test_unknown_type_rejected(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file, "--type", "goverment",
        ])
        assert result.exit_code == 2
        assert "goverment" in result.output

    def test_unknown_status_rejected(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file, "--status", "bogus",
        ])
        assert result.exit_code == 2

    def test_type_is_case_insensitive(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file, "--type", "GOVERNMENT", "--json",
        ])
        assert result.exit_code == 0, result.output
        assert [r["id"] for r in json.loads(result.stdout)] == ["h-far", "h-here"]

    def test_text_search_default_radius(self, runner, tmp_path):
        path = tmp_path / "hospitals.json"
        outlying = {
            "id": "h-outer", "name": "Narela Hospital", "type": "government", "status": "open",
            "address": "Narela", "contact": "011-2772", "latitude": 28.8387, "longitude": 77.2090,
        }
        path.write_text(json.dumps(HOSPITAL_ROWS + [outlying]))

        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", str(path),
            "--lat", "28.6139", "--lng", "77.2090", "--text", "hospital", "--json",
        ])
        assert result.exit_code == 0, result.output
        assert [r["id"] for r in json.loads(result.stdout)] == ["h-here", "h-far"]

        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", str(path),
            "--lat", "28.6139", "--lng", "77.2090", "--text", "hospital", "--radius", "30", "--json",
        ])
        assert [r["id"] for r in json.loads(result.stdout)] == ["h-here", "h-far", "h-outer"]

    def test_radius_without_origin(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file, "--radius", "5",
        ])
        assert result.exit_code == 2
        assert "origin" in result.output

    def test_lat_without_lng(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file, "--lat", "28.6",
        ])
        assert result.exit_code == 2

    def test_out_of_range_origin(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "search", "hospitals", "--from-file", hospitals_file, "--lat", "91", "--lng", "0",
        ])
        assert result.exit_code == 2
        assert "latitude" in result.output

    def test_nearest_open_hospital(self, runner, hospitals_file):
        result = runner.invoke(cli, [
            "nearest", "hospitals", "--from-file", hospitals_file,
            "--lat", "28.6139", "--lng", "77.2090", "--json",
        ])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [r["id"] for r in rows] == ["h-near"]

    def test_distance(self, runner):
        result = runner.invoke(cli, ["distance", "0", "0", "0", "1"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "111.195 km"

    def test_distance_invalid(self, runner):
        result = runner.invoke(cli, ["distance", "95", "0", "0", "1"])
        assert result.exit_code == 2

    def test_locate_default(self, runner):
        result = runner.invoke(cli, ["locate", "--no-ip"])
        assert result.exit_code == 0
        assert "20.2961, 85.8245 (default)" in result.stdout

    def test_load_records_from_file(self, hospitals_file):
        records = load_records_from_file(hospitals_file, "hospitals")
        assert len(records) == 3
