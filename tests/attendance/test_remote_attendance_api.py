from __future__ import annotations

import asyncio
import json
from datetime import date, datetime, timezone

import httpx

from src.punch_engine.punch_engine.attendance.api import RemoteAttendanceApi
from src.punch_engine.punch_engine.core.enums import PunchKind, PunchPhase
from src.punch_engine.punch_engine.geofence.model import Coordinate
from src.punch_engine.punch_engine.session.client import ResilientSessionClient, create_http_client
from src.punch_engine.punch_engine.session.store import SessionStore
from src.punch_engine.punch_engine.storage.memory_store import InMemoryKeyValueStore

REQUESTED = datetime(2025, 1, 6, 4, 5, 30, tzinfo=timezone.utc)  # 09:35:30 IST


def make_api(handler):
    store = SessionStore(InMemoryKeyValueStore({"access_token": "a", "refresh_token": "r"}))
    client = ResilientSessionClient(create_http_client("https://api.test", transport=httpx.MockTransport(handler)), store)
    return RemoteAttendanceApi(client, timezone_offset_minutes=330)


def test_submit_punch_body_and_nested_iso_time():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            201,
            json={
                "status": "success",
                "message": "Punch IN recorded successfully",
                "data": {"PunchTimeISO": "2025-01-06T04:05:31Z", "IsLate": True, "LateByMinutes": 5},
            },
        )

    api = make_api(handler)
    confirmation = asyncio.run(
        api.submit_punch(PunchKind.IN, REQUESTED, Coordinate(23.0352554, 72.5616832, accuracy=9.5))
    )

    assert captured["path"] == "/emp-punch/"
    assert captured["auth"] == "Bearer a"
    assert captured["body"] == {
        "PunchType": 1,
        "Latitude": "23.0352554",
        "Longitude": "72.5616832",
        "IsAway": False,
        "DateTime": "2025-01-06T09:35:30",
        "Accuracy": 9.5,
    }
    assert confirmation.confirmed_at_utc == datetime(2025, 1, 6, 4, 5, 31, tzinfo=timezone.utc)
    assert confirmation.is_late is True
    assert confirmation.late_by_minutes == 5
    assert confirmation.message == "Punch IN recorded successfully"


def test_flat_formatted_punch_time_is_civil():
    def handler(request):
        return httpx.Response(200, json={"PunchTime": "2025-01-06 06:31:00 PM", "IsEarly": False})

    api = make_api(handler)
    confirmation = asyncio.run(api.submit_punch(PunchKind.OUT, REQUESTED, Coordinate(23.0, 72.5)))

    assert confirmation.confirmed_at_utc == datetime(2025, 1, 6, 13, 1, tzinfo=timezone.utc)


def test_out_punch_omits_missing_accuracy():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"data": None})

    api = make_api(handler)
    confirmation = asyncio.run(api.submit_punch(PunchKind.OUT, REQUESTED, Coordinate(23.0, 72.5)))

    assert bodies[0]["PunchType"] == 2
    assert "Accuracy" not in bodies[0]
    assert confirmation.confirmed_at_utc is None


def test_fetch_punch_status():
    def handler(request):
        assert request.url.path == "/dashboard-punch-status/"
        return httpx.Response(
            200,
            json={
                "data": {
                    "punch": {"PunchType": 1, "PunchDateTimeISO": "2025-01-06T04:02:00Z"},
                    "today": {"date": "2025-01-06"},
                }
            },
        )

    status = asyncio.run(make_api(handler).fetch_punch_status())

    assert status.phase == PunchPhase.PUNCHED_IN
    assert status.local_date == date(2025, 1, 6)
    assert status.last_punch_at_utc == datetime(2025, 1, 6, 4, 2, tzinfo=timezone.utc)


def test_fetch_punch_status_without_punch():
    def handler(request):
        return httpx.Response(200, json={"data": {"punch": None, "today": {"date": "2025-01-06"}}})

    status = asyncio.run(make_api(handler).fetch_punch_status())

    assert status.phase == PunchPhase.NOT_PUNCHED
    assert status.last_punch_at_utc is None


def test_plain_text_success_still_confirms_the_punch():
    def handler(request):
        return httpx.Response(201, text="Created")

    confirmation = asyncio.run(make_api(handler).submit_punch(PunchKind.OUT, REQUESTED, Coordinate(23.0, 72.5)))

    assert confirmation.kind == PunchKind.OUT
    assert confirmation.confirmed_at_utc is None
    assert confirmation.message is None
