"""Tests for the KDM HTTP client with httpx.request stubbed out."""

from __future__ import annotations

import httpx
import pytest

from kdm_timesheet import kdm_client
from kdm_timesheet.kdm_client import (
    DEFAULT_JOB_CATALOG,
    AuthenticationError,
    Credentials,
    KdmClient,
    record_from_api,
)
from timesheet_core.submission import JobSubmission

BASE = "https://kdm.example/api"
CREDS = Credentials(token="tok", user_id=12, email="a@b.c")


class FakeHttp:
    """Replays scripted responses and records outgoing requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, method, url, *, headers=None, params=None, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "headers": headers, "params": params, "json": json})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        status, body = item
        request = httpx.Request(method, url)
        if body is None:
            return httpx.Response(status, request=request)
        return httpx.Response(status, json=body, request=request)


@pytest.fixture
def client():
    return KdmClient(base_url=BASE + "/", retries=3)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(kdm_client, "sleep", lambda s: None)


def _install(monkeypatch, *responses):
    fake = FakeHttp(*responses)
    monkeypatch.setattr(kdm_client.httpx, "request", fake)
    return fake


class TestLogin:
    def test_login_collects_user(self, monkeypatch, client):
        fake = _install(
            monkeypatch,
            (200, {"result": {"accessToken": "abc"}}),
            (200, {"id": 5, "name": "Ayse", "surname": "Demir", "email": "ayse@x.tr"}),
        )
        creds = client.login("ayse@x.tr", "pw")
        assert creds.token == "abc"
        assert creds.user_id == 5
        assert creds.display_name == "Ayse Demir"
        assert fake.requests[0]["url"] == f"{BASE}/Authenticate"
        assert fake.requests[0]["json"] == {"email": "ayse@x.tr", "password": "pw"}
        assert fake.requests[1]["headers"]["Authorization"] == "Bearer abc"

    def test_login_without_token(self, monkeypatch, client):
        _install(monkeypatch, (200, {"ok": True}))
        with pytest.raises(AuthenticationError):
            client.login("a", "b")

    def test_login_rejected_uses_server_message(self, monkeypatch, client):
        _install(monkeypatch, (401, {"message": "Invalid password"}))
        with pytest.raises(AuthenticationError, match="Invalid password"):
            client.login("a", "b")


class TestReads:
    def test_my_jobs_dedup_truncate_sort(self, monkeypatch, client):
        long_name = "X" * 70
        fake = _install(
            monkeypatch,
            (
                200,
                {
                    "value": [
                        {"jobDefinitionId": 30, "jobDefinition": {"name": "Gamma"}},
                        {"jobDefinitionId": 10, "jobDefinition": {"name": long_name}},
                        {"jobDefinitionId": 30, "jobDefinition": {"name": "Gamma"}},
                        {"jobDefinitionId": None, "jobDefinition": {"name": "Orphan"}},
                        {"jobDefinitionId": 20, "jobDefinition": None},
                    ]
                },
            ),
        )
        jobs = client.fetch_my_jobs(CREDS)
        assert [job.id for job in jobs] == [10, 30]
        assert jobs[0].name == "X" * 57 + "..."
        assert fake.requests[0]["url"] == f"{BASE}/UserJobDefinition/GetMyTask(userId=12)"
        assert fake.requests[0]["params"]["$top"] == 100

    def test_catalog_falls_back_when_empty(self, monkeypatch, client):
        _install(monkeypatch, (200, {"value": []}))
        catalog = client.fetch_job_catalog(CREDS)
        assert len(catalog) == len(DEFAULT_JOB_CATALOG)

    def test_catalog_falls_back_when_unreachable(self, monkeypatch, client):
        _install(monkeypatch, *[httpx.ConnectError("down")] * 3)
        catalog = client.fetch_job_catalog(CREDS)
        assert catalog.get(108411) is not None

    def test_history_maps_records(self, monkeypatch, client):
        _install(
            monkeypatch,
            (
                200,
                {
                    "value": [
                        {
                            "id": 1,
                            "startTime": "2024-01-10T08:30:00Z",
                            "endTime": "2024-01-10T09:00:00Z",
                            "statusId": "DayOff",
                            "hour": 0.5,
                        },
                        {
                            "id": 2,
                            "startTime": "2024-01-10T09:00:00Z",
                            "statusId": "Completed",
                            "jobDefinitionId": 7,
                            "jobDefinition": {"name": "Backup"},
                        },
                    ]
                },
            ),
        )
        records = client.fetch_history(CREDS, limit=10)
        assert [r.status_kind for r in records] == ["DayOff", "Completed"]
        assert records[1].job_name == "Backup"
        assert records[1].job_id == 7

    def test_reads_retry_on_server_error(self, monkeypatch, client):
        fake = _install(monkeypatch, (503, None), (200, {"value": []}))
        assert client.fetch_history(CREDS) == []
        assert len(fake.requests) == 2


def test_unknown_status_is_ordinary():
    record = record_from_api({"id": 1, "startTime": "2024-01-10T08:30:00Z", "statusId": "Approved"})
    assert record.status_kind == "Completed"


class TestWrites:
    def test_submit_job_payload(self, monkeypatch, client):
        fake = _install(monkeypatch, (201, {"id": 99}))
        job = JobSubmission(job_id=7, description="Routine Backup work",
                            start_time="2024-01-10T09:30:00", end_time="2024-01-10T10:00:00Z")
        result = client.submit_job(CREDS, job)
        assert result.success
        body = fake.requests[0]["json"]
        assert fake.requests[0]["method"] == "POST"
        assert body["statusId"] == "Completed"
        assert body["jobDefinitionId"] == 7
        assert body["userId"] == 12
        assert body["hour"] == 0.5
        assert body["piece"] == 0
        assert body["dataStatus"] == "Activated"
        assert body["startTime"] == "2024-01-10T09:30:00Z"
        assert body["endTime"] == "2024-01-10T10:00:00Z"

    def test_submit_day_off_and_planning(self, monkeypatch, client):
        fake = _install(monkeypatch, (204, None), (200, {}))
        assert client.submit_day_off(CREDS, "2024-01-10", "08:30", "09:00").success
        assert client.submit_planning(CREDS, "2024-01-10", "09:00", "09:30", 5).success
        day_off, planning = (r["json"] for r in fake.requests)
        assert day_off["statusId"] == "DayOff"
        assert day_off["jobDefinitionId"] is None
        assert day_off["startTime"] == "2024-01-10T08:30:00Z"
        assert planning["statusId"] == "Planned"
        assert planning["jobDefinitionId"] == 5
        assert planning["endTime"] == "2024-01-10T09:30:00Z"

    def test_write_rejection_is_a_result(self, monkeypatch, client):
        _install(monkeypatch, (400, {"message": "Overlapping record"}))
        result = client.submit_day_off(CREDS, "2024-01-10", "08:30", "09:00")
        assert not result.success
        assert result.message == "Overlapping record"

    def test_writes_not_retried(self, monkeypatch, client):
        fake = _install(monkeypatch, httpx.ConnectError("down"), (200, {}))
        result = client.submit_day_off(CREDS, "2024-01-10", "08:30", "09:00")
        assert not result.success
        assert len(fake.requests) == 1

    def test_delete_record(self, monkeypatch, client):
        fake = _install(monkeypatch, (204, None), (500, None))
        assert client.delete_record(CREDS, 44).success
        assert fake.requests[0]["method"] == "DELETE"
        assert fake.requests[0]["url"] == f"{BASE}/UserJobDefinition/44"
        failed = client.delete_record(CREDS, 45)
        assert not failed.success
        assert failed.message == "HTTP 500"

    def test_bound_client(self, monkeypatch, client):
        fake = _install(monkeypatch, (200, {}))
        assert client.bind(CREDS).submit_day_off("2024-01-10", "08:30", "09:00").success
        assert fake.requests[0]["headers"]["Authorization"] == "Bearer tok"
