from __future__ import annotations

import logging
from dataclasses import dataclass
from time import sleep
from typing import Any

import httpx

from timesheet_core.models import (
    STATUS_COMPLETED,
    STATUS_DAY_OFF,
    STATUS_PLANNED,
    JobCatalog,
    JobDefinition,
    RemoteRecord,
    RemoteResult,
    truncate_job_name,
)
from timesheet_core.submission import SLOT_HOURS, JobSubmission
from timesheet_core.time_utils import ensure_utc_suffix, slot_timestamp

logger = logging.getLogger(__name__)

# Built-in catalog used when the personalised job list comes back empty.
DEFAULT_JOB_CATALOG: tuple[JobDefinition, ...] = (
    JobDefinition(108411, "Linux Server Installation"),
    JobDefinition(108413, "Linux Server Configuration"),
    JobDefinition(108415, "Linux Server Maintenance"),
    JobDefinition(108417, "Linux Server Troubleshooting"),
    JobDefinition(108427, "OS/Middleware Installation"),
    JobDefinition(108429, "OS/Middleware Configuration"),
    JobDefinition(108431, "OS/Middleware Maintenance"),
    JobDefinition(108455, "OS/Middleware Troubleshooting"),
    JobDefinition(108419, "Virtualization Installation"),
    JobDefinition(108423, "Virtualization Maintenance"),
    JobDefinition(108425, "Virtualization Troubleshooting"),
    JobDefinition(108433, "DNS/LDAP/E-mail Installation"),
    JobDefinition(108435, "DNS/LDAP/E-mail Configuration"),
    JobDefinition(108439, "DNS/LDAP/E-mail Maintenance"),
    JobDefinition(108441, "DNS/LDAP/E-mail Troubleshooting"),
    JobDefinition(108443, "LB Configuration"),
    JobDefinition(108447, "LB Troubleshooting"),
)

MY_JOBS_LIMIT = 100


class AuthenticationError(Exception):
    pass


@dataclass(frozen=True)
class Credentials:
    token: str
    user_id: Any
    email: str = ""
    name: str | None = None
    surname: str | None = None

    @property
    def display_name(self) -> str:
        if self.name and self.surname:
            return f"{self.name} {self.surname}"
        return self.email


@dataclass(frozen=True)
class Operation:
    method: str
    path_template: str
    retryable: bool = False


OPERATIONS: dict[str, Operation] = {
    "authenticate": Operation("POST", "/Authenticate"),
    "login_user": Operation("GET", "/LoginUser", retryable=True),
    "my_tasks": Operation("GET", "/UserJobDefinition/GetMyTask(userId={user_id})", retryable=True),
    "create_record": Operation("POST", "/UserJobDefinition"),
    "delete_record": Operation("DELETE", "/UserJobDefinition/{record_id}"),
}


def _error_message(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            data = exc.response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return f"HTTP {exc.response.status_code}"
    return str(exc) or type(exc).__name__


def _json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    if resp.status_code == 204 or not resp.content:
        return {}
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def record_from_api(row: dict[str, Any]) -> RemoteRecord:
    job = row.get("jobDefinition") if isinstance(row.get("jobDefinition"), dict) else {}
    status = row.get("statusId") or STATUS_COMPLETED
    if status not in (STATUS_DAY_OFF, STATUS_PLANNED):
        status = STATUS_COMPLETED
    return RemoteRecord(
        id=row.get("id"),
        start_timestamp=str(row.get("startTime") or ""),
        end_timestamp=row.get("endTime"),
        status_kind=status,
        job_id=row.get("jobDefinitionId"),
        description=row.get("description"),
        job_name=job.get("name"),
        hours=row.get("hour"),
    )


class KdmClient:
    """Client for the KDM timesheet API.

    Reads are retried on server errors and transport failures. Writes are
    sent once: a create that timed out may still have landed, and retrying
    it would double-book the slot.
    """

    def __init__(self, *, base_url: str, timeout_s: float = 30.0, retries: int = 3, language: str = "tr"):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.retries = max(1, retries)
        self.language = language

    def _headers(self, token: str | None) -> dict[str, str]:
        headers = {
            "Accept": "application/json, text/plain, */*",
            "Content-Type": "application/json",
            "api-version": "1.0",
            "language": self.language,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(
        self,
        *,
        operation: str,
        token: str | None = None,
        path_args: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        op = OPERATIONS.get(operation)
        if op is None:
            raise ValueError(f"Unknown operation '{operation}'")

        path = op.path_template.format(**(path_args or {}))
        url = f"{self.base_url}{path}"
        attempts = self.retries if op.retryable else 1
        logger.debug("%s %s", op.method, url)

        last_exc: Exception | None = None
        for attempt in range(attempts):
            try:
                resp = httpx.request(
                    op.method,
                    url,
                    headers=self._headers(token),
                    params=params,
                    json=json_body,
                    timeout=self.timeout_s,
                )
                if resp.status_code >= 500 and attempt < attempts - 1:
                    sleep(2**attempt)
                    continue
                resp.raise_for_status()
                return resp
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_exc = exc
                if attempt < attempts - 1:
                    sleep(2**attempt)
                    continue
                raise
            except httpx.HTTPStatusError:
                raise
        if last_exc:
            raise last_exc
        raise RuntimeError("request failed without an explicit exception")

    # -- Session --

    def login(self, email: str, password: str) -> Credentials:
        try:
            auth = _json_or_empty(
                self._request(operation="authenticate", json_body={"email": email, "password": password})
            )
        except httpx.HTTPError as exc:
            raise AuthenticationError(_error_message(exc)) from exc

        result = auth.get("result") if isinstance(auth.get("result"), dict) else {}
        token = auth.get("token") or auth.get("accessToken") or result.get("accessToken")
        if not token:
            raise AuthenticationError("Authentication succeeded but no token was returned")

        try:
            user = _json_or_empty(self._request(operation="login_user", token=token))
        except httpx.HTTPError as exc:
            raise AuthenticationError(_error_message(exc)) from exc

        return Credentials(
            token=token,
            user_id=user.get("id"),
            email=user.get("email") or email,
            name=user.get("name"),
            surname=user.get("surname"),
        )

    # -- Reads --

    def fetch_my_jobs(self, creds: Credentials) -> list[JobDefinition]:
        params = {
            "$orderby": "startTime desc",
            "$top": MY_JOBS_LIMIT,
            "$select": "jobDefinitionId",
            "$expand": "jobDefinition($select=name)",
        }
        resp = self._request(
            operation="my_tasks", token=creds.token, path_args={"user_id": creds.user_id}, params=params
        )
        seen: set[Any] = set()
        jobs: list[JobDefinition] = []
        for task in _json_or_empty(resp).get("value", []) or []:
            job_id = task.get("jobDefinitionId")
            job = task.get("jobDefinition")
            if not job_id or job_id in seen or not isinstance(job, dict):
                continue
            seen.add(job_id)
            jobs.append(JobDefinition(job_id, truncate_job_name(str(job.get("name") or ""))))
        jobs.sort(key=lambda job: job.id)
        return jobs

    def fetch_job_catalog(self, creds: Credentials) -> JobCatalog:
        try:
            jobs = self.fetch_my_jobs(creds)
        except httpx.HTTPError:
            logger.exception("Loading personal job list failed, using built-in catalog")
            jobs = []
        if not jobs:
            return JobCatalog(DEFAULT_JOB_CATALOG)
        return JobCatalog(jobs)

    def fetch_history(self, creds: Credentials, *, limit: int = 50) -> list[RemoteRecord]:
        params = {
            "$orderby": "startTime desc",
            "$select": "id,jobDefinitionId,statusId,description,startTime,endTime,hour,color",
            "$expand": "jobDefinition($select=name)",
            "$top": limit,
        }
        resp = self._request(
            operation="my_tasks", token=creds.token, path_args={"user_id": creds.user_id}, params=params
        )
        rows = _json_or_empty(resp).get("value", []) or []
        return [record_from_api(row) for row in rows if isinstance(row, dict)]

    # -- Writes --

    def _create_record(self, creds: Credentials, payload: dict[str, Any]) -> RemoteResult:
        body = {
            "dataStatus": "Activated",
            "hour": SLOT_HOURS,
            "piece": 0,
            "otherPositionJob": False,
            "userId": creds.user_id,
            **payload,
        }
        body["startTime"] = ensure_utc_suffix(body["startTime"])
        body["endTime"] = ensure_utc_suffix(body["endTime"])
        try:
            resp = self._request(operation="create_record", token=creds.token, json_body=body)
        except httpx.HTTPError as exc:
            message = _error_message(exc)
            logger.warning("Creating %s record at %s failed: %s", body["statusId"], body["startTime"], message)
            return RemoteResult(success=False, message=message)
        data = _json_or_empty(resp)
        return RemoteResult(success=True, message=data.get("message"))

    def submit_job(self, creds: Credentials, job: JobSubmission) -> RemoteResult:
        return self._create_record(
            creds,
            {
                "hour": job.hours,
                "piece": job.piece,
                "statusId": STATUS_COMPLETED,
                "jobDefinitionId": job.job_id,
                "description": job.description,
                "startTime": job.start_time,
                "endTime": job.end_time,
            },
        )

    def submit_planning(
        self, creds: Credentials, day: str, start_time: str, end_time: str, job_id: Any = None
    ) -> RemoteResult:
        return self._create_record(
            creds,
            {
                "statusId": STATUS_PLANNED,
                "jobDefinitionId": job_id,
                "description": None,
                "startTime": slot_timestamp(day, start_time),
                "endTime": slot_timestamp(day, end_time),
            },
        )

    def submit_day_off(self, creds: Credentials, day: str, start_time: str, end_time: str) -> RemoteResult:
        return self._create_record(
            creds,
            {
                "statusId": STATUS_DAY_OFF,
                "jobDefinitionId": None,
                "description": None,
                "startTime": slot_timestamp(day, start_time),
                "endTime": slot_timestamp(day, end_time),
            },
        )

    def delete_record(self, creds: Credentials, record_id: Any) -> RemoteResult:
        try:
            self._request(operation="delete_record", token=creds.token, path_args={"record_id": record_id})
        except httpx.HTTPError as exc:
            message = _error_message(exc)
            logger.warning("Deleting record %s failed: %s", record_id, message)
            return RemoteResult(success=False, message=message)
        return RemoteResult(success=True, message="Deleted")

    def bind(self, creds: Credentials) -> BoundClient:
        return BoundClient(self, creds)


class BoundClient:
    """KdmClient with credentials applied, usable as a submission target."""

    def __init__(self, client: KdmClient, creds: Credentials):
        self.client = client
        self.creds = creds

    def submit_job(self, job: JobSubmission) -> RemoteResult:
        return self.client.submit_job(self.creds, job)

    def submit_planning(self, day: str, start_time: str, end_time: str, job_id: Any) -> RemoteResult:
        return self.client.submit_planning(self.creds, day, start_time, end_time, job_id)

    def submit_day_off(self, day: str, start_time: str, end_time: str) -> RemoteResult:
        return self.client.submit_day_off(self.creds, day, start_time, end_time)

    def delete_record(self, record_id: Any) -> RemoteResult:
        return self.client.delete_record(self.creds, record_id)
