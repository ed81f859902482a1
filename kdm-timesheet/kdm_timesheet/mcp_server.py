"""kdm-timesheet MCP server.

Exposes the day session as tools: log in, pick a date, edit half-hour slots,
auto-fill empty slots and submit pending slots to the KDM timesheet service.
"""
from __future__ import annotations

import argparse
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from timesheet_core.transitions import ConfirmationRequired

from .config import credentials_from_env, load_env, runtime_config, workday_config
from .kdm_client import KdmClient
from .session import DaySession
from .storage import (
    clear_credentials,
    load_credentials,
    load_last_email,
    save_credentials,
    save_last_email,
)
from .utils import date_options

mcp = FastMCP(
    "kdm-timesheet",
    host=os.getenv("HOST", "127.0.0.1"),
    port=int(os.getenv("PORT", "8000")),
    instructions=(
        "Half-hour timesheet for the KDM work tracking service. "
        "Load a day, assign jobs, plans or day-off to slots, and submit. "
        "Slots already saved remotely need confirm=true to change or clear."
    ),
)

_ENV_FILE: str | None = None
_SESSION: DaySession | None = None


def _session() -> DaySession:
    global _SESSION
    if _SESSION is None:
        load_env(_ENV_FILE or os.getenv("KDM_ENV_FILE"))
        cfg = runtime_config()
        client = KdmClient(
            base_url=cfg.base_url, timeout_s=cfg.timeout_s, retries=cfg.retries, language=cfg.language
        )
        _SESSION = DaySession(
            client,
            load_credentials(cfg.state_root),
            definition=workday_config(),
            history_limit=cfg.history_limit,
        )
    return _SESSION


def _state_root():
    load_env(_ENV_FILE or os.getenv("KDM_ENV_FILE"))
    return runtime_config().state_root


def _ensure_day(session: DaySession) -> None:
    if not session.catalog:
        session.load_catalog()
    if session.day is None:
        session.select_date()


def _confirmation_error(exc: ConfirmationRequired) -> dict[str, Any]:
    return {"ok": False, "confirmation_required": True, "message": str(exc), "slot": exc.slot.to_dict()}


# -- Login --

@mcp.tool()
def login(email: str | None = None, password: str | None = None) -> dict[str, Any]:
    """Log in to the timesheet service. Falls back to KDM_EMAIL / KDM_PASSWORD."""
    session = _session()
    if not email or not password:
        from_env = credentials_from_env()
        if from_env is None:
            raise ValueError("email and password are required")
        email, password = from_env
    creds = session.client.login(email, password)
    root = _state_root()
    save_credentials(root, creds)
    save_last_email(root, email)
    session.creds = creds
    session.load_catalog()
    return {"user": creds.display_name, "user_id": creds.user_id, "jobs": len(session.catalog)}


@mcp.tool()
def logout() -> dict[str, Any]:
    """Forget the stored login and the in-memory day."""
    global _SESSION
    clear_credentials(_state_root())
    _SESSION = None
    return {"ok": True, "last_email": load_last_email(_state_root())}


# -- Reference data --

@mcp.tool()
def list_jobs() -> list[dict[str, Any]]:
    """List the job definitions that can be assigned to slots."""
    session = _session()
    if not session.catalog:
        session.load_catalog()
    return [{"id": job.id, "name": job.name} for job in session.catalog]


@mcp.tool()
def list_dates() -> list[dict[str, str]]:
    """List selectable dates (one week back to one week ahead)."""
    return date_options()


# -- Day editing --

@mcp.tool()
def load_day(day: str | None = None) -> dict[str, Any]:
    """Select a date (YYYY-MM-DD, default today) and return its merged slots.

    Unsubmitted edits for the previously selected date are discarded.
    """
    session = _session()
    if not session.catalog:
        session.load_catalog()
    session.select_date(day)
    return session.day_view()


@mcp.tool()
def assign_job(index: int, job_id: int, confirm: bool = False) -> dict[str, Any]:
    """Assign a job to the slot at ``index``."""
    session = _session()
    _ensure_day(session)
    try:
        slot = session.assign_job(index, job_id, confirmed=confirm)
    except ConfirmationRequired as exc:
        return _confirmation_error(exc)
    return {"ok": True, "slot": slot.to_dict()}


@mcp.tool()
def plan_job(index: int, job_id: int, confirm: bool = False) -> dict[str, Any]:
    """Mark the slot at ``index`` as planned work for a job."""
    session = _session()
    _ensure_day(session)
    try:
        slot = session.plan_job(index, job_id, confirmed=confirm)
    except ConfirmationRequired as exc:
        return _confirmation_error(exc)
    return {"ok": True, "slot": slot.to_dict()}


@mcp.tool()
def mark_day_off(index: int, confirm: bool = False) -> dict[str, Any]:
    """Mark the slot at ``index`` as day off."""
    session = _session()
    _ensure_day(session)
    try:
        slot = session.mark_day_off(index, confirmed=confirm)
    except ConfirmationRequired as exc:
        return _confirmation_error(exc)
    return {"ok": True, "slot": slot.to_dict()}


@mcp.tool()
def clear_slot(index: int, confirm: bool = False) -> dict[str, Any]:
    """Clear a slot. Saved slots are deleted remotely first and need confirm=true."""
    session = _session()
    _ensure_day(session)
    try:
        outcome = session.clear(index, confirmed=confirm)
    except ConfirmationRequired as exc:
        return _confirmation_error(exc)
    return {
        "ok": outcome.cleared,
        "deleted_record_id": outcome.deleted_record_id,
        "message": outcome.message,
        "slot": session.slots[index].to_dict(),
    }


@mcp.tool()
def auto_fill(seed: int | None = None) -> dict[str, Any]:
    """Fill a random 40-80% of the empty slots with random jobs."""
    import random

    session = _session()
    _ensure_day(session)
    result = session.auto_fill(random.Random(seed) if seed is not None else None)
    return {
        "filled": result.filled_count,
        "empty_before": result.empty_count,
        "nothing_to_fill": result.nothing_to_fill,
        "day": session.day_view(),
    }


@mcp.tool()
def submit_day() -> dict[str, Any]:
    """Submit every pending slot of the selected day and report per-item results."""
    session = _session()
    _ensure_day(session)
    report = session.submit()
    summary = report.to_dict()
    summary["day"] = session.day_view()
    return summary


# -- Server entrypoints --

TOOLS_HELP = """\
tools:
  login          log in (falls back to KDM_EMAIL / KDM_PASSWORD)
  logout         forget the stored login
  list_jobs      job definitions that can be assigned
  list_dates     selectable dates, one week back to one week ahead
  load_day       select a date and show its merged half-hour slots
  assign_job     put a job on a slot
  plan_job       mark a slot as planned work
  mark_day_off   mark a slot as day off
  clear_slot     clear a slot (saved slots need confirm=true)
  auto_fill      fill 40-80% of the empty slots with random jobs
  submit_day     send every pending slot and report per-slot results

environment:
  KDM_BASE_URL, KDM_TIMEOUT_S, KDM_RETRIES, KDM_STATE_DIR, KDM_LANGUAGE
  KDM_DAY_START, KDM_DAY_END, KDM_BREAK_START, KDM_BREAK_END, KDM_SLOT_MINUTES
  MCP_API_KEY    bearer token required for streamable-http when set
"""


def _bearer_auth(api_key: str):
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.responses import JSONResponse

    class BearerAuth(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            if request.url.path != "/health" and request.headers.get("authorization", "") != f"Bearer {api_key}":
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return await call_next(request)

    return BearerAuth


def _health(request):
    from starlette.responses import JSONResponse

    day = _SESSION.day if _SESSION is not None else None
    return JSONResponse({"service": "kdm-timesheet", "status": "ok", "day": day})


async def _run_http() -> None:
    import uvicorn
    from starlette.routing import Route

    app = mcp.streamable_http_app()
    api_key = os.getenv("MCP_API_KEY")
    if api_key:
        app.add_middleware(_bearer_auth(api_key))
    app.routes.append(Route("/health", _health))

    config = uvicorn.Config(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_level="info",
    )
    await uvicorn.Server(config).serve()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kdm-timesheet-mcp",
        description="Serve the KDM half-hour timesheet as MCP tools.",
        epilog=TOOLS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file with KDM_* settings")
    parser.add_argument(
        "--transport",
        default=None,
        choices=["stdio", "sse", "streamable-http"],
        help="MCP transport (default: streamable-http when PORT is set, else stdio)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    global _ENV_FILE

    args = build_parser().parse_args(argv)
    _ENV_FILE = args.env_file
    transport = args.transport or ("streamable-http" if os.getenv("PORT") else "stdio")

    if transport == "streamable-http":
        import anyio

        anyio.run(_run_http)
    else:
        mcp.run(transport=transport)


if __name__ == "__main__":
    main()
