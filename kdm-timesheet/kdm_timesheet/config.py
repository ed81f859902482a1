from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from timesheet_core.models import DayDefinition
from timesheet_core.time_utils import parse_hhmm_to_minutes

DEFAULT_BASE_URL = "https://kdmorg.shgm.gov.tr/api"


@dataclass(frozen=True)
class RuntimeConfig:
    base_url: str
    state_root: Path
    timeout_s: float
    retries: int
    language: str
    history_limit: int


def load_env(dotenv_path: str | Path | None = None) -> None:
    path = Path(dotenv_path) if dotenv_path else None
    if path and path.exists():
        load_dotenv(path)
        return
    load_dotenv()


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default).strip()
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def runtime_config() -> RuntimeConfig:
    base_url = os.getenv("KDM_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
    state_root = Path(os.getenv("KDM_STATE_DIR", "./.kdm-timesheet")).expanduser().resolve()
    state_root.mkdir(parents=True, exist_ok=True)
    return RuntimeConfig(
        base_url=base_url,
        state_root=state_root,
        timeout_s=_env_number("KDM_TIMEOUT_S", "30", float),
        retries=_env_number("KDM_RETRIES", "3", int),
        language=os.getenv("KDM_LANGUAGE", "tr").strip() or "tr",
        history_limit=_env_number("KDM_HISTORY_LIMIT", "100", int),
    )


def workday_config() -> DayDefinition:
    defaults = DayDefinition()
    values: dict[str, str] = {}
    for field, var in (
        ("start", "KDM_DAY_START"),
        ("end", "KDM_DAY_END"),
        ("break_start", "KDM_BREAK_START"),
        ("break_end", "KDM_BREAK_END"),
    ):
        value = os.getenv(var, getattr(defaults, field)).strip()
        if parse_hhmm_to_minutes(value) is None:
            raise ValueError(f"{var} must be HH:MM, got {value!r}")
        values[field] = value

    step = _env_number("KDM_SLOT_MINUTES", str(defaults.step_minutes), int)
    if step <= 0:
        raise ValueError(f"KDM_SLOT_MINUTES must be positive, got {step}")
    return DayDefinition(step_minutes=step, **values)


def credentials_from_env() -> tuple[str, str] | None:
    email = os.getenv("KDM_EMAIL", "").strip()
    password = os.getenv("KDM_PASSWORD", "")
    if not email or not password:
        return None
    return email, password
