from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .kdm_client import Credentials
from .utils import now_utc_iso

CREDENTIALS_FILE = "user.json"
LAST_EMAIL_FILE = "last_email.json"


def _json_dump(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)


def _json_load(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def save_credentials(state_root: Path, creds: Credentials) -> Path:
    target = state_root / CREDENTIALS_FILE
    _json_dump(
        target,
        {
            "email": creds.email,
            "token": creds.token,
            "user_id": creds.user_id,
            "name": creds.name,
            "surname": creds.surname,
            "saved_at": now_utc_iso(),
        },
    )
    return target


def load_credentials(state_root: Path) -> Credentials | None:
    path = state_root / CREDENTIALS_FILE
    if not path.exists():
        return None
    try:
        data = _json_load(path)
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict) or not data.get("token"):
        return None
    return Credentials(
        token=data["token"],
        user_id=data.get("user_id"),
        email=data.get("email") or "",
        name=data.get("name"),
        surname=data.get("surname"),
    )


def clear_credentials(state_root: Path) -> None:
    (state_root / CREDENTIALS_FILE).unlink(missing_ok=True)


def save_last_email(state_root: Path, email: str) -> None:
    _json_dump(state_root / LAST_EMAIL_FILE, {"email": email})


def load_last_email(state_root: Path) -> str | None:
    path = state_root / LAST_EMAIL_FILE
    if not path.exists():
        return None
    try:
        return _json_load(path).get("email")
    except (OSError, ValueError, AttributeError):
        return None
