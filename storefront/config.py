"""Storefront application settings."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv


ALLOWED_HOT_KEYS = {"CURRENCY", "LOG_LEVEL"}
SENSITIVE_KEYS = {"DATABASE_URL", "SECRET_KEY"}

PACKAGE_ROOT = Path(__file__).resolve().parent


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    currency: str
    cart_session_key: str = "cart"
    data_dir: Path = PACKAGE_ROOT / "data"

    @property
    def settings_file(self) -> Path:
        return self.data_dir / "settings.json"


def validate_currency(value: Optional[str]) -> str:
    v = (value or "TRY").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def _load_settings_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ValueError(f"Unreadable settings file {path}: {exc}") from exc
    return data if isinstance(data, dict) else {}


def load_env(env_file: Optional[Path] = None, data_dir: Optional[Path] = None) -> AppConfig:
    """Build settings: data/settings.json first, then environment (.env as fallback)."""
    load_dotenv(env_file or PACKAGE_ROOT.parent / ".env")
    data_dir = Path(data_dir or os.getenv("STOREFRONT_DATA_DIR") or PACKAGE_ROOT / "data")
    s = _load_settings_file(data_dir / "settings.json")
    return AppConfig(
        database_url=os.getenv("DATABASE_URL", f"sqlite:///{data_dir / 'storefront.db'}"),
        secret_key=os.getenv("SECRET_KEY", "dev_secret"),
        log_level=(s.get("LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO").upper(),
        currency=validate_currency(s.get("CURRENCY") or os.getenv("CURRENCY")),
        cart_session_key=os.getenv("CART_SESSION_KEY", "cart"),
        data_dir=data_dir,
    )


def refresh_non_sensitive(overrides: Dict[str, str], current: AppConfig) -> AppConfig:
    updates = {k: v for k, v in (overrides or {}).items() if k in ALLOWED_HOT_KEYS}
    return replace(
        current,
        currency=validate_currency(updates.get("CURRENCY", current.currency)),
        log_level=str(updates.get("LOG_LEVEL", current.log_level)).upper(),
    )


def requires_restart(changed_keys: List[str]) -> bool:
    if not changed_keys:
        return False
    return any(k in SENSITIVE_KEYS for k in changed_keys)
