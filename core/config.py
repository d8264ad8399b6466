from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "CLINIC_ERP_DATA_DIR"
ENV_HEAD_OFFICE = "CLINIC_ERP_HEAD_OFFICE"
ENV_MODULES = "CLINIC_ERP_MODULES"

DEFAULT_HEAD_OFFICE = "rohini"
DEFAULT_STALE_AFTER_SECONDS = 30


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "INR"
    # Location for legacy documents saved before multi-location support.
    head_office_fallback: str = DEFAULT_HEAD_OFFICE
    stale_after_seconds: int = DEFAULT_STALE_AFTER_SECONDS
    # None means every module is allowed.
    allowed_modules: Optional[frozenset] = None


def _default_data_dir() -> Path:
    return Path.home() / ".clinic_erp"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def parse_modules(raw: Optional[str]) -> Optional[frozenset]:
    if raw is None or not raw.strip():
        return None
    return frozenset(m.strip().lower() for m in raw.split(",") if m.strip())


def is_allowed_module(settings: Settings, module: str) -> bool:
    if settings.allowed_modules is None:
        return True
    return module.strip().lower() in settings.allowed_modules


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    cfg = data_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    st.session_state["clinic_erp_data_dir"] = str(data_dir)


@st.cache_resource
def get_settings() -> Settings:
    # Priority order:
    # 1) Session state (set via Data Management page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    if "clinic_erp_data_dir" in st.session_state:
        data_dir = Path(st.session_state["clinic_erp_data_dir"]).expanduser().resolve()
    elif os.getenv(ENV_DATA_DIR):
        data_dir = Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
    else:
        default_dir = _default_data_dir()
        persisted = _load_persisted_settings(default_dir)
        data_dir = Path(persisted.get("data_dir", default_dir)).expanduser().resolve()

    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / "app.db"
    return Settings(
        data_dir=data_dir,
        db_path=db_path,
        head_office_fallback=os.getenv(ENV_HEAD_OFFICE, "").strip() or DEFAULT_HEAD_OFFICE,
        allowed_modules=parse_modules(os.getenv(ENV_MODULES)),
    )
