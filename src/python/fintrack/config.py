"""Configuration loading for FinTrack."""

from __future__ import annotations

from dataclasses import dataclass
import json
import os
from pathlib import Path
from typing import Any

from fintrack.assistant import DEFAULT_BASE_URL, DEFAULT_MODEL
from fintrack.exceptions import ValidationError
from fintrack.persistence import PersistenceBackend
from fintrack.repository import Repository
from fintrack.rest import DEFAULT_TIMEOUT_SECONDS, RestGateway
from fintrack.schema import DEFAULT_CURRENCY_LABEL
from fintrack.session import DEFAULT_SESSION_FILE_NAME

CONFIG_ENV_VAR = "FINTRACK_CONFIG"
DEFAULT_DATA_DIR = Path.home() / ".fintrack"
DEFAULT_CONFIG_NAME = "config.json"
DEFAULT_DB_NAME = "fintrack.db"
GATEWAY_KINDS = {"sqlite", "rest"}


@dataclass(frozen=True)
class AppConfig:
    """Resolved application settings."""

    data_dir: Path = DEFAULT_DATA_DIR
    gateway: str = "sqlite"
    db_path: Path = DEFAULT_DATA_DIR / DEFAULT_DB_NAME
    rest_url: str | None = None
    rest_api_key: str | None = None
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    session_path: Path = DEFAULT_DATA_DIR / DEFAULT_SESSION_FILE_NAME
    inference_api_key: str | None = None
    inference_base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    currency_label: str = DEFAULT_CURRENCY_LABEL


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return DEFAULT_DATA_DIR / DEFAULT_CONFIG_NAME


def _load_payload(config_path: Path) -> dict[str, Any]:
    """Load config file if present, else return empty config."""
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Invalid config file {config_path}: {exc}") from exc
    if not isinstance(payload, dict):
        return {}
    return payload


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Build the configuration from the JSON file and environment overrides.

    Environment variables win over the file for endpoints and secrets.
    """
    path = Path(config_path) if config_path is not None else default_config_path()
    payload = _load_payload(path)
    rest = payload.get("rest") or {}
    inference = payload.get("inference") or {}

    data_dir = Path(payload.get("data_dir") or path.parent)
    db_path = os.environ.get("FINTRACK_DB_PATH") or payload.get("db_path")
    gateway = str(payload.get("gateway", "sqlite")).lower()
    if gateway not in GATEWAY_KINDS:
        raise ValidationError(f"gateway must be one of {', '.join(sorted(GATEWAY_KINDS))}")

    return AppConfig(
        data_dir=data_dir,
        gateway=gateway,
        db_path=Path(db_path) if db_path else data_dir / DEFAULT_DB_NAME,
        rest_url=os.environ.get("SUPABASE_URL") or rest.get("url"),
        rest_api_key=os.environ.get("SUPABASE_ANON_KEY") or rest.get("api_key"),
        timeout_seconds=int(rest.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
        session_path=Path(payload.get("session_path") or data_dir / DEFAULT_SESSION_FILE_NAME),
        inference_api_key=os.environ.get("GROQ_API_KEY") or inference.get("api_key"),
        inference_base_url=inference.get("base_url") or DEFAULT_BASE_URL,
        model=inference.get("model") or DEFAULT_MODEL,
        currency_label=payload.get("currency_label") or DEFAULT_CURRENCY_LABEL,
    )


def build_gateway(config: AppConfig) -> PersistenceBackend:
    """Create the configured persistence gateway (not yet connected)."""
    if config.gateway == "rest":
        return RestGateway(
            base_url=config.rest_url or "",
            api_key=config.rest_api_key or "",
            timeout_seconds=config.timeout_seconds,
        )
    return Repository(config.db_path, seed_defaults=True)
