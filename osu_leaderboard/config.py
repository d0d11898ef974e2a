"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``        committed static defaults (optional)
  2. ``config/local.toml``          optional local overrides (gitignored)
  3. ``.env``                       local secrets and env overrides (gitignored)
  4. Environment variables          ``OSU_*`` / ``OSU_LEADERBOARD_*``

Entry points:
  ``load_config(config_path=None) -> AppConfig``
  ``require_credentials(env=None) -> Credentials``

The orchestrator receives an ``AppConfig`` instance at construction time,
never raw dicts or individual env var lookups scattered through the codebase.
Credentials are kept out of ``AppConfig`` so a config dump never carries the
client secret.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, field_validator

from osu_leaderboard.errors import ConfigError

VALID_MODES = frozenset({"osu", "taiko", "fruits", "mania"})

DEFAULT_RANKING_PATHS = [
    "/rankings/{mode}/performance?country={country}&limit={limit}",
    "/rankings/{mode}/performance?country={country}&filter=all",
    "/rankings/{mode}/performance?country={country}&page=1",
]

# ── Sub-config models ─────────────────────────────────────────────────────────


class ApiConfig(BaseModel):
    """osu! web API (v2) settings."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://osu.ppy.sh/api/v2"
    token_url: str = "https://osu.ppy.sh/oauth/token"
    mode: str = "osu"
    limit: int = 100
    timeout_seconds: float = 30.0
    ranking_paths: list[str] = DEFAULT_RANKING_PATHS
    user_agent: str = "osu-leaderboard/0.1"

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        if v not in VALID_MODES:
            raise ValueError(f"mode must be one of {sorted(VALID_MODES)}, got '{v}'.")
        return v

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if not 1 <= v <= 200:
            raise ValueError(f"limit must be in [1, 200], got {v}.")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {v}.")
        return v


class PaginationConfig(BaseModel):
    """Cursor-pagination budget."""

    model_config = ConfigDict(frozen=True)

    max_pages: int = 5

    @field_validator("max_pages")
    @classmethod
    def validate_max_pages(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_pages must be >= 1, got {v}.")
        return v


class ScrapeConfig(BaseModel):
    """Public HTML ranking pages used as the last-resort source."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://osu.ppy.sh"
    pages: int = 2

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("pages")
    @classmethod
    def validate_pages(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"pages must be >= 1, got {v}.")
        return v


class EnrichmentConfig(BaseModel):
    """Per-user detail lookup toggle."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False


class OutputConfig(BaseModel):
    """Snapshot destination."""

    model_config = ConfigDict(frozen=True)

    path: str = "leaderboard.json"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration, the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + environment.
    """

    model_config = ConfigDict(frozen=True)

    country: str = "IQ"
    api: ApiConfig = ApiConfig()
    pagination: PaginationConfig = PaginationConfig()
    scrape: ScrapeConfig = ScrapeConfig()
    enrichment: EnrichmentConfig = EnrichmentConfig()
    output: OutputConfig = OutputConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False

    @field_validator("country")
    @classmethod
    def validate_country(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 2 or not v.isalpha():
            raise ValueError(f"country must be a 2-letter code, got '{v}'.")
        return v


class Credentials(BaseModel):
    """OAuth client credentials. Never dumped into logs or run records."""

    model_config = ConfigDict(frozen=True)

    client_id: int
    client_secret: SecretStr


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Unlike an explicit ``config_path``, a missing default TOML is not an
    error: the built-in model defaults apply.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    raw: dict[str, Any] = {}
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        config_path = root / "config" / "default.toml"

    if config_path.exists():
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)

        # Also merge local.toml if present (gitignored local overrides)
        local_config_path = config_path.parent / "local.toml"
        if local_config_path.exists():
            with open(local_config_path, "rb") as f:
                local_raw: dict[str, Any] = tomllib.load(f)
            raw = _deep_merge(raw, local_raw)

    # 3. Apply environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def require_credentials(env: Optional[Mapping[str, str]] = None) -> Credentials:
    """Read ``OSU_CLIENT_ID`` / ``OSU_CLIENT_SECRET`` from the environment.

    Args:
        env: Mapping to read from. Defaults to ``os.environ`` (after
            ``load_config()`` has loaded ``.env``).

    Raises:
        ConfigError: If either value is missing or the client id is not an
            integer.
    """
    source = os.environ if env is None else env
    client_id = (source.get("OSU_CLIENT_ID") or "").strip()
    client_secret = (source.get("OSU_CLIENT_SECRET") or "").strip()

    if not client_id or not client_secret:
        raise ConfigError("OSU_CLIENT_ID and OSU_CLIENT_SECRET must be set.")

    try:
        return Credentials(client_id=client_id, client_secret=client_secret)
    except ValidationError as exc:
        raise ConfigError(f"OSU_CLIENT_ID must be an integer, got '{client_id}'.") from exc


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variables to the raw config dict.

    Supported overrides:
      OSU_COUNTRY                → raw["country"]
      OSU_API_BASE               → raw["api"]["base_url"]
      OSU_LEADERBOARD_OUTPUT     → raw["output"]["path"]
      OSU_LEADERBOARD_LOG_LEVEL  → raw["logging"]["level"]
      OSU_LEADERBOARD_DEBUG      → raw["debug"]
    """
    if country := os.environ.get("OSU_COUNTRY"):
        raw["country"] = country

    if api_base := os.environ.get("OSU_API_BASE"):
        raw.setdefault("api", {})["base_url"] = api_base

    if output := os.environ.get("OSU_LEADERBOARD_OUTPUT"):
        raw.setdefault("output", {})["path"] = output

    if log_level := os.environ.get("OSU_LEADERBOARD_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("OSU_LEADERBOARD_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    return AppConfig(
        country=raw.get("country", "IQ"),
        api=ApiConfig(**raw.get("api", {})),
        pagination=PaginationConfig(**raw.get("pagination", {})),
        scrape=ScrapeConfig(**raw.get("scrape", {})),
        enrichment=EnrichmentConfig(**raw.get("enrichment", {})),
        output=OutputConfig(**raw.get("output", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", False),
    )
