"""
config/settings.py — MindX Runtime Settings

Merges config.yaml (defaults/structure) with .env (secrets).
Pydantic-powered — all fields are validated and typed.

  - GatewayConfig rejects non-positive timeouts at parse time
  - AgentsConfig rejects empty agent identifiers
  - validate_all() performs full startup validation and raises ConfigError
    with a clear, human-readable message listing every problem found
  - load_settings() respects MINDX_CONFIG env var as a fallback
    when no explicit config_path argument is given
"""

from __future__ import annotations

import os
import threading as _threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(Exception):
    """Raised by validate_all() when one or more config problems are found."""


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class AppConfig(BaseModel):
    name: str = "MindX"
    version: str = "1.0.0"
    celebration_delay_seconds: float = 3.0
    success_ack_seconds: float = 3.0

    @field_validator("celebration_delay_seconds", "success_ack_seconds")
    @classmethod
    def _non_negative_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("app delays must be >= 0")
        return v


class GatewayConfig(BaseModel):
    base_url: str = "http://localhost:8000/api"
    timeout_seconds: float = 30.0
    upload_timeout_seconds: float = 60.0

    @field_validator("timeout_seconds", "upload_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("gateway timeouts must be > 0")
        return v

    @field_validator("base_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")


class AgentsConfig(BaseModel):
    """Opaque agent identifiers, one per decision service."""
    orchestrator: str = "6985a1d78ce1fc653cfdee3e"
    task_recommender: str = "6985a1fb7551cb7920ffe9c1"
    evidence_verifier: str = "6985a22db37fff3a03c07c51"
    moderator: str = "6985a256f7f7d3ffa5d8664d"

    @field_validator("orchestrator", "task_recommender", "evidence_verifier", "moderator")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("agent identifiers must not be empty")
        return v.strip()


class PersistenceConfig(BaseModel):
    data_dir: str = "./data"
    namespace: str = "mindx_user_data"

    @field_validator("namespace")
    @classmethod
    def _safe_namespace(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v or v.startswith("."):
            raise ValueError(
                f"persistence.namespace '{v}' must be a plain file stem "
                f"(no path separators, no leading dot)"
            )
        return v

    @property
    def snapshot_path(self) -> Path:
        return Path(self.data_dir) / f"{self.namespace}.json"


class AuthConfig(BaseModel):
    """Single-credential login stub."""
    username: str = "demo"
    password: str = "demo"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 100
    backup_count: int = 5
    console_output: bool = False
    json_format: bool = True

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    MindX runtime settings.

    Priority (highest to lowest):
      1. Environment variables
      2. .env file
      3. config.yaml
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    # -- Secrets from .env ---------------------------------------------------
    agent_api_key: Optional[str] = Field(default=None, alias="MINDX_AGENT_API_KEY")

    # -- Structured config (from config.yaml) --------------------------------
    app: AppConfig = Field(default_factory=AppConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("app", mode="before")
    @classmethod
    def _coerce_app(cls, v: Any) -> Any:
        return AppConfig(**v) if isinstance(v, dict) else v

    @field_validator("gateway", mode="before")
    @classmethod
    def _coerce_gateway(cls, v: Any) -> Any:
        return GatewayConfig(**v) if isinstance(v, dict) else v

    @field_validator("agents", mode="before")
    @classmethod
    def _coerce_agents(cls, v: Any) -> Any:
        return AgentsConfig(**v) if isinstance(v, dict) else v

    @field_validator("persistence", mode="before")
    @classmethod
    def _coerce_persistence(cls, v: Any) -> Any:
        return PersistenceConfig(**v) if isinstance(v, dict) else v

    @field_validator("auth", mode="before")
    @classmethod
    def _coerce_auth(cls, v: Any) -> Any:
        return AuthConfig(**v) if isinstance(v, dict) else v

    @field_validator("logging", mode="before")
    @classmethod
    def _coerce_logging(cls, v: Any) -> Any:
        return LoggingConfig(**v) if isinstance(v, dict) else v

    # -- Convenience properties ----------------------------------------------

    @property
    def app_name(self) -> str:
        return self.app.name

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    @property
    def snapshot_path(self) -> Path:
        return self.persistence.snapshot_path

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Pydantic field validators catch type/value errors at parse time; this
        method catches cross-field problems (e.g. two agents sharing one id,
        a gateway URL without a scheme).
        """
        errors: list[str] = []

        # ── Gateway URL ──────────────────────────────────────────────────────
        base = self.gateway.base_url
        if not base.startswith(("http://", "https://")):
            errors.append(
                f"gateway.base_url '{base}' must start with http:// or https://."
            )

        # ── Agent ids are distinct ───────────────────────────────────────────
        ids = self.agents.model_dump()
        seen: dict[str, str] = {}
        for role, agent_id in ids.items():
            if agent_id in seen:
                errors.append(
                    f"agents.{role} reuses the id of agents.{seen[agent_id]} "
                    f"('{agent_id}'). Each agent needs its own id."
                )
            else:
                seen[agent_id] = role

        # ── Upload must not time out before a plain call ─────────────────────
        if self.gateway.upload_timeout_seconds < self.gateway.timeout_seconds:
            errors.append(
                "gateway.upload_timeout_seconds must be >= gateway.timeout_seconds."
            )

        # ── Login stub needs a credential ────────────────────────────────────
        if not self.auth.username.strip() or not self.auth.password:
            errors.append("auth.username and auth.password must both be set.")

        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nMindX startup failed — {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your .env file "
                f"and restart.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
_singleton_lock = _threading.Lock()

_KNOWN_SECTIONS = {"app", "gateway", "agents", "persistence", "auth", "logging"}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path with this priority:
      1. Explicit config_path argument
      2. MINDX_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("MINDX_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def _build_settings(config_path: str | Path | None) -> Settings:
    yaml_data = _load_yaml(_resolve_config_path(config_path))
    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}
    return Settings(**init_kwargs)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Load settings by merging config.yaml with environment variables.

    Config path resolution order:
      1. config_path argument
      2. MINDX_CONFIG env var
      3. config/config.yaml   (default)
    """
    global _singleton
    instance = _build_settings(config_path)
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """
    Return the global Settings singleton.
    If load_settings() has been called already, returns that instance.
    Otherwise loads from the default config path.
    """
    global _singleton
    if _singleton is not None:
        return _singleton  # fast path: set once, read lock-free
    with _singleton_lock:
        if _singleton is None:
            _singleton = _build_settings(None)
        return _singleton
