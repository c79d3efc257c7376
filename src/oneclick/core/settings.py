"""Runtime settings for genai-oneclick.

Settings come from ``ONECLICK_*`` environment variables, an optional ``.env``
file, and keyword overrides, in that order of increasing precedence.

Fields
──────
state_dir            : Marker storage root (marker files or SQLite db)
marker_backend       : ``files`` (one marker file per phase) or ``sqlite``
audit_log            : Append-only JSON-lines record of every step attempt
log_level / json_logs: structlog configuration
lab_config           : Optional YAML file overriding the GenAI lab plan
default_max_attempts : Attempt budget for retried steps
default_base_delay   : Linear backoff unit in seconds (attempt * base_delay)
readiness_timeout    : Upper bound for container readiness waits
readiness_interval   : Poll interval for readiness waits
progress_every       : Emit a progress line every N polls
tolerated_signals    : Regexes for collaborator output known to be harmless
unit_dir             : Where service unit files are written
executable           : ``oneclick`` entry point referenced from unit files

Examples:
    >>> from oneclick.core.settings import OneClickSettings
    >>> settings = OneClickSettings(state_dir="/tmp/oneclick")
    >>> settings.marker_dir.name
    'markers'
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OneClickSettings(BaseSettings):
    """Settings shared by the CLI, the sequencer and the service units."""

    model_config = SettingsConfigDict(
        env_prefix="ONECLICK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── State ────────────────────────────────────────────────────
    state_dir: Path = Field(
        default=Path("/var/lib/genai-oneclick"),
        description="Root directory for phase markers",
    )
    marker_backend: Literal["files", "sqlite"] = "files"
    audit_log: Path = Field(
        default=Path("/var/log/genai_setup.jsonl"),
        description="Append-only step attempt log",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Plan ─────────────────────────────────────────────────────
    lab_config: Path | None = None

    # ── Retry / readiness defaults ───────────────────────────────
    default_max_attempts: int = Field(default=5, ge=1)
    default_base_delay: float = Field(default=5.0, ge=0)
    readiness_timeout: float = Field(default=900.0, gt=0)
    readiness_interval: float = Field(default=5.0, gt=0)
    progress_every: int = Field(default=12, ge=1)
    tolerated_signals: list[str] = Field(
        default_factory=lambda: ["Database configuration failed"],
        description="Collaborator output patterns downgraded to warnings",
    )

    # ── Service supervision ──────────────────────────────────────
    unit_dir: Path = Path("/etc/systemd/system")
    executable: str = "/usr/local/bin/oneclick"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def marker_dir(self) -> Path:
        return self.state_dir / "markers"

    @property
    def marker_db(self) -> Path:
        return self.state_dir / "markers.db"


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> OneClickSettings:
    """Return the process-wide settings instance."""
    return OneClickSettings(**overrides)


__all__ = ["OneClickSettings", "get_settings"]
