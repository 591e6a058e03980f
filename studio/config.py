from __future__ import annotations

"""
studio.config

Central settings for the orchestrator: output directory, poll cadence,
per-kind generation windows, dialog/download timeouts and the batch budget.

Environment (all optional):
  STUDIO_OUTPUT_DIR            download directory (default: downloads)
  STUDIO_POLL_INTERVAL         seconds between status polls
  STUDIO_TIMEOUT_<KIND>        generation timeout for DECK/AUDIO/VIDEO/INFOGRAPHIC
  STUDIO_PROGRESS_EVERY        seconds between progress lines
  STUDIO_DIALOG_TIMEOUT        dialog verification timeout
  STUDIO_SETTLE                pause after dialog actions
  STUDIO_RESOLVE_ATTEMPTS      element lookup attempts
  STUDIO_DOWNLOAD_TIMEOUT      seconds to wait for a file on disk
  STUDIO_BATCH_SETTLE          pause between batch triggers
  STUDIO_BATCH_INITIAL_WAIT    first batch wait window
  STUDIO_BATCH_REFRESH_CYCLES  reload-and-wait cycles after it
  STUDIO_BATCH_REFRESH_WAIT    window of each cycle (shorter than the initial one)
  STUDIO_BATCH_MAX_WAIT        hard ceiling for the whole batch wait
  STUDIO_PAGE_READY_TIMEOUT    readiness gate timeout
  STUDIO_VERBOSE               progress lines on/off
  STUDIO_ENV_FILE              .env file to read these from (else ./.env)
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .constants import DEFAULT_TIMEOUTS, ArtifactKind
from .errors import StudioError

ENV_PREFIX = "STUDIO_"


def _load_dotenv_if_needed() -> None:
    """Best-effort load of STUDIO_* variables from STUDIO_ENV_FILE, else ./.env.

    Other keys in the file are ignored; variables already present in
    os.environ are never overridden.
    """
    path = os.getenv("STUDIO_ENV_FILE", "").strip() or os.path.join(os.getcwd(), ".env")
    if not os.path.isfile(path):
        return
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError:
        return
    for line in lines:
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        k, v = (part.strip() for part in s.split("=", 1))
        if k.startswith(ENV_PREFIX) and k not in os.environ:
            os.environ[k] = v.strip('"').strip("'")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass
class StudioConfig:
    """Orchestrator settings. All durations are in seconds."""

    output_dir: str = "downloads"
    poll_interval_s: float = 2.0
    timeouts: Dict[ArtifactKind, float] = field(default_factory=lambda: dict(DEFAULT_TIMEOUTS))
    progress_every_s: float = 20.0

    # dialog / resolver
    dialog_timeout_s: float = 5.0
    dialog_poll_s: float = 0.25
    settle_s: float = 0.5
    field_settle_s: float = 0.2
    resolve_attempts: int = 3
    resolve_retry_s: float = 1.0
    inactive_retry_s: float = 3.0
    hover_wait_ms: int = 300

    # downloads
    download_timeout_s: float = 60.0
    download_poll_s: float = 0.5
    stability_delay_s: float = 0.2
    menu_settle_s: float = 0.5
    between_downloads_s: float = 0.5

    # batch
    batch_settle_s: float = 3.0
    batch_initial_wait_s: Optional[float] = None
    batch_refresh_cycles: int = 2
    batch_refresh_wait_s: Optional[float] = None
    batch_max_wait_s: Optional[float] = None

    # session
    page_ready_timeout_s: float = 30.0
    verbose: bool = True

    def timeout_for(self, kind: ArtifactKind) -> float:
        return float(self.timeouts.get(ArtifactKind(kind), DEFAULT_TIMEOUTS[ArtifactKind(kind)]))

    def batch_initial_wait_for(self, kind: ArtifactKind) -> float:
        if self.batch_initial_wait_s is not None:
            return float(self.batch_initial_wait_s)
        return self.timeout_for(kind)

    def batch_refresh_wait_for(self, kind: ArtifactKind) -> float:
        """Refresh-cycle window; always shorter than the initial window."""
        initial = self.batch_initial_wait_for(kind)
        if self.batch_refresh_wait_s is not None:
            refresh = float(self.batch_refresh_wait_s)
        else:
            refresh = max(60.0, self.timeout_for(kind) / 3.0)
        if refresh >= initial:
            refresh = initial / 2.0
        return refresh

    def batch_max_wait_for(self, kind: ArtifactKind) -> float:
        if self.batch_max_wait_s is not None:
            return float(self.batch_max_wait_s)
        return 2.0 * self.timeout_for(kind)

    def validate(self) -> "StudioConfig":
        if self.poll_interval_s <= 0:
            raise StudioError(code="INVALID_CONFIG", stage="config", message="poll_interval_s must be > 0")
        if self.resolve_attempts < 1:
            raise StudioError(code="INVALID_CONFIG", stage="config", message="resolve_attempts must be >= 1")
        if self.batch_refresh_cycles < 0:
            raise StudioError(code="INVALID_CONFIG", stage="config", message="batch_refresh_cycles must be >= 0")
        if (
            self.batch_initial_wait_s is not None
            and self.batch_refresh_wait_s is not None
            and self.batch_refresh_wait_s >= self.batch_initial_wait_s
        ):
            raise StudioError(
                code="INVALID_CONFIG",
                stage="config",
                message="batch_refresh_wait_s must be shorter than batch_initial_wait_s",
            )
        for kind, value in self.timeouts.items():
            if value <= 0:
                raise StudioError(
                    code="INVALID_CONFIG",
                    stage="config",
                    message=f"timeout for {ArtifactKind(kind).value} must be > 0 (got {value})",
                )
        return self

    @classmethod
    def from_env(cls) -> "StudioConfig":
        """Build settings from the environment, falling back to defaults on parse errors."""
        _load_dotenv_if_needed()
        d = cls()
        timeouts = {
            kind: _env_float(f"STUDIO_TIMEOUT_{kind.value.upper()}", DEFAULT_TIMEOUTS[kind])
            for kind in ArtifactKind
        }
        batch_initial = _env_float("STUDIO_BATCH_INITIAL_WAIT", -1.0)
        batch_refresh = _env_float("STUDIO_BATCH_REFRESH_WAIT", -1.0)
        batch_max = _env_float("STUDIO_BATCH_MAX_WAIT", -1.0)
        cfg = cls(
            output_dir=os.getenv("STUDIO_OUTPUT_DIR", "").strip() or d.output_dir,
            poll_interval_s=_env_float("STUDIO_POLL_INTERVAL", d.poll_interval_s),
            timeouts=timeouts,
            progress_every_s=_env_float("STUDIO_PROGRESS_EVERY", d.progress_every_s),
            dialog_timeout_s=_env_float("STUDIO_DIALOG_TIMEOUT", d.dialog_timeout_s),
            settle_s=_env_float("STUDIO_SETTLE", d.settle_s),
            resolve_attempts=_env_int("STUDIO_RESOLVE_ATTEMPTS", d.resolve_attempts),
            download_timeout_s=_env_float("STUDIO_DOWNLOAD_TIMEOUT", d.download_timeout_s),
            batch_settle_s=_env_float("STUDIO_BATCH_SETTLE", d.batch_settle_s),
            batch_initial_wait_s=batch_initial if batch_initial > 0 else None,
            batch_refresh_cycles=_env_int("STUDIO_BATCH_REFRESH_CYCLES", d.batch_refresh_cycles),
            batch_refresh_wait_s=batch_refresh if batch_refresh > 0 else None,
            batch_max_wait_s=batch_max if batch_max > 0 else None,
            page_ready_timeout_s=_env_float("STUDIO_PAGE_READY_TIMEOUT", d.page_ready_timeout_s),
            verbose=_env_bool("STUDIO_VERBOSE", d.verbose),
        )
        return cfg.validate()


def get_config() -> StudioConfig:
    """Shortcut: StudioConfig for the current environment."""
    return StudioConfig.from_env()
