"""Data models for generation requests and observed/produced records.

Requests are pydantic models (validated, immutable for one workflow call).
Observations and results are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import AUDIO_DEFAULT_LANGUAGE, ArtifactKind

DeckAudience = Literal["technical", "investor", "customer", "executive", "beginner"]


class DeckOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    audience: DeckAudience = "technical"
    format: Optional[Literal["detailed", "presenter"]] = None
    length: Optional[Literal["short", "default", "long"]] = None


class AudioOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    format: Optional[Literal["deep-dive", "brief", "critique", "debate"]] = None
    language: str = Field(default=AUDIO_DEFAULT_LANGUAGE, description="BCP-47 code such as en-US or ja-JP")


class VideoOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    format: Optional[Literal["brief", "explainer"]] = None
    theme: Optional[Literal["retro-90s", "futuristic", "corporate", "minimal"]] = None
    custom_theme: Optional[str] = Field(default=None, description="free-text theme; overrides theme")


class InfographicOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    orientation: Optional[Literal["square", "portrait", "landscape"]] = None
    detail: Optional[Literal["concise", "standard", "detailed"]] = None


KindOptions = Union[DeckOptions, AudioOptions, VideoOptions, InfographicOptions]

OPTIONS_BY_KIND = {
    ArtifactKind.DECK: DeckOptions,
    ArtifactKind.AUDIO: AudioOptions,
    ArtifactKind.VIDEO: VideoOptions,
    ArtifactKind.INFOGRAPHIC: InfographicOptions,
}


class GenerationRequest(BaseModel):
    """One generation: artifact kind, its form options and an optional prompt."""

    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    options: Optional[KindOptions] = None
    prompt_override: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _options_for_kind(cls, data: Any) -> Any:
        # options are parsed with the kind's own model, never by union guessing
        if not isinstance(data, dict) or "kind" not in data:
            return data
        expected = OPTIONS_BY_KIND[ArtifactKind(data["kind"])]
        opts = data.get("options")
        if opts is None:
            opts = expected()
        elif isinstance(opts, dict):
            opts = expected.model_validate(opts)
        elif not isinstance(opts, expected):
            raise ValueError(
                f"options of type {type(opts).__name__} do not match kind {ArtifactKind(data['kind']).value}"
            )
        return {**data, "options": opts}

    @classmethod
    def build(cls, kind: Union[ArtifactKind, str], prompt_override: Optional[str] = None, **options: Any) -> "GenerationRequest":
        """Convenience constructor: ``GenerationRequest.build("deck", audience="investor")``."""
        k = ArtifactKind(kind)
        opts = OPTIONS_BY_KIND[k](**{key: val for key, val in options.items() if val is not None})
        return cls(kind=k, options=opts, prompt_override=prompt_override)


@dataclass
class LoadingSignals:
    """Independent loading indicators of one artifact item."""

    shimmer: bool = False
    disabled: bool = False
    generating_title: bool = False
    rotating_icon: bool = False

    @property
    def loading(self) -> bool:
        return self.shimmer or self.disabled or self.generating_title or self.rotating_icon

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "LoadingSignals":
        d = d or {}
        return cls(
            shimmer=bool(d.get("shimmer")),
            disabled=bool(d.get("disabled")),
            generating_title=bool(d.get("generatingTitle")),
            rotating_icon=bool(d.get("rotatingIcon")),
        )


@dataclass
class Artifact:
    """Projection of one rendered artifact at observation time (positional identity)."""

    kind: ArtifactKind
    index: int
    title: str
    loading: bool


@dataclass
class ArtifactStatus:
    total: int = 0
    loading: int = 0
    ready: int = 0


@dataclass(frozen=True)
class DownloadRecord:
    """A downloaded file, verified stable on disk and renamed."""

    suggested_name: str
    final_name: str
    path: str
    kind: ArtifactKind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.final_name,
            "path": self.path,
            "suggested_filename": self.suggested_name,
            "artifact_kind": ArtifactKind(self.kind).value,
        }


@dataclass
class BatchRun:
    """State of one batch; only the scheduler mutates it."""

    requests: List[GenerationRequest]
    started_at: float
    initial_count: int = 0
    triggered: List[GenerationRequest] = field(default_factory=list)
    expected_count: int = 0

    def mark_triggered(self, request: GenerationRequest) -> None:
        self.triggered.append(request)
        self.expected_count = self.initial_count + len(self.triggered)
