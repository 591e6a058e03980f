"""
studio.workflows
Per-kind generation workflows and the orchestrator that runs them.

Every workflow has the same shape:
    snapshot count -> open dialog -> verify -> configure -> submit
    -> wait for the new item -> download it
and only differs in how the dialog is configured and how the file is labelled.
A failing stage short-circuits to None and is remembered on ``last_failure``.
"""

from __future__ import annotations

from typing import Dict, Optional

from browser.env import PageQuery

from .config import StudioConfig
from .constants import (
    AUDIO_DEFAULT_LANGUAGE,
    AUDIO_FORMAT_LABELS,
    CREATE_CONTAINER_LABELS,
    CREATE_CONTAINER_SELECTOR,
    DECK_AUDIENCE_PROMPTS,
    DECK_FORMAT_LABELS,
    DECK_LENGTH_LABELS,
    EDIT_BUTTON_SELECTOR,
    INFOGRAPHIC_DETAIL_LABELS,
    INFOGRAPHIC_ORIENTATION_LABELS,
    LANGUAGE_DISPLAY_NAMES,
    VIDEO_FORMAT_LABELS,
    VIDEO_THEME_LABELS,
    ArtifactKind,
)
from .dialog import DialogController, DialogState
from .download import DownloadPipeline
from .log import Logger
from .models import AudioOptions, DeckOptions, DownloadRecord, GenerationRequest, InfographicOptions, VideoOptions
from .monitor import ArtifactMonitor
from .polling import Clock
from .resolver import ElementResolver, Target


class ArtifactWorkflow:
    """Dialog-driven trigger for one artifact kind."""

    kind: ArtifactKind = ArtifactKind.DECK

    def __init__(self, dialog: DialogController, resolver: ElementResolver, log: Logger) -> None:
        self.dialog = dialog
        self.resolver = resolver
        self.log = log

    def default_label(self, request: GenerationRequest) -> str:
        return self.kind.value

    def configure(self, request: GenerationRequest) -> bool:
        """Apply the request's options to the open dialog.

        Option clicks are best effort; only a requested free-text value that
        cannot be written fails the stage.
        """
        if request.prompt_override:
            return self.dialog.fill_text(request.prompt_override)
        return True

    def on_open_failed(self, request: GenerationRequest) -> bool:
        """Last resort when the customize action is missing; True if generation was started anyway."""
        return False

    def trigger(self, request: GenerationRequest) -> Optional[str]:
        """Run open/verify/configure/submit. Returns the failed stage, or None on success."""
        if not self.dialog.open(self.kind):
            if self.on_open_failed(request):
                return None
            return "open"
        if not self.dialog.wait_until_verified():
            if self.dialog.state == DialogState.WRONG_DIALOG:
                self.dialog.close()
            return "verify"
        if not self.configure(request):
            self.dialog.close()
            return "configure"
        if not self.dialog.submit():
            self.dialog.close()
            return "submit"
        return None


class DeckWorkflow(ArtifactWorkflow):
    kind = ArtifactKind.DECK

    def default_label(self, request: GenerationRequest) -> str:
        opts = request.options or DeckOptions()
        return opts.audience

    def configure(self, request: GenerationRequest) -> bool:
        opts = request.options or DeckOptions()
        if opts.format:
            self.dialog.select_radio(DECK_FORMAT_LABELS[opts.format])
        if opts.length:
            self.dialog.select_toggle(DECK_LENGTH_LABELS[opts.length])
        if request.prompt_override:
            return self.dialog.fill_text(request.prompt_override)
        if opts.audience != "technical":
            return self.dialog.fill_text(DECK_AUDIENCE_PROMPTS[opts.audience])
        return True


class AudioWorkflow(ArtifactWorkflow):
    kind = ArtifactKind.AUDIO

    def default_label(self, request: GenerationRequest) -> str:
        opts = request.options or AudioOptions()
        return opts.format or "deep-dive"

    def configure(self, request: GenerationRequest) -> bool:
        opts = request.options or AudioOptions()
        if opts.format:
            self.dialog.select_radio(AUDIO_FORMAT_LABELS[opts.format])
        if opts.language and opts.language != AUDIO_DEFAULT_LANGUAGE:
            self.dialog.select_dropdown("language", LANGUAGE_DISPLAY_NAMES.get(opts.language, opts.language))
        return super().configure(request)

    def on_open_failed(self, request: GenerationRequest) -> bool:
        self.log("customize dialog unavailable, trying direct audio generation")
        res = self.resolver.resolve(
            Target(
                name="audio generate",
                container=CREATE_CONTAINER_SELECTOR,
                container_label=CREATE_CONTAINER_LABELS[ArtifactKind.AUDIO],
                nested=f"button:not({EDIT_BUTTON_SELECTOR})",
            )
        )
        return res.acted


class VideoWorkflow(ArtifactWorkflow):
    kind = ArtifactKind.VIDEO

    def default_label(self, request: GenerationRequest) -> str:
        opts = request.options or VideoOptions()
        if opts.custom_theme:
            return "custom"
        return opts.theme or "corporate"

    def configure(self, request: GenerationRequest) -> bool:
        opts = request.options or VideoOptions()
        if opts.format:
            self.dialog.select_choice(VIDEO_FORMAT_LABELS[opts.format])
        if opts.custom_theme:
            if not self.dialog.fill_text(opts.custom_theme, hint="theme"):
                return False
        elif opts.theme:
            self.dialog.select_choice(VIDEO_THEME_LABELS[opts.theme])
        return super().configure(request)


class InfographicWorkflow(ArtifactWorkflow):
    kind = ArtifactKind.INFOGRAPHIC

    def default_label(self, request: GenerationRequest) -> str:
        opts = request.options or InfographicOptions()
        return opts.orientation or "landscape"

    def configure(self, request: GenerationRequest) -> bool:
        opts = request.options or InfographicOptions()
        if opts.orientation:
            self.dialog.select_choice(INFOGRAPHIC_ORIENTATION_LABELS[opts.orientation], toggle_first=True)
        if opts.detail:
            self.dialog.select_choice(INFOGRAPHIC_DETAIL_LABELS[opts.detail], toggle_first=True)
        return super().configure(request)


WORKFLOWS = {
    ArtifactKind.DECK: DeckWorkflow,
    ArtifactKind.AUDIO: AudioWorkflow,
    ArtifactKind.VIDEO: VideoWorkflow,
    ArtifactKind.INFOGRAPHIC: InfographicWorkflow,
}


class GenerationOrchestrator:
    """Single-request generation: trigger, wait for readiness, download."""

    def __init__(
        self,
        page: PageQuery,
        cfg: StudioConfig,
        *,
        clock: Optional[Clock] = None,
        log: Optional[Logger] = None,
    ) -> None:
        self.page = page
        self.cfg = cfg
        self.clock = clock or Clock()
        self.log: Logger = log or (lambda _m: None)
        self.resolver = ElementResolver(page, cfg, clock=self.clock, log=self.log)
        self.dialog = DialogController(page, cfg, resolver=self.resolver, clock=self.clock, log=self.log)
        self.monitor = ArtifactMonitor(page, cfg, clock=self.clock, log=self.log)
        self.downloads = DownloadPipeline(page, cfg, resolver=self.resolver, clock=self.clock, log=self.log)
        self._workflows: Dict[ArtifactKind, ArtifactWorkflow] = {
            kind: cls(self.dialog, self.resolver, self.log) for kind, cls in WORKFLOWS.items()
        }
        self.last_failure: Optional[str] = None

    def workflow(self, kind: ArtifactKind) -> ArtifactWorkflow:
        return self._workflows[ArtifactKind(kind)]

    def label_for(self, request: GenerationRequest) -> str:
        return self.workflow(request.kind).default_label(request)

    def _fail(self, stage: str, kind: ArtifactKind) -> None:
        self.last_failure = stage
        self.log(f"{ArtifactKind(kind).value}: failed at stage '{stage}'")

    def trigger(self, request: GenerationRequest) -> bool:
        """Open, verify, configure and submit one request; does not wait for the result."""
        self.last_failure = None
        stage = self.workflow(request.kind).trigger(request)
        if stage is not None:
            self._fail(stage, request.kind)
            return False
        self.log(f"{request.kind.value}: generation started ({self.label_for(request)})")
        return True

    def generate(self, request: GenerationRequest, prefix: Optional[str] = None) -> Optional[DownloadRecord]:
        kind = ArtifactKind(request.kind)
        initial = self.monitor.count(kind)
        self.log(f"initial {kind.value} count: {initial}")
        if not self.trigger(request):
            return None
        if not self.monitor.wait_until_new_artifact_ready(kind, initial):
            self._fail("ready", kind)
            return None
        record = self.downloads.download_latest(kind, prefix or self.label_for(request))
        if record is None:
            self._fail("download", kind)
        return record
