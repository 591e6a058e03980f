"""
Tests for per-kind workflows and the single-request orchestrator.
"""

import os

import pytest

from studio import scripts
from studio.constants import CREATE_CONTAINER_LABELS, DECK_AUDIENCE_PROMPTS, ArtifactKind
from studio.errors import StudioError
from studio.models import GenerationRequest
from studio.workflows import GenerationOrchestrator

from conftest import ACTED, FakeStudio


def _orchestrator(studio, cfg, clock):
    return GenerationOrchestrator(studio, cfg, clock=clock)


class TestGenerate:
    def test_deck_end_to_end(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir, initial=2, generation_s=7.0)
        orch = _orchestrator(studio, cfg, clock)
        record = orch.generate(GenerationRequest.build("deck", audience="investor"))
        assert record is not None
        assert record.kind == ArtifactKind.DECK
        assert record.final_name == "investor_deck-2.pdf"
        assert os.path.exists(record.path)
        assert orch.last_failure is None
        assert studio.filled == [{"text": DECK_AUDIENCE_PROMPTS["investor"], "hint": ""}]

    def test_explicit_prefix_wins(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir)
        record = _orchestrator(studio, cfg, clock).generate(GenerationRequest.build("deck"), prefix="launch plan")
        assert record.final_name == "launch_plan_deck-0.pdf"

    def test_open_failure_short_circuits(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir)
        studio.fail_open_attempts = {1, 2, 3}
        orch = _orchestrator(studio, cfg, clock)
        assert orch.generate(GenerationRequest.build("deck")) is None
        assert orch.last_failure == "open"
        assert len(studio.calls_for(scripts.COUNT_SCRIPT)) == 1

    def test_generation_timeout_is_ready_failure(self, cfg, clock):
        cfg.timeouts[ArtifactKind.VIDEO] = 20
        studio = FakeStudio(ArtifactKind.VIDEO, clock, out_dir=cfg.output_dir, generation_s=1000)
        orch = _orchestrator(studio, cfg, clock)
        assert orch.generate(GenerationRequest.build("video", theme="minimal")) is None
        assert orch.last_failure == "ready"
        assert clock.now() >= 20

    def test_download_failure(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=None)
        orch = _orchestrator(studio, cfg, clock)
        assert orch.generate(GenerationRequest.build("deck")) is None
        assert orch.last_failure == "download"

    def test_page_errors_propagate(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock)

        def broken(a):
            raise StudioError(code="EVALUATE_FAILED", stage="evaluate", message="gone")

        studio.on(scripts.COUNT_SCRIPT, broken)
        with pytest.raises(StudioError):
            _orchestrator(studio, cfg, clock).generate(GenerationRequest.build("deck"))


class TestConfigure:
    def test_technical_deck_writes_no_prompt(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock)
        assert _orchestrator(studio, cfg, clock).trigger(GenerationRequest.build("deck", format="presenter", length="short"))
        assert studio.selected == ["presenter", "short"]
        assert studio.filled == []

    def test_prompt_override_replaces_audience_prompt(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock)
        req = GenerationRequest.build("deck", audience="beginner", prompt_override="Focus on chapter 2")
        assert _orchestrator(studio, cfg, clock).trigger(req)
        assert studio.filled == [{"text": "Focus on chapter 2", "hint": ""}]

    def test_video_custom_theme(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.VIDEO, clock)
        orch = _orchestrator(studio, cfg, clock)
        req = GenerationRequest.build("video", format="brief", custom_theme="paper cutout", theme="retro-90s")
        assert orch.trigger(req)
        assert studio.selected == ["brief"]
        assert studio.filled == [{"text": "paper cutout", "hint": "theme"}]
        assert orch.label_for(req) == "custom"

    def test_infographic_prefers_toggles(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.INFOGRAPHIC, clock)
        assert _orchestrator(studio, cfg, clock).trigger(
            GenerationRequest.build("infographic", orientation="portrait", detail="concise")
        )
        tags = [a["tags"] for a in studio.calls_for(scripts.TEXT_SCRIPT) if a["texts"] != ["generate"]]
        assert tags[:2] == ["mat-button-toggle", "mat-button-toggle"]
        assert studio.selected == ["portrait", "concise"]

    def test_audio_language_dropdown(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.AUDIO, clock)
        studio.on(scripts.STRUCTURAL_SCRIPT, lambda a: ACTED)
        picked = []
        base_text = studio.handlers[scripts.TEXT_SCRIPT]

        def text(a):
            if "mat-option" in a["tags"]:
                picked.append(a["texts"])
                return ACTED
            return base_text(a)

        studio.on(scripts.TEXT_SCRIPT, text)
        assert _orchestrator(studio, cfg, clock).trigger(GenerationRequest.build("audio", language="ja-JP"))
        assert picked == [["Japanese"]]

    def test_failed_prompt_fails_configure_and_closes(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock)
        studio.on(scripts.FILL_TEXT_SCRIPT, lambda a: {"status": "missing", "detail": "no textarea"})
        orch = _orchestrator(studio, cfg, clock)
        assert orch.trigger(GenerationRequest.build("deck", audience="executive")) is False
        assert orch.last_failure == "configure"
        assert studio.dialog_text is None


class TestAudioDirectFallback:
    def test_direct_generate_when_customize_missing(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.AUDIO, clock, out_dir=cfg.output_dir, download_ext=".wav")
        studio.fail_open_attempts = {1, 2, 3}

        def direct(a):
            if a["containerLabel"] == CREATE_CONTAINER_LABELS[ArtifactKind.AUDIO] and a["nested"].startswith("button:not("):
                studio.add_item("Audio", clock.now() + 30)
                return ACTED
            return {"status": "missing", "detail": ""}

        studio.on(scripts.STRUCTURAL_SCRIPT, direct)
        orch = _orchestrator(studio, cfg, clock)
        record = orch.generate(GenerationRequest.build("audio"))
        assert record is not None
        assert record.final_name == "deep-dive_audio-0.wav"

    def test_other_kinds_have_no_fallback(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.VIDEO, clock)
        studio.fail_open_attempts = {1, 2, 3}
        orch = _orchestrator(studio, cfg, clock)
        assert orch.trigger(GenerationRequest.build("video")) is False
        assert orch.last_failure == "open"


@pytest.mark.parametrize(
    "request_kwargs,label",
    [
        ({"kind": "deck"}, "technical"),
        ({"kind": "deck", "audience": "customer"}, "customer"),
        ({"kind": "audio"}, "deep-dive"),
        ({"kind": "audio", "format": "debate"}, "debate"),
        ({"kind": "video"}, "corporate"),
        ({"kind": "video", "theme": "futuristic"}, "futuristic"),
        ({"kind": "infographic"}, "landscape"),
        ({"kind": "infographic", "orientation": "square"}, "square"),
    ],
)
def test_default_labels(page, cfg, clock, request_kwargs, label):
    orch = GenerationOrchestrator(page, cfg, clock=clock)
    assert orch.label_for(GenerationRequest.build(**request_kwargs)) == label
