"""
Tests for batched generation: trigger phase, phased wait and positional downloads.
"""

import itertools
import os

import pytest

from studio import scripts
from studio.batch import BatchScheduler, batch_prefix
from studio.constants import MENU_ITEM_SELECTORS, ArtifactKind
from studio.errors import StudioError
from studio.models import BatchRun, GenerationRequest

from conftest import ACTED, FakeStudio

AUDIENCES = ["technical", "investor", "customer", "executive"]


def _deck_requests(audiences=AUDIENCES):
    return [GenerationRequest.build("deck", audience=a) for a in audiences]


def _scheduler(studio, cfg, clock):
    return BatchScheduler(studio, cfg, clock=clock)


class TestBatchRun:
    @pytest.mark.parametrize("failed", [set(), {0}, {1, 3}, {0, 1, 2, 3}])
    def test_expected_count_tracks_triggered(self, failed):
        reqs = _deck_requests()
        run = BatchRun(requests=reqs, started_at=0.0, initial_count=5, expected_count=5)
        for i, r in enumerate(reqs):
            if i not in failed:
                run.mark_triggered(r)
        assert len(run.triggered) <= len(run.requests)
        assert run.expected_count == run.initial_count + len(run.triggered)


def test_batch_prefix():
    assert batch_prefix(0, "investor") == "01_investor"
    assert batch_prefix(11, "brief") == "12_brief"


def test_mixed_kinds_rejected(page, cfg, clock):
    reqs = [GenerationRequest.build("deck"), GenerationRequest.build("audio")]
    with pytest.raises(StudioError) as err:
        BatchScheduler(page, cfg, clock=clock).run(reqs)
    assert err.value.code == "MIXED_BATCH"


def test_empty_batch(page, cfg, clock):
    assert BatchScheduler(page, cfg, clock=clock).run([]) == []
    assert page.calls == []


class TestScenario:
    def test_second_request_fails_to_open(self, cfg, clock):
        cfg.resolve_attempts = 1
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir, initial=2, generation_s=30)
        studio.fail_open_attempts = {2}
        scheduler = _scheduler(studio, cfg, clock)

        records = scheduler.run(_deck_requests())

        run = scheduler.last_run
        assert run.initial_count == 2
        assert [r.options.audience for r in run.triggered] == ["technical", "customer", "executive"]
        assert run.expected_count == 2 + 3
        assert len(records) <= 3
        assert [r.final_name for r in records] == [
            "01_technical_deck-2.pdf",
            "02_customer_deck-3.pdf",
            "03_executive_deck-4.pdf",
        ]

    def test_settle_delay_between_triggers(self, cfg, clock):
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir)
        _scheduler(studio, cfg, clock).run(_deck_requests(["technical", "investor", "customer"]))
        assert clock.sleeps.count(cfg.batch_settle_s) >= 2

    def test_nothing_triggered_skips_wait(self, cfg, clock):
        cfg.resolve_attempts = 1
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir)
        studio.fail_open_attempts = {1, 2}
        scheduler = _scheduler(studio, cfg, clock)
        assert scheduler.run(_deck_requests(["technical", "investor"])) == []
        assert studio.calls_for(scripts.STATUS_SCRIPT) == []
        assert scheduler.last_run.expected_count == scheduler.last_run.initial_count


class TestWaitPhase:
    def test_refresh_cycles_reload_and_regate(self, cfg, clock):
        cfg.timeouts[ArtifactKind.DECK] = 60
        cfg.batch_initial_wait_s = 20
        cfg.batch_refresh_wait_s = 18
        cfg.batch_refresh_cycles = 2
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir, generation_s=35)
        scheduler = _scheduler(studio, cfg, clock)
        records = scheduler.run(_deck_requests(["technical"]))
        assert studio.reloads == 1
        assert len(studio.calls_for(scripts.APP_READY_SCRIPT)) >= 1
        assert len(records) == 1

    def test_hard_ceiling_caps_cycles(self, cfg, clock):
        cfg.timeouts[ArtifactKind.DECK] = 60
        cfg.batch_initial_wait_s = 50
        cfg.batch_refresh_wait_s = 30
        cfg.batch_refresh_cycles = 10
        cfg.batch_max_wait_s = 120
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir, generation_s=10_000)
        scheduler = _scheduler(studio, cfg, clock)
        start = {}
        studio.on(scripts.STATUS_SCRIPT, _recording_status(studio, start, clock))

        records = scheduler.run(_deck_requests(["technical", "investor"]))

        assert records == []
        assert studio.reloads < 10
        assert start["last"] - start["first"] <= 120
        assert scheduler.last_status.loading == 2

    def test_still_loading_positions_are_skipped(self, cfg, clock):
        cfg.batch_initial_wait_s = 40
        cfg.batch_refresh_cycles = 0
        studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir, generation_s=20)
        scheduler = _scheduler(studio, cfg, clock)
        slow = {"done": False}

        def second_is_slow(c):
            if not slow["done"] and len(studio.items) == 2:
                studio.items[1]["ready_at"] = 10_000
                slow["done"] = True

        clock.on_sleep.append(second_is_slow)
        records = scheduler.run(_deck_requests(["technical", "investor"]))
        assert [r.final_name for r in records] == ["01_technical_deck-0.pdf"]


def _recording_status(studio, seen, clock):
    base = studio.handlers[scripts.STATUS_SCRIPT]

    def handler(a):
        seen.setdefault("first", clock.now())
        seen["last"] = clock.now()
        return base(a)

    return handler


def test_error_at_one_position_does_not_abort(cfg, clock):
    studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir, generation_s=5)
    scheduler = _scheduler(studio, cfg, clock)
    base = studio.handlers[scripts.SELECTOR_SCRIPT]
    more_calls = itertools.count()

    def selector(a):
        if a.get("scope") and a["scope"]["index"] == 0 and next(more_calls) == 0:
            raise StudioError(code="EVALUATE_FAILED", stage="evaluate", message="flaky")
        return base(a)

    studio.on(scripts.SELECTOR_SCRIPT, selector)
    records = scheduler.run(_deck_requests(["technical", "investor"]))
    assert [r.final_name for r in records] == ["02_investor_deck-1.pdf"]


def test_late_download_is_not_renamed_after_the_next_request(cfg, clock):
    cfg.download_timeout_s = 5
    studio = FakeStudio(ArtifactKind.DECK, clock, out_dir=cfg.output_dir, generation_s=5)
    base = studio.handlers[scripts.SELECTOR_SCRIPT]
    pending = []

    def selector(a):
        if a.get("selectors") == MENU_ITEM_SELECTORS and studio.menu_for is not None:
            i, studio.menu_for = studio.menu_for, None
            final = os.path.join(cfg.output_dir, f"deck-{i}.pdf")
            part = final + ".crdownload"
            with open(part, "wb") as f:
                f.write(b"x" * 64)
            # the first download outlives its timeout, the second is quick
            pending.append((clock.now() + (7 if i == 0 else 3), part, final))
            return ACTED
        return base(a)

    def land(c):
        for item in list(pending):
            due, part, final = item
            if c.now() >= due:
                os.replace(part, final)
                pending.remove(item)

    studio.on(scripts.SELECTOR_SCRIPT, selector)
    clock.on_sleep.append(land)
    records = _scheduler(studio, cfg, clock).run(_deck_requests(["technical", "investor"]))

    assert [(r.suggested_name, r.final_name) for r in records] == [("deck-1.pdf", "02_investor_deck-1.pdf")]
    assert os.path.exists(os.path.join(cfg.output_dir, "deck-0.pdf"))
