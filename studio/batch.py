"""
studio.batch
Several generations of one kind: trigger them back to back, wait for all of
them under one phased budget, then download them by position.

Phases:
  1) trigger   requests in order, a settle delay between them
  2) wait      initial window; then up to N "reload, readiness gate, wait
               again" cycles; a hard ceiling bounds the total
  3) download  positions initial_count .. initial_count+len(triggered)-1,
               named NN_label after the triggered request at that position
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from browser.env import PageQuery

from .config import StudioConfig
from .constants import ArtifactKind
from .errors import StudioError
from .log import Logger
from .models import ArtifactStatus, BatchRun, DownloadRecord, GenerationRequest
from .polling import Clock
from .session import wait_until_ready
from .workflows import GenerationOrchestrator


def batch_prefix(position: int, label: str) -> str:
    return f"{position + 1:02d}_{label}"


class BatchScheduler:
    def __init__(
        self,
        page: PageQuery,
        cfg: StudioConfig,
        *,
        orchestrator: Optional[GenerationOrchestrator] = None,
        clock: Optional[Clock] = None,
        log: Optional[Logger] = None,
    ) -> None:
        self.page = page
        self.cfg = cfg
        self.clock = clock or Clock()
        self.log: Logger = log or (lambda _m: None)
        self.orchestrator = orchestrator or GenerationOrchestrator(page, cfg, clock=self.clock, log=self.log)
        self.last_run: Optional[BatchRun] = None
        self.last_status: Optional[ArtifactStatus] = None

    @property
    def monitor(self):
        return self.orchestrator.monitor

    @staticmethod
    def batch_kind(requests: Sequence[GenerationRequest]) -> ArtifactKind:
        kinds = {ArtifactKind(r.kind) for r in requests}
        if len(kinds) != 1:
            raise StudioError(
                code="MIXED_BATCH",
                stage="batch",
                message=f"a batch must contain one artifact kind, got: {sorted(k.value for k in kinds)}",
            )
        return kinds.pop()

    # Phase 1 --------------------------------------------------------------

    def trigger_all(self, run: BatchRun) -> None:
        total = len(run.requests)
        for i, request in enumerate(run.requests):
            if i > 0:
                self.clock.sleep(self.cfg.batch_settle_s)
            label = self.orchestrator.label_for(request)
            self.log(f"[{i + 1}/{total}] triggering {request.kind.value} ({label})")
            if self.orchestrator.trigger(request):
                run.mark_triggered(request)
            else:
                self.log(f"[{i + 1}/{total}] trigger failed at '{self.orchestrator.last_failure}', skipping")
        self.log(
            f"triggered {len(run.triggered)}/{total}; expecting {run.expected_count} items "
            f"(initial {run.initial_count})"
        )

    # Phase 2 --------------------------------------------------------------

    def wait_all(self, run: BatchRun, kind: ArtifactKind) -> ArtifactStatus:
        ceiling = self.cfg.batch_max_wait_for(kind)
        start = self.clock.now()

        def remaining() -> float:
            return ceiling - (self.clock.now() - start)

        def done(st: ArtifactStatus) -> bool:
            return st.total >= run.expected_count and st.loading == 0

        window = min(self.cfg.batch_initial_wait_for(kind), remaining())
        status = self.monitor.wait_until_all_ready(kind, run.expected_count, window)
        cycle = 0
        while not done(status) and cycle < self.cfg.batch_refresh_cycles and remaining() > 0:
            cycle += 1
            self.log(
                f"refresh {cycle}/{self.cfg.batch_refresh_cycles}: {status.ready}/{run.expected_count} ready, "
                f"{status.loading} loading; reloading page"
            )
            self.page.reload()
            wait_until_ready(
                self.page,
                self.cfg,
                clock=self.clock,
                log=self.log,
                timeout=min(self.cfg.page_ready_timeout_s, max(0.0, remaining())),
            )
            if remaining() <= 0:
                break
            window = min(self.cfg.batch_refresh_wait_for(kind), remaining())
            status = self.monitor.wait_until_all_ready(kind, run.expected_count, window)
        if done(status):
            self.log(f"all {status.total} {kind.value} items ready")
        else:
            self.log(f"batch wait ended: {status.ready} ready, {status.loading} loading of {run.expected_count}")
        return status

    # Phase 3 --------------------------------------------------------------

    def download_all(self, run: BatchRun, kind: ArtifactKind) -> List[DownloadRecord]:
        records: List[DownloadRecord] = []
        total = self.monitor.count(kind)
        n = len(run.triggered)
        for pos, request in enumerate(run.triggered):
            index = run.initial_count + pos
            tag = f"[{pos + 1}/{n}]"
            if index >= total:
                self.log(f"{tag} no item at position {index}, skipping")
                continue
            if self.monitor.is_loading(kind, index):
                self.log(f"{tag} still loading, skipping")
                continue
            prefix = batch_prefix(pos, self.orchestrator.label_for(request))
            try:
                record = self.orchestrator.downloads.download_at(kind, index, prefix)
            except (StudioError, OSError) as e:
                self.log(f"{tag} download failed: {e}")
                record = None
            if record is not None:
                records.append(record)
            if pos + 1 < n:
                self.clock.sleep(self.cfg.between_downloads_s)
        return records

    # Entry ----------------------------------------------------------------

    def run(self, requests: Sequence[GenerationRequest]) -> List[DownloadRecord]:
        if not requests:
            return []
        kind = self.batch_kind(requests)
        initial = self.monitor.count(kind)
        run = BatchRun(
            requests=list(requests),
            started_at=self.clock.now(),
            initial_count=initial,
            expected_count=initial,
        )
        self.last_run = run
        self.log(f"batch of {len(run.requests)} {kind.value} requests (initial count {initial})")
        self.trigger_all(run)
        if not run.triggered:
            self.log("nothing was triggered")
            return []
        self.last_status = self.wait_all(run, kind)
        self.orchestrator.downloads.prepare()
        records = self.download_all(run, kind)
        self.log(f"batch finished: {len(records)}/{len(run.triggered)} downloaded")
        return records
