"""
studio.runner
End-to-end entry: open the notebook, wait for the app, run one request
through the orchestrator or several through the batch scheduler.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from browser.env import PageQuery, configure_downloads, make_env

from .batch import BatchScheduler
from .config import StudioConfig
from .constants import STUDIO_URL, ArtifactKind
from .errors import StudioError
from .log import Logger, make_logger
from .models import DownloadRecord, GenerationRequest
from .polling import Clock
from .session import check_run_mode, wait_until_ready
from .workflows import GenerationOrchestrator


@dataclass
class RunResult:
    kind: Optional[ArtifactKind]
    artifacts: List[DownloadRecord] = field(default_factory=list)
    took_s: float = 0.0
    ready: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.artifacts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value if self.kind else None,
            "artifacts": [a.to_dict() for a in self.artifacts],
            "took_s": self.took_s,
            "ready": self.ready,
            "error": self.error,
        }


def run_on_page(
    page: PageQuery,
    requests: Sequence[GenerationRequest],
    cfg: StudioConfig,
    *,
    clock: Optional[Clock] = None,
    log: Optional[Logger] = None,
) -> RunResult:
    """Run requests against an already opened page (raises StudioError when the app never loads)."""
    _log: Logger = log or make_logger("studio", verbose=cfg.verbose)
    clock = clock or Clock()
    if not requests:
        return RunResult(kind=None, ready=False, error="no requests")
    t0 = clock.now()
    kind = BatchScheduler.batch_kind(requests) if len(requests) > 1 else ArtifactKind(requests[0].kind)
    if not wait_until_ready(page, cfg, clock=clock, log=_log):
        raise StudioError(
            code="PAGE_NOT_READY",
            stage="ready",
            message=f"notebook did not load within {int(cfg.page_ready_timeout_s)}s; check the URL and that the browser is signed in",
        )
    orchestrator = GenerationOrchestrator(page, cfg, clock=clock, log=_log)
    if len(requests) == 1:
        record = orchestrator.generate(requests[0])
        artifacts = [record] if record is not None else []
        error = None if record is not None else f"failed at stage '{orchestrator.last_failure}'"
    else:
        scheduler = BatchScheduler(page, cfg, orchestrator=orchestrator, clock=clock, log=_log)
        artifacts = scheduler.run(requests)
        error = None if artifacts else "no artifact downloaded"
    return RunResult(kind=kind, artifacts=artifacts, took_s=clock.now() - t0, ready=True, error=error)


def run_studio(
    url: Optional[str],
    requests: Sequence[GenerationRequest],
    config: Optional[StudioConfig] = None,
    mode: str = "existing",
    *,
    headless: bool = False,
    user_data_dir: Optional[str] = None,
    log: Optional[Logger] = None,
) -> RunResult:
    """Open the notebook in a Playwright browser and run the requests.

    mode="existing": ``url`` is the notebook to use (required).
    mode="new": open ``url`` or the studio home page; the readiness gate then
    waits for a notebook to be opened in the browser window.
    """
    cfg = (config or StudioConfig.from_env()).validate()
    m = check_run_mode(mode, url)
    target = (url or "").strip() or STUDIO_URL
    _log: Logger = log or make_logger("studio", verbose=cfg.verbose)
    t0 = time.perf_counter()
    with make_env(target, headless=headless, user_data_dir=user_data_dir) as env:
        _log(f"mode={m} url={env.current_url()}")
        configure_downloads(env.raw, cfg.output_dir, _log, default_context=env.default_context)
        result = run_on_page(env, requests, cfg, log=_log)
    result.took_s = time.perf_counter() - t0
    return result
