"""
studio.monitor
Count rendered artifacts of a kind and classify each as loading or ready.

There is no completion event: an item is "ready" when none of its loading
signals (shimmer class, disabled control, "generating" title, rotating icon)
is present on a poll.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from browser.env import PageQuery

from . import scripts
from .config import StudioConfig
from .constants import (
    ARTIFACT_CONTAINER_SELECTOR,
    ARTIFACT_SELECTORS,
    ARTIFACT_TITLE_SELECTOR,
    GENERATING_MARKER,
    ROTATING_ICON_SELECTOR,
    SHIMMER_CLASS_PREFIX,
    ArtifactKind,
)
from .log import Logger
from .models import Artifact, ArtifactStatus, LoadingSignals
from .polling import Clock, poll_until


def _signal_arg(kind: ArtifactKind) -> Dict[str, Any]:
    return {
        "selector": ARTIFACT_SELECTORS[ArtifactKind(kind)],
        "container": ARTIFACT_CONTAINER_SELECTOR,
        "title": ARTIFACT_TITLE_SELECTOR,
        "icon": ROTATING_ICON_SELECTOR,
        "shimmer": SHIMMER_CLASS_PREFIX,
        "marker": GENERATING_MARKER,
    }


def aggregate_status(items: Optional[List[Dict[str, Any]]]) -> ArtifactStatus:
    items = items or []
    loading = sum(1 for it in items if LoadingSignals.from_dict(it).loading)
    return ArtifactStatus(total=len(items), loading=loading, ready=len(items) - loading)


class ArtifactMonitor:
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

    def count(self, kind: ArtifactKind) -> int:
        raw = self.page.evaluate(scripts.COUNT_SCRIPT, {"selector": ARTIFACT_SELECTORS[ArtifactKind(kind)]})
        try:
            return int(raw or 0)
        except (TypeError, ValueError):
            return 0

    def _raw_signals(self, kind: ArtifactKind, index: int) -> Optional[Dict[str, Any]]:
        raw = self.page.evaluate(scripts.SIGNALS_SCRIPT, {**_signal_arg(kind), "index": int(index)})
        return raw if isinstance(raw, dict) else None

    def signals(self, kind: ArtifactKind, index: int = -1) -> Optional[LoadingSignals]:
        """Loading signals of one item, or None when there is no item at ``index``."""
        raw = self._raw_signals(kind, index)
        return LoadingSignals.from_dict(raw) if raw is not None else None

    def is_loading(self, kind: ArtifactKind, index: int = -1) -> bool:
        sig = self.signals(kind, index)
        return bool(sig and sig.loading)

    def artifact(self, kind: ArtifactKind, index: int = -1) -> Optional[Artifact]:
        raw = self._raw_signals(kind, index)
        if raw is None:
            return None
        if index < 0:
            index = self.count(kind) + index
        return Artifact(
            kind=ArtifactKind(kind),
            index=index,
            title=str(raw.get("title") or ""),
            loading=LoadingSignals.from_dict(raw).loading,
        )

    def status(self, kind: ArtifactKind) -> ArtifactStatus:
        raw = self.page.evaluate(scripts.STATUS_SCRIPT, _signal_arg(kind))
        return aggregate_status(raw if isinstance(raw, list) else None)

    def wait_until_new_artifact_ready(
        self, kind: ArtifactKind, initial_count: int, timeout: Optional[float] = None
    ) -> bool:
        """True iff, at some poll, a new item exists and the last item is not loading."""
        kind = ArtifactKind(kind)
        timeout_s = self.cfg.timeout_for(kind) if timeout is None else float(timeout)
        seen: Dict[str, int] = {"count": initial_count}

        def _check() -> bool:
            n = self.count(kind)
            seen["count"] = n
            if n <= initial_count:
                return False
            return not self.is_loading(kind, -1)

        def _progress(elapsed: float, _value: Any) -> None:
            if seen["count"] > initial_count:
                self.log(f"{kind.value} generating... ({int(elapsed)}s)")
            else:
                self.log(f"waiting for {kind.value} to appear... ({int(elapsed)}s)")

        self.log(f"waiting for {kind.value} (initial count {initial_count}, timeout {int(timeout_s)}s)")
        result = poll_until(
            _check,
            interval_s=self.cfg.poll_interval_s,
            timeout_s=timeout_s,
            clock=self.clock,
            on_progress=_progress,
            progress_every_s=self.cfg.progress_every_s,
        )
        if result.ok:
            self.log(f"{kind.value} ready (took ~{int(result.elapsed_s)}s)")
        else:
            self.log(f"{kind.value} not ready after {int(timeout_s)}s")
        return result.ok

    def wait_until_all_ready(self, kind: ArtifactKind, expected: int, timeout: float) -> ArtifactStatus:
        """Poll until ``expected`` items exist and none is loading; returns the last status."""
        kind = ArtifactKind(kind)
        last: Dict[str, ArtifactStatus] = {"status": ArtifactStatus()}

        def _check() -> bool:
            st = self.status(kind)
            last["status"] = st
            return st.total >= expected and st.loading == 0

        def _progress(elapsed: float, _value: Any) -> None:
            st = last["status"]
            self.log(f"{kind.value}: {st.ready}/{expected} ready, {st.loading} loading ({int(elapsed)}s)")

        poll_until(
            _check,
            interval_s=self.cfg.poll_interval_s,
            timeout_s=timeout,
            clock=self.clock,
            on_progress=_progress,
            progress_every_s=self.cfg.progress_every_s,
        )
        return last["status"]
