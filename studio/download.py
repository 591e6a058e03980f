"""
studio.download
Turn a rendered artifact into a verified local file.

Flow: open the artifact's overflow ("more") menu, click its download item,
then watch the output directory until a new, fully written file appears and
rename it. Nothing here raises for "not found" or "timed out"; those return
None and are logged.
"""

from __future__ import annotations

import os
import re
from typing import Optional, Set

from browser.env import PageQuery

from .config import StudioConfig
from .constants import (
    ARTIFACT_CONTAINER_SELECTOR,
    ARTIFACT_SELECTORS,
    DEFAULT_EXTENSIONS,
    DOWNLOAD_KEYWORD,
    MENU_ITEM_SELECTORS,
    MENU_ITEM_TAGS,
    MORE_BUTTON_SELECTORS,
    PARTIAL_DOWNLOAD_SUFFIXES,
    ArtifactKind,
)
from .log import Logger
from .models import DownloadRecord
from .polling import Clock, poll_until
from .resolver import ElementResolver, Scope, Target

_EXT_RE = re.compile(r"^\.[A-Za-z0-9]{1,5}$")


def format_filename(suggested: str, prefix: Optional[str], kind: ArtifactKind) -> str:
    """``{prefix_}{name}{ext}``: a plausible extension is kept, otherwise the kind's default.

    Applying it twice with the same prefix returns the same name. The check
    is textual: a suggested name that already starts with ``{prefix}_``
    (``investor_notes.pdf`` for prefix ``investor``) is left unprefixed.
    """
    name = os.path.basename(suggested or "").strip()
    base, ext = os.path.splitext(name)
    if not _EXT_RE.match(ext or ""):
        base, ext = name, DEFAULT_EXTENSIONS[ArtifactKind(kind)]
    base = base or ArtifactKind(kind).value
    p = re.sub(r"\s+", "_", (prefix or "").strip())
    if p and not base.startswith(f"{p}_"):
        base = f"{p}_{base}"
    return f"{base}{ext}"


def is_partial(name: str) -> bool:
    low = name.lower()
    return name.startswith(".") or any(low.endswith(s) for s in PARTIAL_DOWNLOAD_SUFFIXES)


def strip_partial(name: str) -> str:
    """Final name of an in-progress download (``deck.pdf.crdownload`` -> ``deck.pdf``)."""
    low = name.lower()
    for suffix in PARTIAL_DOWNLOAD_SUFFIXES:
        if low.endswith(suffix):
            return name[: -len(suffix)]
    return name


def _unique_path(directory: str, name: str) -> str:
    path = os.path.join(directory, name)
    if not os.path.exists(path):
        return path
    base, ext = os.path.splitext(name)
    n = 1
    while os.path.exists(os.path.join(directory, f"{base}-{n}{ext}")):
        n += 1
    return os.path.join(directory, f"{base}-{n}{ext}")


class DownloadPipeline:
    def __init__(
        self,
        page: PageQuery,
        cfg: StudioConfig,
        *,
        resolver: Optional[ElementResolver] = None,
        clock: Optional[Clock] = None,
        log: Optional[Logger] = None,
    ) -> None:
        self.page = page
        self.cfg = cfg
        self.clock = clock or Clock()
        self.log: Logger = log or (lambda _m: None)
        self.resolver = resolver or ElementResolver(page, cfg, clock=self.clock, log=self.log)
        self.output_dir = os.path.abspath(cfg.output_dir)
        # files of downloads that timed out; they must not be claimed by a later download
        self.abandoned: Set[str] = set()

    def prepare(self) -> str:
        os.makedirs(self.output_dir, exist_ok=True)
        return self.output_dir

    def listing(self) -> Set[str]:
        try:
            return set(os.listdir(self.output_dir))
        except FileNotFoundError:
            return set()

    # Trigger --------------------------------------------------------------

    def more_targets(self, kind: ArtifactKind, index: int):
        selector = ARTIFACT_SELECTORS[ArtifactKind(kind)]
        return [
            Target(
                name="more menu",
                selectors=list(MORE_BUTTON_SELECTORS),
                scope=Scope(selector, index, closest=ARTIFACT_CONTAINER_SELECTOR),
            ),
            Target(
                name="more menu (parent)",
                selectors=list(MORE_BUTTON_SELECTORS),
                reveal=list(MORE_BUTTON_SELECTORS),
                scope=Scope(selector, index, closest=ARTIFACT_CONTAINER_SELECTOR, parent=True),
            ),
        ]

    def trigger(self, kind: ArtifactKind, index: int = -1) -> bool:
        opened = False
        for target in self.more_targets(kind, index):
            if self.resolver.resolve(target).acted:
                opened = True
                break
        if not opened:
            self.log(f"more button for {ArtifactKind(kind).value}[{index}] not found")
            return False
        self.clock.sleep(self.cfg.menu_settle_s)
        res = self.resolver.resolve_with_retry(
            Target(
                name="download menu item",
                selectors=list(MENU_ITEM_SELECTORS),
                texts=[DOWNLOAD_KEYWORD],
                text_tags=MENU_ITEM_TAGS,
            )
        )
        if not res.acted:
            self.log("download item not found in menu")
            return False
        self.log("download triggered")
        return True

    # Completion -----------------------------------------------------------

    def _stable(self, path: str) -> bool:
        try:
            before = os.path.getsize(path)
            if before <= 0:
                return False
            self.clock.sleep(self.cfg.stability_delay_s)
            return os.path.getsize(path) == before
        except OSError:
            return False

    def await_completion(self, baseline: Set[str], timeout: Optional[float] = None) -> Optional[str]:
        """Path of the first new, complete and size-stable file; None on timeout."""
        timeout_s = self.cfg.download_timeout_s if timeout is None else float(timeout)

        seen = set(baseline)

        def _check() -> Optional[str]:
            for name in sorted(self.listing() - seen):
                if is_partial(name):
                    continue
                if name in self.abandoned:
                    # an earlier download that finished late; skip it once
                    self.abandoned.discard(name)
                    seen.add(name)
                    self.log(f"skipping late file {name}")
                    continue
                path = os.path.join(self.output_dir, name)
                if os.path.isfile(path) and self._stable(path):
                    return path
            return None

        result = poll_until(
            _check,
            interval_s=self.cfg.download_poll_s,
            timeout_s=timeout_s,
            clock=self.clock,
            on_progress=lambda elapsed, _v: self.log(f"waiting for download... ({int(elapsed)}s)"),
            progress_every_s=self.cfg.progress_every_s,
        )
        if not result.ok:
            late = self.listing() - seen
            self.abandoned.update(late)
            self.abandoned.update(strip_partial(n) for n in late)
            self.log(f"download did not complete within {int(timeout_s)}s")
            if late:
                self.log(f"ignoring late files of this download: {sorted(late)}")
            return None
        return result.value

    def finalize(self, path: str, prefix: Optional[str], kind: ArtifactKind) -> DownloadRecord:
        suggested = os.path.basename(path)
        final = format_filename(suggested, prefix, kind)
        target = path
        if final != suggested:
            target = _unique_path(os.path.dirname(path), final)
            try:
                os.replace(path, target)
            except OSError as e:
                self.log(f"rename {suggested} -> {final} failed: {e}")
                target = path
        record = DownloadRecord(
            suggested_name=suggested,
            final_name=os.path.basename(target),
            path=target,
            kind=ArtifactKind(kind),
        )
        self.log(f"saved {record.final_name}")
        return record

    def download_at(self, kind: ArtifactKind, index: int, prefix: Optional[str] = None) -> Optional[DownloadRecord]:
        self.prepare()
        baseline = self.listing()
        if not self.trigger(kind, index):
            return None
        path = self.await_completion(baseline)
        if path is None:
            return None
        return self.finalize(path, prefix, kind)

    def download_latest(self, kind: ArtifactKind, prefix: Optional[str] = None) -> Optional[DownloadRecord]:
        return self.download_at(kind, -1, prefix)
