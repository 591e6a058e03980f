"""
Shared fakes: a scripted page, a virtual clock and a small simulated studio.

Scripts are routed by identity against the constants in ``studio.scripts``,
so no browser is needed and every poll loop runs in virtual time.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from studio import scripts
from studio.config import StudioConfig
from studio.constants import (
    EDIT_SELECTORS,
    MENU_ITEM_SELECTORS,
    MORE_BUTTON_SELECTORS,
    OVERLAY_BACKDROP_SELECTOR,
    RADIO_SELECTOR,
    TOGGLE_SELECTOR,
    ArtifactKind,
)

ACTED = {"status": "acted", "detail": "fake"}
MISSING = {"status": "missing", "detail": "fake"}
INACTIVE = {"status": "inactive", "detail": "fake"}


class FakeClock:
    """Virtual monotonic clock; ``sleep`` advances time and runs hooks."""

    def __init__(self, start: float = 0.0) -> None:
        self.t = float(start)
        self.sleeps: List[float] = []
        self.on_sleep: List[Callable[["FakeClock"], None]] = []

    def now(self) -> float:
        return self.t

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += max(0.0, float(seconds))
        for hook in list(self.on_sleep):
            hook(self)


class FakePage:
    """PageQuery whose scripts are answered by per-script handlers."""

    def __init__(self, url: str = "https://notebook.test/notebook/abc") -> None:
        self.url = url
        self.handlers: Dict[str, Callable[[Any], Any]] = {}
        self.calls: List[Tuple[str, Any]] = []
        self.reloads = 0

    def on(self, script: str, handler: Callable[[Any], Any]) -> "FakePage":
        self.handlers[script] = handler
        return self

    def evaluate(self, script: str, arg: Any = None) -> Any:
        self.calls.append((script, arg))
        handler = self.handlers.get(script)
        if handler is None:
            return self.default(script, arg)
        return handler(arg)

    def default(self, script: str, arg: Any) -> Any:
        if script in (scripts.SELECTOR_SCRIPT, scripts.TEXT_SCRIPT, scripts.STRUCTURAL_SCRIPT, scripts.HOVER_SCRIPT):
            return MISSING
        return None

    def calls_for(self, script: str) -> List[Any]:
        return [arg for s, arg in self.calls if s == script]

    def reload(self) -> None:
        self.reloads += 1

    def current_url(self) -> str:
        return self.url


class FakeStudio(FakePage):
    """Simulated studio page for one artifact kind.

    - open attempts listed in ``fail_open_attempts`` (1-based) find nothing
    - submitting adds an item that stays loading for ``generation_s``
    - the download menu item writes ``<kind>-<index><ext>`` into ``out_dir``
    """

    def __init__(
        self,
        kind: ArtifactKind,
        clock: FakeClock,
        *,
        out_dir: Optional[str] = None,
        initial: int = 0,
        generation_s: float = 10.0,
        download_ext: str = ".pdf",
    ) -> None:
        super().__init__()
        self.kind = ArtifactKind(kind)
        self.clock = clock
        self.out_dir = out_dir
        self.generation_s = generation_s
        self.download_ext = download_ext
        self.items: List[Dict[str, Any]] = [{"title": f"Existing {i + 1}", "ready_at": -1.0} for i in range(initial)]
        self.dialog_text: Optional[str] = None
        self.open_attempts = 0
        self.fail_open_attempts: set = set()
        self.selected: List[str] = []
        self.filled: List[Dict[str, Any]] = []
        self.menu_for: Optional[int] = None
        self.ready = True
        self.on(scripts.SELECTOR_SCRIPT, self._selector)
        self.on(scripts.TEXT_SCRIPT, self._text)
        self.on(scripts.DIALOG_PROBE_SCRIPT, self._probe)
        self.on(scripts.FILL_TEXT_SCRIPT, self._fill)
        self.on(scripts.COUNT_SCRIPT, lambda a: len(self.items))
        self.on(scripts.SIGNALS_SCRIPT, self._signals)
        self.on(scripts.STATUS_SCRIPT, lambda a: [self._item_signals(it) for it in self.items])
        self.on(scripts.APP_READY_SCRIPT, lambda a: {"ready": self.ready, "matched": [], "url": self.url})
        self.on(scripts.PRESS_ESCAPE_SCRIPT, lambda a: True)

    # state helpers
    def add_item(self, title: str, ready_at: float) -> None:
        self.items.append({"title": title, "ready_at": ready_at})

    def _loading(self, item: Dict[str, Any]) -> bool:
        return self.clock.now() < item["ready_at"]

    def _item_signals(self, item: Dict[str, Any]) -> Dict[str, Any]:
        loading = self._loading(item)
        return {
            "shimmer": loading,
            "disabled": False,
            "generatingTitle": loading,
            "rotatingIcon": False,
            "title": "Generating..." if loading else item["title"],
        }

    def _index(self, index: int) -> Optional[int]:
        i = len(self.items) + index if index < 0 else index
        return i if 0 <= i < len(self.items) else None

    # script handlers
    def _selector(self, a: Dict[str, Any]) -> Dict[str, Any]:
        sels = a.get("selectors") or []
        if sels == EDIT_SELECTORS[self.kind]:
            self.open_attempts += 1
            if self.open_attempts in self.fail_open_attempts:
                return MISSING
            self.dialog_text = f"customize {self.kind.value} generate cancel"
            return ACTED
        if sels == MORE_BUTTON_SELECTORS:
            i = self._index(a["scope"]["index"])
            if i is None:
                return MISSING
            self.menu_for = i
            return ACTED
        if sels == MENU_ITEM_SELECTORS:
            if self.menu_for is None or self.out_dir is None:
                return MISSING
            name = f"{self.kind.value}-{self.menu_for}{self.download_ext}"
            with open(os.path.join(self.out_dir, name), "wb") as f:
                f.write(b"x" * 64)
            self.menu_for = None
            return ACTED
        if sels == [OVERLAY_BACKDROP_SELECTOR]:
            self.dialog_text = None
            return ACTED
        return MISSING

    def _text(self, a: Dict[str, Any]) -> Dict[str, Any]:
        texts = [t.lower() for t in a.get("texts") or []]
        if texts == ["generate"] and a.get("matchContent"):
            if self.dialog_text is None:
                return MISSING
            self.dialog_text = None
            self.add_item(f"{self.kind.value.title()} {len(self.items) + 1}", self.clock.now() + self.generation_s)
            return ACTED
        if a.get("tags") in (RADIO_SELECTOR, TOGGLE_SELECTOR) and self.dialog_text is not None:
            self.selected.extend(texts)
            return ACTED
        if texts == ["cancel", "close"] and self.dialog_text is not None:
            self.dialog_text = None
            return ACTED
        return MISSING

    def _probe(self, a: Any) -> Dict[str, Any]:
        if self.dialog_text is None:
            return {"present": False, "text": ""}
        return {"present": True, "text": self.dialog_text}

    def _fill(self, a: Dict[str, Any]) -> Dict[str, Any]:
        if self.dialog_text is None:
            return MISSING
        self.filled.append({"text": a.get("text"), "hint": a.get("hint")})
        return ACTED

    def _signals(self, a: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        i = self._index(a.get("index", -1))
        return None if i is None else self._item_signals(self.items[i])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def cfg(tmp_path) -> StudioConfig:
    return StudioConfig(output_dir=str(tmp_path / "downloads"), verbose=False)
