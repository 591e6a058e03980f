"""
studio.resolver
Resolve a logical UI target to a concrete element and click it.

A ``Target`` describes what to look for in several independent ways (exact
selectors, visible text / aria-label, container + nested control, hover
anchor + revealed control). ``ElementResolver`` tries one strategy per way,
in that order, and stops at the first that acts. Selectors drift; the chain
keeps working as long as one description still matches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from browser.env import PageQuery

from . import scripts
from .config import StudioConfig
from .log import Logger
from .polling import Clock


class Outcome(str, Enum):
    ACTED = "acted"
    INACTIVE = "inactive"
    NOT_FOUND = "not_found"


@dataclass
class Resolution:
    outcome: Outcome
    strategy: str = ""
    detail: str = ""

    @property
    def acted(self) -> bool:
        return self.outcome == Outcome.ACTED

    @classmethod
    def from_page(cls, raw: Any, strategy: str) -> "Resolution":
        if not isinstance(raw, dict):
            return cls(Outcome.NOT_FOUND, strategy, "no result")
        status = str(raw.get("status") or "")
        detail = str(raw.get("detail") or "")
        if status == "acted":
            return cls(Outcome.ACTED, strategy, detail)
        if status == "inactive":
            return cls(Outcome.INACTIVE, strategy, detail)
        return cls(Outcome.NOT_FOUND, strategy, detail)


@dataclass
class Scope:
    """Where a target lives: the index-th ``selector`` match, optionally widened to ``closest`` / its parent."""

    selector: str
    index: int = -1
    closest: Optional[str] = None
    parent: bool = False

    def to_arg(self) -> Dict[str, Any]:
        return {"selector": self.selector, "index": self.index, "closest": self.closest, "parent": self.parent}


@dataclass
class Target:
    """Logical description of one clickable control.

    Strategy inputs (any subset):
      selectors               exact CSS selectors
      texts + text_tags       case-insensitive substrings of text and/or aria-label
      container + nested      container elements (optionally whose label contains
                              ``container_label``) then a control inside them
      hover_anchor + reveal   elements to hover, then selectors expected to appear
    Shared: ``scope``, ``exclude`` (labels never clicked), ``click`` (inner
    element to click instead of the match itself).
    """

    name: str
    selectors: List[str] = field(default_factory=list)
    texts: List[str] = field(default_factory=list)
    text_tags: str = "button"
    match_content: bool = True
    match_aria: bool = True
    container: Optional[str] = None
    container_label: Optional[str] = None
    nested: Optional[str] = None
    hover_anchor: Optional[str] = None
    reveal: List[str] = field(default_factory=list)
    scope: Optional[Scope] = None
    exclude: List[str] = field(default_factory=list)
    click: Optional[str] = None

    def base_arg(self) -> Dict[str, Any]:
        return {
            "scope": self.scope.to_arg() if self.scope else None,
            "exclude": list(self.exclude),
            "click": self.click,
        }


class Strategy:
    """One way of finding a target. Returns NOT_FOUND without evaluating when not applicable."""

    name = "base"

    def applies(self, target: Target) -> bool:  # pragma: no cover - overridden
        return False

    def script(self) -> str:  # pragma: no cover - overridden
        raise NotImplementedError

    def arg(self, target: Target) -> Dict[str, Any]:  # pragma: no cover - overridden
        raise NotImplementedError

    def try_resolve(self, page: PageQuery, target: Target) -> Resolution:
        if not self.applies(target):
            return Resolution(Outcome.NOT_FOUND, self.name, "not applicable")
        raw = page.evaluate(self.script(), self.arg(target))
        return Resolution.from_page(raw, self.name)


class SelectorStrategy(Strategy):
    name = "selector"

    def applies(self, target: Target) -> bool:
        return bool(target.selectors)

    def script(self) -> str:
        return scripts.SELECTOR_SCRIPT

    def arg(self, target: Target) -> Dict[str, Any]:
        return {**target.base_arg(), "selectors": list(target.selectors)}


class TextStrategy(Strategy):
    name = "text"

    def applies(self, target: Target) -> bool:
        return bool(target.texts) and (target.match_content or target.match_aria)

    def script(self) -> str:
        return scripts.TEXT_SCRIPT

    def arg(self, target: Target) -> Dict[str, Any]:
        return {
            **target.base_arg(),
            "texts": list(target.texts),
            "tags": target.text_tags,
            "matchContent": target.match_content,
            "matchAria": target.match_aria,
        }


class StructuralStrategy(Strategy):
    name = "structural"

    def applies(self, target: Target) -> bool:
        return bool(target.container and target.nested)

    def script(self) -> str:
        return scripts.STRUCTURAL_SCRIPT

    def arg(self, target: Target) -> Dict[str, Any]:
        return {
            **target.base_arg(),
            "container": target.container,
            "containerLabel": target.container_label or "",
            "nested": target.nested,
        }


class HoverRevealStrategy(Strategy):
    name = "hover"

    def __init__(self, wait_ms: int = 300) -> None:
        self.wait_ms = int(wait_ms)

    def applies(self, target: Target) -> bool:
        return bool(target.reveal) and bool(target.hover_anchor or target.scope)

    def script(self) -> str:
        return scripts.HOVER_SCRIPT

    def arg(self, target: Target) -> Dict[str, Any]:
        return {
            **target.base_arg(),
            "anchor": target.hover_anchor,
            "reveal": list(target.reveal),
            "waitMs": self.wait_ms,
        }


def default_strategies(cfg: StudioConfig) -> List[Strategy]:
    # hover is last: it dispatches events and waits
    return [SelectorStrategy(), TextStrategy(), StructuralStrategy(), HoverRevealStrategy(cfg.hover_wait_ms)]


class ElementResolver:
    def __init__(
        self,
        page: PageQuery,
        cfg: StudioConfig,
        *,
        clock: Optional[Clock] = None,
        strategies: Optional[Sequence[Strategy]] = None,
        log: Optional[Logger] = None,
    ) -> None:
        self.page = page
        self.cfg = cfg
        self.clock = clock or Clock()
        self.strategies = list(strategies) if strategies is not None else default_strategies(cfg)
        self.log: Logger = log or (lambda _m: None)

    def resolve(self, target: Target) -> Resolution:
        """First strategy that acts wins; INACTIVE if something matched but was disabled."""
        inactive: Optional[Resolution] = None
        for strategy in self.strategies:
            res = strategy.try_resolve(self.page, target)
            if res.acted:
                self.log(f"{target.name}: clicked via {res.strategy} ({res.detail})")
                return res
            if res.outcome == Outcome.INACTIVE and inactive is None:
                inactive = res
        if inactive is not None:
            return inactive
        return Resolution(Outcome.NOT_FOUND, "", f"{target.name} not found")

    def resolve_with_retry(self, target: Target, attempts: Optional[int] = None) -> Resolution:
        n = max(1, int(attempts if attempts is not None else self.cfg.resolve_attempts))
        res = Resolution(Outcome.NOT_FOUND)
        for attempt in range(1, n + 1):
            res = self.resolve(target)
            if res.acted:
                return res
            if attempt == n:
                break
            if res.outcome == Outcome.INACTIVE:
                self.log(f"{target.name}: found but disabled, retry {attempt}/{n - 1}")
                self.clock.sleep(self.cfg.inactive_retry_s)
            else:
                self.clock.sleep(self.cfg.resolve_retry_s)
        self.log(f"{target.name}: {res.outcome.value} after {n} attempt(s)")
        return res
