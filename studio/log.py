"""
studio.log
Tagged line logger: every component takes a plain ``log(msg)`` callable.
"""

from __future__ import annotations

import time
from typing import Callable, List

Logger = Callable[[str], None]


def make_logger(tag: str = "studio", *, verbose: bool = True, timestamps: bool = False) -> Logger:
    """Return a logger printing ``[tag] message`` lines (silent when verbose=False)."""

    def _log(msg: str) -> None:
        if not verbose:
            return
        if timestamps:
            print(f"[{time.strftime('%H:%M:%S')}] [{tag}] {msg}", flush=True)
        else:
            print(f"[{tag}] {msg}", flush=True)

    return _log


class MemoryLog:
    """Collects messages instead of printing them (tests and embedding callers)."""

    def __init__(self) -> None:
        self.lines: List[str] = []

    def __call__(self, msg: str) -> None:
        self.lines.append(msg)

    def contains(self, fragment: str) -> bool:
        return any(fragment in line for line in self.lines)
