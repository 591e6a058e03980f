"""
studio.polling
Delay primitive and bounded poll loop shared by every wait in the package.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


class Clock:
    """Monotonic clock plus sleep. Tests substitute a virtual clock."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


@dataclass
class PollResult:
    ok: bool
    value: Any
    polls: int
    elapsed_s: float


def poll_until(
    predicate: Callable[[], Any],
    *,
    interval_s: float,
    timeout_s: float,
    clock: Clock,
    on_progress: Optional[Callable[[float, Any], None]] = None,
    progress_every_s: float = 20.0,
    sleep_first: bool = True,
) -> PollResult:
    """Call ``predicate`` every ``interval_s`` until it returns a truthy value.

    Never runs past ``timeout_s``: the last sleep is shortened to the deadline
    and no poll happens after it. Returns ``PollResult(ok=False)`` with the
    last polled value on expiry. ``on_progress(elapsed, value)`` is invoked at
    most once per ``progress_every_s``.
    """
    start = clock.now()
    deadline = start + max(0.0, float(timeout_s))
    last_progress = start
    polls = 0
    value: Any = None
    first = True
    while True:
        if sleep_first or not first:
            remaining = deadline - clock.now()
            if remaining <= 0:
                break
            clock.sleep(min(float(interval_s), remaining))
            if clock.now() > deadline:
                break
        first = False
        value = predicate()
        polls += 1
        if value:
            return PollResult(ok=True, value=value, polls=polls, elapsed_s=clock.now() - start)
        now = clock.now()
        if on_progress is not None and now - last_progress >= progress_every_s:
            on_progress(now - start, value)
            last_progress = now
    return PollResult(ok=False, value=value, polls=polls, elapsed_s=clock.now() - start)
