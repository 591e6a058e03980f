"""
studio.session
Readiness gate for the notebook page and run-mode preconditions.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from browser.env import PageQuery

from . import scripts
from .config import StudioConfig
from .constants import APP_READY_SELECTORS
from .errors import StudioError
from .log import Logger
from .polling import Clock, poll_until

RUN_MODES = ("existing", "new")


def check_run_mode(mode: str, url: Optional[str]) -> str:
    """Validate the run mode; ``existing`` needs the notebook URL."""
    m = (mode or "existing").strip().lower()
    if m not in RUN_MODES:
        raise StudioError(code="INVALID_MODE", stage="session", message=f"unknown run mode: {mode!r} (use existing|new)")
    if m == "existing" and not (url or "").strip():
        raise StudioError(
            code="MISSING_URL",
            stage="session",
            message="mode 'existing' needs the notebook URL (pass --url or STUDIO_NOTEBOOK_URL)",
        )
    return m


def probe_ready(page: PageQuery) -> Dict[str, Any]:
    raw = page.evaluate(scripts.APP_READY_SCRIPT, {"selectors": list(APP_READY_SELECTORS)})
    return raw if isinstance(raw, dict) else {"ready": False, "matched": [], "url": ""}


def wait_until_ready(
    page: PageQuery,
    cfg: StudioConfig,
    *,
    clock: Optional[Clock] = None,
    log: Optional[Logger] = None,
    timeout: Optional[float] = None,
) -> bool:
    """Poll until one of the app's notebook markers is on the page."""
    _log: Logger = log or (lambda _m: None)
    timeout_s = cfg.page_ready_timeout_s if timeout is None else float(timeout)
    result = poll_until(
        lambda: bool(probe_ready(page).get("ready")),
        interval_s=cfg.poll_interval_s,
        timeout_s=timeout_s,
        clock=clock or Clock(),
        sleep_first=False,
    )
    if result.ok:
        _log(f"notebook ready (polls={result.polls})")
    else:
        _log(f"notebook not ready after {int(timeout_s)}s: {page.current_url()}")
    return result.ok
