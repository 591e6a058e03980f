"""
Playwright-backed page access for the studio orchestrator.

The orchestrator only needs three things from the controlled page:
  - evaluate(script, arg) -> Any     run one page-side function, return its JSON value
  - reload() -> None                 reload the current document
  - current_url() -> str

plus a way to make downloads land in a known directory (configure_downloads).

Usage:
  from browser.env import configure_downloads, make_env
  with make_env(url, headless=False) as env:
      configure_downloads(env.raw, "downloads", default_context=env.default_context)
      env.evaluate("() => document.title")
"""

from __future__ import annotations

from contextlib import contextmanager
import os
from typing import Any, Callable, Iterator, Optional, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from studio.errors import StudioError


class PageQuery(Protocol):
    def evaluate(self, script: str, arg: Any = None) -> Any: ...

    def reload(self) -> None: ...

    def current_url(self) -> str: ...


class PWPage:
    """PageQuery over a Playwright sync Page. Transport failures become StudioError."""

    def __init__(self, page, *, reload_timeout_ms: int = 60000, default_context: bool = False) -> None:
        self._page = page
        # True when the page belongs to the browser's default context (CDP attach, persistent profile)
        self.default_context = bool(default_context)
        self._reload_timeout_ms = int(reload_timeout_ms)

    @property
    def raw(self):
        return self._page

    def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return self._page.evaluate(script, arg)
        except PlaywrightError as e:
            raise StudioError(
                code="EVALUATE_FAILED",
                stage="evaluate",
                message="page evaluation failed; is the browser still open?",
                original=e,
            )

    def reload(self) -> None:
        try:
            self._page.reload(wait_until="domcontentloaded", timeout=self._reload_timeout_ms)
        except PlaywrightError as e:
            raise StudioError(code="EVALUATE_FAILED", stage="reload", message="page reload failed", original=e)

    def current_url(self) -> str:
        try:
            return self._page.url or ""
        except PlaywrightError:
            return ""


def configure_downloads(
    page,
    out_dir: str,
    log: Optional[Callable[[str], None]] = None,
    *,
    default_context: bool = False,
) -> str:
    """Make downloads from ``page`` land in ``out_dir``; returns the mode used.

    default_context=True (CDP attach, persistent profile): the page lives in
    the browser's default context, so Browser.setDownloadBehavior over a CDP
    session applies to it ("cdp").
    Otherwise (``browser.new_context``) Playwright owns that context's
    download behavior, so each download event is saved under its suggested
    filename ("event").
    """
    _log = log or (lambda _m: None)
    target = os.path.abspath(out_dir)
    os.makedirs(target, exist_ok=True)
    if default_context:
        try:
            cdp = page.context.new_cdp_session(page)
            cdp.send("Browser.setDownloadBehavior", {"behavior": "allow", "downloadPath": target, "eventsEnabled": True})
            _log(f"download directory set to: {target}")
            return "cdp"
        except PlaywrightError as e:
            _log(f"CDP download behavior unavailable ({e}); saving download events instead")

    def _on_download(download) -> None:
        name = download.suggested_filename or "download"
        try:
            download.save_as(os.path.join(target, name))
        except PlaywrightError as err:
            _log(f"saving download {name} failed: {err}")

    page.on("download", _on_download)
    _log(f"saving downloads to: {target}")
    return "event"


@contextmanager
def make_env(
    url: Optional[str] = None,
    *,
    headless: bool = False,
    slow_mo: Optional[int] = None,
    default_timeout_ms: Optional[int] = None,
    user_data_dir: Optional[str] = None,
    auto_close: bool = True,
) -> Iterator[PWPage]:
    """Context manager yielding a PWPage for the studio.

    Backends:
      - STUDIO_BROWSER_BACKEND=cdp with STUDIO_CDP_URL: attach to a running
        Chrome (already signed in) and reuse its first page; the browser is
        left open on exit.
      - user_data_dir: persistent Chromium profile (keeps the sign-in).
      - otherwise a fresh local Chromium.
    """
    with sync_playwright() as pw:
        backend = os.getenv("STUDIO_BROWSER_BACKEND", "local").strip().lower()
        cdp_url = os.getenv("STUDIO_CDP_URL", "").strip()

        browser = None
        default_context = False
        if backend == "cdp" and cdp_url:
            browser = pw.chromium.connect_over_cdp(cdp_url)
            default_context = bool(browser.contexts)
            context = browser.contexts[0] if browser.contexts else browser.new_context(accept_downloads=True)
        elif user_data_dir:
            default_context = True
            context = pw.chromium.launch_persistent_context(
                user_data_dir, headless=headless, slow_mo=(slow_mo or 0), accept_downloads=True
            )
        else:
            browser = pw.chromium.launch(headless=headless, slow_mo=(slow_mo or 0))
            context = browser.new_context(accept_downloads=True)

        page = context.pages[0] if (backend == "cdp" or user_data_dir) and context.pages else context.new_page()
        if isinstance(default_timeout_ms, int) and default_timeout_ms > 0:
            page.set_default_timeout(int(default_timeout_ms))
        if url:
            try:
                page.goto(url, wait_until="domcontentloaded")
            except PlaywrightError as e:
                # a reused CDP page may have been detached; retry once on a fresh page
                page = context.new_page()
                try:
                    page.goto(url, wait_until="domcontentloaded")
                except PlaywrightError:
                    raise StudioError(
                        code="NAVIGATION_FAILED",
                        stage="navigate",
                        message=f"could not open {url}; check the URL and the browser connection",
                        original=e,
                    )
        try:
            yield PWPage(page, default_context=default_context)
        finally:
            if auto_close:
                if backend != "cdp":
                    try:
                        context.close()
                    except PlaywrightError:
                        pass
                if browser is not None and backend != "cdp":
                    try:
                        browser.close()
                    except PlaywrightError:
                        pass
