"""
studio.dialog
Customization dialog: open it for a kind, verify it is the right dialog,
fill its fields and submit it.

The probe guards against a different modal (the "add sources" upload dialog
is the usual one) being mistaken for the customization form.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from browser.env import PageQuery

from . import scripts
from .config import StudioConfig
from .constants import (
    CREATE_CONTAINER_LABELS,
    CREATE_CONTAINER_SELECTOR,
    DIALOG_KEYWORDS,
    DIALOG_SELECTOR,
    DROPDOWN_OPTION_SELECTOR,
    DROPDOWN_SELECTOR,
    EDIT_BUTTON_SELECTOR,
    EDIT_BUTTON_TEXTS,
    EDIT_SELECTORS,
    EXCLUDED_ACTION_LABELS,
    FORM_FIELD_SELECTOR,
    OVERLAY_BACKDROP_SELECTOR,
    PRIMARY_BUTTON_SELECTORS,
    RADIO_SELECTOR,
    SUBMIT_KEYWORD,
    TOGGLE_SELECTOR,
    UPLOAD_DIALOG_MARKERS,
    ArtifactKind,
)
from .log import Logger
from .polling import Clock, poll_until
from .resolver import ElementResolver, Outcome, Resolution, Scope, Target


class DialogState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN_UNVERIFIED = "open_unverified"
    OPEN_VERIFIED = "open_verified"
    WRONG_DIALOG = "wrong_dialog"
    CONFIGURING = "configuring"
    SUBMITTING = "submitting"


class DialogView(str, Enum):
    ABSENT = "absent"
    WRONG = "wrong"
    CUSTOMIZE = "customize"


DIALOG_SCOPE = Scope(DIALOG_SELECTOR, -1)


def classify_dialog(present: bool, text: str) -> DialogView:
    """Classify probed dialog text: customization keyword present and no upload markers."""
    if not present:
        return DialogView.ABSENT
    t = (text or "").lower()
    if any(m in t for m in UPLOAD_DIALOG_MARKERS):
        return DialogView.WRONG
    if any(k in t for k in DIALOG_KEYWORDS):
        return DialogView.CUSTOMIZE
    return DialogView.WRONG


def customize_target(kind: ArtifactKind) -> Target:
    kind = ArtifactKind(kind)
    return Target(
        name=f"{kind.value} customize",
        selectors=list(EDIT_SELECTORS[kind]),
        texts=list(EDIT_BUTTON_TEXTS[kind]),
        text_tags=EDIT_BUTTON_SELECTOR,
        match_content=False,
        container=CREATE_CONTAINER_SELECTOR,
        container_label=CREATE_CONTAINER_LABELS[kind],
        nested=EDIT_BUTTON_SELECTOR,
        hover_anchor=CREATE_CONTAINER_SELECTOR,
        reveal=list(EDIT_SELECTORS[kind]),
    )


class DialogController:
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
        self.state = DialogState.CLOSED
        self.verified = False

    # Lifecycle ------------------------------------------------------------

    def open(self, kind: ArtifactKind) -> bool:
        self.verified = False
        res = self.resolver.resolve_with_retry(customize_target(kind))
        if not res.acted:
            self.log(f"customize action for {ArtifactKind(kind).value} not found ({res.outcome.value})")
            self.state = DialogState.CLOSED
            return False
        self.state = DialogState.OPENING
        return True

    def probe(self) -> DialogView:
        raw = self.page.evaluate(scripts.DIALOG_PROBE_SCRIPT, {"selector": DIALOG_SELECTOR})
        if not isinstance(raw, dict):
            return DialogView.ABSENT
        return classify_dialog(bool(raw.get("present")), str(raw.get("text") or ""))

    def is_open(self) -> bool:
        return self.probe() != DialogView.ABSENT

    def wait_until_verified(self, timeout: Optional[float] = None) -> bool:
        seen: List[DialogView] = []

        def _check() -> bool:
            view = self.probe()
            seen.append(view)
            if view != DialogView.ABSENT and self.state == DialogState.OPENING:
                self.state = DialogState.OPEN_UNVERIFIED
            return view == DialogView.CUSTOMIZE

        result = poll_until(
            _check,
            interval_s=self.cfg.dialog_poll_s,
            timeout_s=self.cfg.dialog_timeout_s if timeout is None else timeout,
            clock=self.clock,
            sleep_first=False,
        )
        if result.ok:
            self.state = DialogState.OPEN_VERIFIED
            self.verified = True
            return True
        last = seen[-1] if seen else DialogView.ABSENT
        if last == DialogView.WRONG:
            self.state = DialogState.WRONG_DIALOG
            self.log("an unrelated dialog is open (not a customization dialog)")
        else:
            self.state = DialogState.CLOSED
            self.log("customization dialog did not appear")
        return False

    def close(self) -> bool:
        """Dismiss whatever dialog is open: cancel/close button, backdrop, then Escape."""
        for target in (
            Target(name="dialog close", texts=["cancel", "close"], scope=DIALOG_SCOPE),
            Target(name="overlay backdrop", selectors=[OVERLAY_BACKDROP_SELECTOR]),
        ):
            if self.resolver.resolve(target).acted:
                break
        else:
            self.page.evaluate(scripts.PRESS_ESCAPE_SCRIPT, {})
        self.clock.sleep(self.cfg.settle_s)
        self.state = DialogState.CLOSED
        self.verified = False
        return not self.is_open()

    # Fields ---------------------------------------------------------------

    def _configure(self, target: Target) -> bool:
        if self.state in (DialogState.OPEN_VERIFIED, DialogState.OPEN_UNVERIFIED):
            self.state = DialogState.CONFIGURING
        res = self.resolver.resolve(target)
        if res.acted:
            self.clock.sleep(self.cfg.field_settle_s)
        return res.acted

    def select_radio(self, label: str) -> bool:
        return self._configure(
            Target(name=f"radio '{label}'", texts=[label], text_tags=RADIO_SELECTOR, scope=DIALOG_SCOPE, click="input")
        )

    def select_toggle(self, label: str) -> bool:
        return self._configure(
            Target(name=f"toggle '{label}'", texts=[label], text_tags=TOGGLE_SELECTOR, scope=DIALOG_SCOPE, click="button")
        )

    def select_choice(self, label: str, *, toggle_first: bool = False) -> bool:
        """Single choice rendered either as a radio group or as a segmented toggle."""
        order = (self.select_toggle, self.select_radio) if toggle_first else (self.select_radio, self.select_toggle)
        for fn in order:
            if fn(label):
                return True
        self.log(f"option '{label}' not found")
        return False

    def select_dropdown(self, label: str, option: str) -> bool:
        opened = self._configure(
            Target(
                name=f"dropdown '{label}'",
                container=FORM_FIELD_SELECTOR,
                container_label=label,
                nested=DROPDOWN_SELECTOR,
                texts=[label],
                text_tags=DROPDOWN_SELECTOR,
                match_content=False,
                scope=DIALOG_SCOPE,
            )
        )
        if not opened:
            self.log(f"dropdown '{label}' not found")
            return False
        self.clock.sleep(self.cfg.settle_s)
        # the option list renders in an overlay outside the dialog
        picked = self.resolver.resolve(
            Target(name=f"option '{option}'", texts=[option], text_tags=f"{DROPDOWN_OPTION_SELECTOR}, [role='option']")
        )
        if not picked.acted:
            self.log(f"dropdown option '{option}' not found")
            self.page.evaluate(scripts.PRESS_ESCAPE_SCRIPT, {})
            return False
        self.clock.sleep(self.cfg.field_settle_s)
        return True

    def fill_text(self, text: str, hint: Optional[str] = None) -> bool:
        if self.state in (DialogState.OPEN_VERIFIED, DialogState.OPEN_UNVERIFIED):
            self.state = DialogState.CONFIGURING
        raw = self.page.evaluate(
            scripts.FILL_TEXT_SCRIPT,
            {"scope": DIALOG_SCOPE.to_arg(), "hint": hint or "", "text": text},
        )
        res = Resolution.from_page(raw, "fill")
        if not res.acted:
            self.log(f"text field {hint or 'textarea'}: {res.outcome.value} ({res.detail})")
            return False
        self.clock.sleep(self.cfg.field_settle_s)
        return True

    # Submit ---------------------------------------------------------------

    def submit_targets(self) -> List[Target]:
        tiers = [
            Target(
                name="generate (text)",
                texts=[SUBMIT_KEYWORD],
                match_aria=False,
                scope=DIALOG_SCOPE,
                exclude=list(EXCLUDED_ACTION_LABELS),
            ),
            Target(
                name="generate (aria)",
                texts=[SUBMIT_KEYWORD],
                match_content=False,
                scope=DIALOG_SCOPE,
                exclude=list(EXCLUDED_ACTION_LABELS),
            ),
        ]
        if self.verified:
            tiers.append(
                Target(
                    name="generate (primary)",
                    selectors=list(PRIMARY_BUTTON_SELECTORS),
                    scope=DIALOG_SCOPE,
                    exclude=list(EXCLUDED_ACTION_LABELS),
                )
            )
        return tiers

    def submit(self) -> bool:
        previous = self.state
        self.state = DialogState.SUBMITTING
        last = Resolution(Outcome.NOT_FOUND)
        for target in self.submit_targets():
            last = self.resolver.resolve(target)
            if last.outcome == Outcome.INACTIVE:
                last = self.resolver.resolve_with_retry(target)
            if last.acted:
                self.clock.sleep(self.cfg.settle_s)
                self.state = DialogState.CLOSED
                self.verified = False
                return True
        self.log(f"generate button not found ({last.outcome.value})")
        self.state = previous
        return False
