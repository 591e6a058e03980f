"""
studio.scripts
Page-side JavaScript evaluated through ``PageQuery.evaluate(script, arg)``.

Every script is a single arrow function taking one argument object. Scripts
that act on an element return ``{status: 'acted'|'inactive'|'missing', detail}``
and never throw: page errors are folded into ``missing`` with the message in
``detail``. Read-only scripts return plain JSON values.

Scope descriptor (``arg.scope``), shared by the acting scripts:
    null                                  -> whole document
    {selector, index}                     -> the index-th match (negative from the end)
    {selector, index, closest}            -> that match's closest(closest) ancestor
    {..., parent: true}                   -> one level further up
"""

from __future__ import annotations

# Shared helpers, inlined at the top of each function body.
_HELPERS = r"""
  const __visible = (el) => {
    if (!el || !(el instanceof Element)) return false;
    if (el.offsetParent !== null) return true;
    const st = window.getComputedStyle(el);
    if (st.position === 'fixed' && st.display !== 'none' && st.visibility !== 'hidden') return true;
    const r = el.getBoundingClientRect();
    return r.width > 0 && r.height > 0 && st.visibility !== 'hidden' && st.display !== 'none';
  };
  const __lower = (s) => String(s || '').toLowerCase();
  const __text = (el) => __lower((el.innerText || el.textContent || '').trim());
  const __aria = (el) => __lower(el.getAttribute && el.getAttribute('aria-label'));
  const __disabled = (el) => {
    if (!el) return false;
    if (el.disabled === true) return true;
    if (el.getAttribute && el.getAttribute('aria-disabled') === 'true') return true;
    return !!(el.classList && el.classList.contains('mat-mdc-button-disabled'));
  };
  const __pick = (list, index) => {
    if (!list || list.length === 0) return null;
    const i = index < 0 ? list.length + index : index;
    return (i >= 0 && i < list.length) ? list[i] : null;
  };
  const __root = (scope) => {
    if (!scope || !scope.selector) return document;
    const el = __pick(document.querySelectorAll(scope.selector), scope.index == null ? -1 : scope.index);
    if (!el) return null;
    let root = scope.closest ? (el.closest(scope.closest) || el.parentElement || el) : el;
    if (scope.parent) root = root.parentElement || root;
    return root;
  };
  const __excluded = (el, excl) => {
    if (!excl || excl.length === 0) return false;
    const label = __text(el) + ' ' + __aria(el);
    return excl.some((x) => label.includes(__lower(x)));
  };
  const __act = (el, inner, detail) => {
    if (__disabled(el)) return {status: 'inactive', detail: detail};
    const target = (inner && el.querySelector(inner)) || el;
    if (__disabled(target)) return {status: 'inactive', detail: detail};
    try { el.scrollIntoView({block: 'center'}); } catch (_) {}
    target.click();
    return {status: 'acted', detail: detail};
  };
"""


def _fn(body: str, *, is_async: bool = False) -> str:
    head = "async (a) => {" if is_async else "(a) => {"
    return head + _HELPERS + "  try {\n" + body + "\n  } catch (e) { return {status: 'missing', detail: String(e)}; }\n}"


def _read(body: str) -> str:
    return "(a) => {" + _HELPERS + body + "\n}"


# Resolver strategies -------------------------------------------------------

SELECTOR_SCRIPT = _fn(r"""
    const root = __root(a.scope);
    if (!root) return {status: 'missing', detail: 'scope not found'};
    let inactive = null;
    for (const sel of (a.selectors || [])) {
      let list;
      try { list = root.querySelectorAll(sel); } catch (_) { continue; }
      for (const el of list) {
        if (!__visible(el) || __excluded(el, a.exclude)) continue;
        const r = __act(el, a.click, sel);
        if (r.status === 'acted') return r;
        inactive = inactive || r;
      }
    }
    return inactive || {status: 'missing', detail: 'no selector matched'};
""")

TEXT_SCRIPT = _fn(r"""
    const root = __root(a.scope);
    if (!root) return {status: 'missing', detail: 'scope not found'};
    const texts = (a.texts || []).map(__lower);
    let inactive = null;
    for (const el of root.querySelectorAll(a.tags || 'button')) {
      if (!__visible(el) || __excluded(el, a.exclude)) continue;
      const content = a.matchContent ? __text(el) : '';
      const aria = a.matchAria ? __aria(el) : '';
      const hit = texts.find((t) => (a.matchContent && content.includes(t)) || (a.matchAria && aria.includes(t)));
      if (!hit) continue;
      const r = __act(el, a.click, hit);
      if (r.status === 'acted') return r;
      inactive = inactive || r;
    }
    return inactive || {status: 'missing', detail: 'no text matched'};
""")

STRUCTURAL_SCRIPT = _fn(r"""
    const root = __root(a.scope);
    if (!root) return {status: 'missing', detail: 'scope not found'};
    const want = __lower(a.containerLabel);
    let inactive = null;
    for (const box of root.querySelectorAll(a.container)) {
      if (want && !(__text(box).includes(want) || __aria(box).includes(want))) continue;
      for (const el of box.querySelectorAll(a.nested)) {
        if (!__visible(el) || __excluded(el, a.exclude)) continue;
        const r = __act(el, a.click, a.container + ' ' + a.nested);
        if (r.status === 'acted') return r;
        inactive = inactive || r;
      }
    }
    return inactive || {status: 'missing', detail: 'no container matched'};
""")

HOVER_SCRIPT = _fn(r"""
    const root = __root(a.scope);
    if (!root) return {status: 'missing', detail: 'scope not found'};
    const anchors = a.anchor ? Array.from(root.querySelectorAll(a.anchor)) : [root];
    if (anchors.length === 0 || anchors[0] === document) return {status: 'missing', detail: 'no hover anchor'};
    for (const anchor of anchors) {
      for (const type of ['mouseenter', 'mouseover', 'focusin']) {
        anchor.dispatchEvent(new MouseEvent(type, {bubbles: true}));
      }
      try { anchor.focus && anchor.focus(); } catch (_) {}
    }
    await new Promise((r) => setTimeout(r, a.waitMs || 300));
    let inactive = null;
    for (const sel of (a.reveal || [])) {
      for (const base of [root, document]) {
        for (const el of base.querySelectorAll(sel)) {
          if (!__visible(el) || __excluded(el, a.exclude)) continue;
          const r = __act(el, a.click, 'hover:' + sel);
          if (r.status === 'acted') return r;
          inactive = inactive || r;
        }
      }
    }
    return inactive || {status: 'missing', detail: 'nothing revealed'};
""", is_async=True)


# Dialog --------------------------------------------------------------------

# -> {present, text}; the text of the last open dialog, lowercased.
DIALOG_PROBE_SCRIPT = _read(r"""
  const list = Array.from(document.querySelectorAll(a.selector)).filter(__visible);
  if (list.length === 0) return {present: false, text: ''};
  return {present: true, text: __text(list[list.length - 1]).slice(0, 4000)};
""")

FILL_TEXT_SCRIPT = _fn(r"""
    const root = __root(a.scope);
    if (!root) return {status: 'missing', detail: 'scope not found'};
    const hint = __lower(a.hint);
    let field = null;
    if (!hint) {
      field = Array.from(root.querySelectorAll('textarea')).find(__visible) || null;
    } else {
      for (const el of root.querySelectorAll('textarea, input')) {
        if (!__visible(el)) continue;
        const label = __lower(el.getAttribute('placeholder')) + ' ' + __aria(el);
        if (label.includes(hint)) { field = el; break; }
      }
    }
    if (!field) return {status: 'missing', detail: hint ? 'no field for ' + hint : 'no textarea'};
    if (__disabled(field) || field.readOnly) return {status: 'inactive', detail: 'field disabled'};
    field.focus();
    const proto = field.tagName === 'TEXTAREA' ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
    const setter = Object.getOwnPropertyDescriptor(proto, 'value').set;
    setter.call(field, String(a.text || ''));
    field.dispatchEvent(new Event('input', {bubbles: true}));
    field.dispatchEvent(new Event('change', {bubbles: true}));
    return {status: 'acted', detail: field.tagName.toLowerCase()};
""")

PRESS_ESCAPE_SCRIPT = _read(r"""
  const target = document.activeElement || document.body;
  target.dispatchEvent(new KeyboardEvent('keydown', {key: 'Escape', code: 'Escape', bubbles: true}));
  return true;
""")


# Artifacts -----------------------------------------------------------------

_ITEM_SIGNALS = r"""
  const __signals = (el) => {
    const box = el.closest(a.container) || el;
    const classes = (node) => Array.from((node && node.classList) || []);
    const shimmerOf = (node) => classes(node).some((c) => c.startsWith(a.shimmer));
    let shimmer = shimmerOf(el) || shimmerOf(box);
    if (!shimmer) shimmer = !!box.querySelector('[class*="' + a.shimmer + '"]');
    const titleEl = box.querySelector(a.title);
    const title = ((titleEl && (titleEl.innerText || titleEl.textContent)) || el.getAttribute('aria-label') || '').trim();
    return {
      shimmer: shimmer,
      disabled: __disabled(el) || __disabled(box),
      generatingTitle: __lower(title).includes(a.marker),
      rotatingIcon: !!box.querySelector(a.icon),
      title: title,
    };
  };
"""

COUNT_SCRIPT = _read(r"""
  return document.querySelectorAll(a.selector).length;
""")

# -> signals of the index-th item, or null when there is no such item.
SIGNALS_SCRIPT = _read(_ITEM_SIGNALS + r"""
  const el = __pick(document.querySelectorAll(a.selector), a.index == null ? -1 : a.index);
  return el ? __signals(el) : null;
""")

# -> list of signals, one per item, from a single evaluation.
STATUS_SCRIPT = _read(_ITEM_SIGNALS + r"""
  return Array.from(document.querySelectorAll(a.selector)).map(__signals);
""")


# Session -------------------------------------------------------------------

APP_READY_SCRIPT = _read(r"""
  const matched = (a.selectors || []).filter((s) => {
    try { return !!document.querySelector(s); } catch (_) { return false; }
  });
  return {
    ready: document.readyState !== 'loading' && matched.length > 0,
    matched: matched,
    url: location.href,
  };
""")
