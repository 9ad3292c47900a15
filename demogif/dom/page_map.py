import time
from typing import Any, Dict, List

from ..core.types import NavItem, PageDescriptor, PageElement

INTERACTIVE_WAIT_MS = 5000
INTERACTIVE_POLL_MS = 200
SETTLE_MS = 300
MAX_LABEL_LEN = 50

COUNT_VISIBLE_JS = """() => {
  const sel = 'button, [role="button"], input:not([type="hidden"]), textarea, a[href]';
  let visible = 0;
  document.querySelectorAll(sel).forEach(el => { if (el.offsetParent) visible++; });
  return visible;
}"""

DETECT_SPA_JS = """() => {
  if (window.__REACT_DEVTOOLS_GLOBAL_HOOK__ || document.querySelector('[data-reactroot]') || document.querySelector('#__next')) return true;
  if (window.__VUE__ || document.querySelector('[data-v-app]')) return true;
  if (window.ng || document.querySelector('[ng-version]') || document.querySelector('app-root')) return true;
  if (document.querySelector('[class*="svelte-"]')) return true;
  return false;
}"""

EXTRACT_ELEMENTS_JS = """() => {
  const out = [];
  const seen = new Set();

  function validIdent(s) {
    return !!s && !/^-?[0-9]/.test(s) && !/[.:#\\[\\]()>~+*\\/\\\\ ]/.test(s);
  }

  function selectorFor(el) {
    if (el.id && validIdent(el.id)) return '#' + el.id;
    if (el.name) return el.tagName.toLowerCase() + '[name="' + el.name + '"]';
    if (el.className && typeof el.className === 'string') {
      const classes = el.className.trim().split(/\\s+/).filter(validIdent).slice(0, 2);
      if (classes.length) {
        const sel = el.tagName.toLowerCase() + '.' + classes.join('.');
        try { if (document.querySelectorAll(sel).length === 1) return sel; } catch (e) {}
      }
    }
    const parent = el.parentElement;
    if (parent) {
      const idx = Array.from(parent.children).indexOf(el) + 1;
      return selectorFor(parent) + ' > ' + el.tagName.toLowerCase() + ':nth-child(' + idx + ')';
    }
    return el.tagName.toLowerCase();
  }

  function push(el, role, label) {
    if (!el.offsetParent) return;
    const selector = selectorFor(el);
    if (seen.has(selector)) return;
    seen.add(selector);
    out.push({selector: selector, role: role, label: (label || '').trim()});
  }

  document.querySelectorAll('button, [role="button"], input[type="submit"], input[type="button"]')
    .forEach(el => push(el, 'button', el.textContent || el.value || el.getAttribute('aria-label')));
  document.querySelectorAll('input:not([type="hidden"]):not([type="submit"]):not([type="button"]):not([type="checkbox"]):not([type="radio"]), textarea')
    .forEach(el => push(el, el.type || 'text', el.placeholder || el.getAttribute('aria-label') || el.name));
  document.querySelectorAll('a[href]').forEach(el => {
    const href = el.getAttribute('href');
    if (href.startsWith('#') || href.startsWith('javascript:')) return;
    push(el, 'link', el.textContent);
  });
  document.querySelectorAll('select').forEach(el => push(el, 'select', el.name || el.getAttribute('aria-label')));
  document.querySelectorAll('input[type="checkbox"], input[type="radio"]')
    .forEach(el => push(el, el.type, el.name || el.getAttribute('aria-label')));
  return out;
}"""

EXTRACT_NAV_JS = """() => {
  const out = [];
  const seen = new Set();
  document.querySelectorAll('nav a, header a, [role="navigation"] a').forEach(el => {
    if (!el.offsetParent) return;
    const href = el.getAttribute('href');
    if (!href || href === '#' || href.startsWith('javascript:')) return;
    if (seen.has(href)) return;
    seen.add(href);
    const selector = el.id ? '#' + el.id : 'a[href="' + href + '"]';
    out.push({selector: selector, text: (el.textContent || '').trim().slice(0, 30), href: href});
  });
  return out;
}"""


def _wait_for_interactive_elements(session, timeout_ms: int = INTERACTIVE_WAIT_MS) -> bool:
    """Poll until something clickable is rendered (SPAs hydrate late)."""
    deadline = time.time() + timeout_ms / 1000.0
    while time.time() < deadline:
        if int(session.evaluate(COUNT_VISIBLE_JS) or 0) > 0:
            time.sleep(SETTLE_MS / 1000.0)
            return True
        time.sleep(INTERACTIVE_POLL_MS / 1000.0)
    return False


def _to_elements(raw: List[Dict[str, Any]]) -> List[PageElement]:
    elements = []
    for e in raw or []:
        selector = e.get("selector")
        if not selector:
            continue
        label = (e.get("label") or "")[:MAX_LABEL_LEN]
        elements.append(PageElement(selector=selector, role=e.get("role") or "", label=label))
    return elements


def _to_nav(raw: List[Dict[str, Any]]) -> List[NavItem]:
    return [
        NavItem(selector=n["selector"], text=n.get("text") or "", href=n.get("href") or "")
        for n in raw or []
        if n.get("selector")
    ]


def analyze_page(session) -> PageDescriptor:
    """Describe the live page: interactive elements, navigation and SPA flag."""
    session.wait_for_load()
    session.wait_for_network_idle()
    if not _wait_for_interactive_elements(session):
        print("[PageMap] No interactive elements appeared before the timeout.")

    descriptor = PageDescriptor(
        url=str(session.evaluate("() => window.location.href") or ""),
        title=str(session.evaluate("() => document.title") or ""),
        elements=_to_elements(session.evaluate(EXTRACT_ELEMENTS_JS)),
        navigation=_to_nav(session.evaluate(EXTRACT_NAV_JS)),
        is_spa=bool(session.evaluate(DETECT_SPA_JS)),
    )
    print(
        f"[PageMap] {descriptor.url} | {len(descriptor.elements)} elements, "
        f"{len(descriptor.navigation)} nav items, spa={descriptor.is_spa}")
    return descriptor
