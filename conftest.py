import time
from io import BytesIO

import pytest
from PIL import Image

from demogif.core.errors import ElementNotFound, FrameCaptureFailed
from demogif.core.types import PageDescriptor, Rect


def png_bytes(size=(64, 36), color=(40, 40, 40)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeSession:
    """Scripted stand-in for BrowserSession that records every driver call."""

    def __init__(self, elements=None, fail_captures=(), refuse=(), size=(64, 36)):
        self.elements = dict(elements or {})
        self.fail_captures = set(fail_captures)
        self.refuse = set(refuse)
        self.calls = []
        self.captures = 0
        self.closed = False
        self._png = png_bytes(size)

    def _interact(self, kind, selector):
        self.calls.append((kind, selector))
        if selector in self.refuse:
            raise ElementNotFound(selector, f"{kind} refused")

    def find_element(self, selector):
        self.calls.append(("find", selector))
        if selector not in self.elements:
            raise ElementNotFound(selector)
        return self.elements[selector]

    def click(self, selector):
        self._interact("click", selector)

    def hover(self, selector):
        self._interact("hover", selector)

    def focus_and_clear(self, selector):
        self._interact("focus", selector)

    def type_char(self, ch):
        self.calls.append(("key", ch))

    def scroll(self, dx, dy):
        self.calls.append(("scroll", (dx, dy)))

    def move_cursor(self, x, y):
        self.calls.append(("move", (x, y)))

    def navigate(self, url):
        self.calls.append(("navigate", url))

    def wait_for_load(self):
        self.calls.append(("load", None))

    def wait_for_network_idle(self, timeout_ms=5000):
        self.calls.append(("idle", timeout_ms))

    def screenshot(self):
        self.captures += 1
        if self.captures in self.fail_captures:
            raise FrameCaptureFailed(f"capture {self.captures} failed")
        return self._png

    def close(self):
        self.closed = True

    def interactions(self):
        return [c for c in self.calls if c[0] in ("click", "hover", "focus", "navigate", "scroll")]


class ScriptedPlanner:
    """Returns a fixed first plan, then pops continuations (empty when exhausted)."""

    def __init__(self, initial, continuations=()):
        self.initial = list(initial)
        self.continuations = [list(c) for c in continuations]
        self.plan_calls = 0
        self.summaries = []

    def plan_actions(self, descriptor, goal):
        self.plan_calls += 1
        return list(self.initial)

    def continue_actions(self, descriptor, goal, completed_summary):
        self.summaries.append(completed_summary)
        if not self.continuations:
            return []
        return self.continuations.pop(0)


class CountingAnalyzer:
    def __init__(self):
        self.calls = 0

    def __call__(self, session):
        self.calls += 1
        return PageDescriptor(url="https://example.test/", title=f"Page {self.calls}")


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda _s: None)


@pytest.fixture
def elements():
    return {
        "#a": Rect(x=10, y=10, width=20, height=10),
        "#b": Rect(x=30, y=20, width=10, height=10),
        "#c": Rect(x=0, y=0, width=8, height=8),
        "#d": Rect(x=40, y=5, width=16, height=6),
        "#e": Rect(x=20, y=25, width=10, height=6),
        "#name": Rect(x=5, y=20, width=40, height=8),
        "#next": Rect(x=50, y=30, width=10, height=4),
    }


@pytest.fixture
def fake_session(elements):
    return FakeSession(elements=elements)


@pytest.fixture
def session_cls():
    return FakeSession


@pytest.fixture
def planner_cls():
    return ScriptedPlanner


@pytest.fixture
def analyzer():
    return CountingAnalyzer()
