from types import SimpleNamespace

import pytest

from conftest import FakeSession
from demogif.agents.planner import ActionPlanner, parse_actions_json
from demogif.core.errors import PlanningFailure
from demogif.core.history import CompletedActionLog, format_plan
from demogif.core.types import Action, ActionType, PageDescriptor
from demogif.dom import page_map
from demogif.dom.page_map import analyze_page


class FakeLLM:
    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []

    def invoke(self, messages):
        self.prompts.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(content=reply)


DESCRIPTOR = PageDescriptor(url="https://example.test/", title="Example")


def test_parse_plain_array():
    actions = parse_actions_json('[{"action": "click", "selector": "#go", "checkpoint": true}]')

    assert actions == [Action(type=ActionType.CLICK, selector="#go", checkpoint=True)]


def test_parse_array_inside_chatter():
    response = ('Sure! Here you go:\n'
                '[{"action": "type", "selector": "#q", "text": "a]b"}, {"action": "wait", "wait": 500}]\n'
                'Let me know if you need more.')

    actions = parse_actions_json(response)

    assert [a.type for a in actions] == [ActionType.TYPE, ActionType.WAIT]
    assert actions[0].text == "a]b"
    assert actions[1].wait_ms == 500


def test_parse_fenced_block():
    response = '```json\n[{"action": "navigate", "url": "https://example.test/next"}]\n```'

    actions = parse_actions_json(response)

    assert actions[0].url == "https://example.test/next"


def test_parse_wrapped_actions_object():
    actions = parse_actions_json('{"actions": [{"action": "hover", "selector": ".menu"}]}')

    assert actions == [Action(type=ActionType.HOVER, selector=".menu")]


def test_invalid_items_are_dropped():
    response = ('[{"action": "click"}, {"action": "teleport", "selector": "#x"}, '
                '{"action": "scroll", "y": 300}, "nonsense"]')

    actions = parse_actions_json(response)

    assert actions == [Action(type=ActionType.SCROLL, y=300)]


def test_response_without_array_is_planning_failure():
    with pytest.raises(PlanningFailure):
        parse_actions_json("I could not find anything to click.")


def test_action_dict_shape_is_stable():
    data = {"action": "type", "selector": "#q", "text": "hi", "wait": 200, "checkpoint": True}

    action = Action.from_dict(data)

    assert action.to_dict() == data
    assert Action.from_dict({"type": "CLICK", "selector": "#a"}).type is ActionType.CLICK


def test_planner_sends_page_map_and_goal():
    llm = FakeLLM(['[{"action": "click", "selector": "#go"}]'])
    planner = ActionPlanner(model="test-model", llm=llm)

    actions = planner.plan_actions(DESCRIPTOR, "press go")

    assert [a.selector for a in actions] == ["#go"]
    system, user = llm.prompts[0]
    assert "checkpoint" in system.content
    assert "https://example.test/" in user.content
    assert "press go" in user.content


def test_continuation_includes_completed_summary():
    llm = FakeLLM(["[]"])
    planner = ActionPlanner(model="test-model", llm=llm)
    log = CompletedActionLog()
    log.extend([Action(type=ActionType.CLICK, selector="#login", checkpoint=True)])

    actions = planner.continue_actions(DESCRIPTOR, "log in", log.summary())

    assert actions == []
    assert "1. Clicked #login" in llm.prompts[0][1].content


def test_llm_errors_become_planning_failures():
    planner = ActionPlanner(model="test-model", llm=FakeLLM([RuntimeError("rate limited")]))

    with pytest.raises(PlanningFailure, match="rate limited"):
        planner.plan_actions(DESCRIPTOR, "anything")


def test_empty_reply_is_planning_failure():
    planner = ActionPlanner(model="test-model", llm=FakeLLM(["   "]))

    with pytest.raises(PlanningFailure):
        planner.plan_actions(DESCRIPTOR, "anything")


def test_completed_log_summary_format():
    log = CompletedActionLog()
    log.extend([
        Action(type=ActionType.TYPE, selector="#user", text="bob"),
        Action(type=ActionType.NAVIGATE, url="https://example.test/a"),
        Action(type=ActionType.WAIT, wait_ms=300),
    ])

    assert log.summary() == (
        "1. Typed 'bob' into #user\n"
        "2. Navigated to https://example.test/a\n"
        "3. Waited 300ms\n"
    )
    assert len(log) == 3


def test_plan_lines_mark_checkpoints():
    lines = format_plan([Action(type=ActionType.CLICK, selector="#go", checkpoint=True)])

    assert lines == ["  [1] click → #go [checkpoint]"]


class MappedSession(FakeSession):
    def __init__(self, results):
        super().__init__()
        self.results = results

    def evaluate(self, script, arg=None):
        for key, value in self.results.items():
            if script == key:
                return value
        return None


def test_analyze_page_builds_descriptor():
    long_label = "x" * 80
    session = MappedSession({
        page_map.COUNT_VISIBLE_JS: 3,
        "() => window.location.href": "https://example.test/app",
        "() => document.title": "App",
        page_map.EXTRACT_ELEMENTS_JS: [
            {"selector": "#go", "role": "button", "label": long_label},
            {"selector": "", "role": "link", "label": "dropped"},
        ],
        page_map.EXTRACT_NAV_JS: [{"selector": "nav a", "text": "Docs", "href": "/docs"}],
        page_map.DETECT_SPA_JS: True,
    })

    descriptor = analyze_page(session)

    assert ("load", None) in session.calls
    assert descriptor.url == "https://example.test/app"
    assert descriptor.title == "App"
    assert [e.selector for e in descriptor.elements] == ["#go"]
    assert descriptor.elements[0].label == "x" * 50
    assert descriptor.navigation[0].href == "/docs"
    assert descriptor.is_spa
    assert descriptor.to_dict()["elements"][0]["role"] == "button"
