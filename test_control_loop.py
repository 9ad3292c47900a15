import pytest
from PIL import Image

from demogif.core.config import RunConfig
from demogif.core.errors import IterationBoundReached, PlanningFailure
from demogif.core.orchestrator import run, run_loop
from demogif.core.types import Action, ActionType

CONFIG = RunConfig(fps=10, base_delay_ms=100, viewport_width=64, viewport_height=36)
CLICK_FRAMES = 10
HOLD = CONFIG.fps


def click(selector, checkpoint=False):
    return Action(type=ActionType.CLICK, selector=selector, checkpoint=checkpoint)


def clicked(session):
    return [c[1] for c in session.calls if c[0] == "click"]


def test_single_batch_without_checkpoints_completes(fake_session, planner_cls, analyzer):
    planner = planner_cls([click("#a"), click("#b")])

    result = run_loop(fake_session, "click a then b", CONFIG, planner, analyzer)

    assert result.status == "completed"
    assert result.iterations == 1
    assert result.warning is None
    assert planner.plan_calls == 1
    assert planner.summaries == []
    assert analyzer.calls == 1
    assert len(result.frames) == HOLD + 2 * CLICK_FRAMES + HOLD


def test_checkpoint_triggers_reanalysis_and_continuation(fake_session, planner_cls, analyzer):
    first = [click("#a"), click("#b"), click("#c", checkpoint=True), click("#d"), click("#e")]
    planner = planner_cls(first, continuations=[[click("#next")]])

    result = run_loop(fake_session, "goal", CONFIG, planner, analyzer)

    assert clicked(fake_session) == ["#a", "#b", "#c", "#next"]
    assert analyzer.calls == 2
    assert planner.summaries == ["1. Clicked #a\n2. Clicked #b\n3. Clicked #c\n"]
    assert result.iterations == 2
    assert [a.selector for a in result.completed] == ["#a", "#b", "#c", "#next"]


def test_empty_continuation_means_goal_satisfied(fake_session, planner_cls, analyzer):
    planner = planner_cls([click("#a", checkpoint=True)], continuations=[[]])

    result = run_loop(fake_session, "goal", CONFIG, planner, analyzer)

    assert result.status == "completed"
    assert result.completion_via == "goal_satisfied"
    assert result.iterations == 1
    assert len(planner.summaries) == 1
    assert result.warning is None


def test_iteration_bound_stops_after_twenty_rounds(fake_session, planner_cls, analyzer):
    looping = [click("#next", checkpoint=True)]
    planner = planner_cls(looping, continuations=[looping] * 30)

    result = run_loop(fake_session, "goal", CONFIG, planner, analyzer)

    assert result.iterations == 20
    assert isinstance(result.warning, IterationBoundReached)
    assert result.status == "completed"
    assert len(planner.summaries) == 19
    assert len(clicked(fake_session)) == 20
    # Nothing captured during the 20 rounds is thrown away
    assert len(result.frames) == HOLD + 20 * CLICK_FRAMES + HOLD


def test_skipped_actions_are_counted_and_kept_in_the_log(fake_session, planner_cls, analyzer):
    planner = planner_cls([click("#missing"), click("#a", checkpoint=True)], continuations=[[]])

    result = run_loop(fake_session, "goal", CONFIG, planner, analyzer)

    assert result.skipped_actions == 1
    assert planner.summaries == ["1. Clicked #missing\n2. Clicked #a\n"]
    assert [a.selector for a in result.completed] == ["#missing", "#a"]


def test_empty_initial_plan_records_only_hold_frames(fake_session, planner_cls, analyzer):
    planner = planner_cls([])

    result = run_loop(fake_session, "goal", CONFIG, planner, analyzer)

    assert result.iterations == 0
    assert result.completion_via == "empty_plan"
    assert len(result.frames) == 2 * HOLD


def test_closing_hold_uses_last_cursor(fake_session, planner_cls, analyzer):
    planner = planner_cls([click("#a")])

    result = run_loop(fake_session, "goal", CONFIG, planner, analyzer)

    assert (result.frames[0].cursor.x, result.frames[0].cursor.y) == (32, 18)
    assert (result.frames[-1].cursor.x, result.frames[-1].cursor.y) == (20, 15)


def test_run_writes_gif_and_releases_session(fake_session, planner_cls, analyzer, tmp_path):
    planner = planner_cls([click("#a"), click("#b")])
    out = tmp_path / "demo.gif"

    result = run("https://example.test", "goal", out, config=CONFIG.with_overrides(max_width=32),
                 planner=planner, session_factory=lambda url, cfg: fake_session,
                 analyzer=analyzer)

    assert fake_session.closed
    assert out.exists()
    assert result.size_bytes == out.stat().st_size
    assert result.output_path == str(out)
    # Identical hold frames are written out one by one
    with Image.open(out) as gif:
        assert gif.n_frames == len(result.frames)


def test_planning_failure_aborts_without_gif(fake_session, analyzer, tmp_path):
    class FailingPlanner:
        def plan_actions(self, descriptor, goal):
            raise PlanningFailure("model returned prose")

    out = tmp_path / "demo.gif"

    with pytest.raises(PlanningFailure):
        run("https://example.test", "goal", out, config=CONFIG, planner=FailingPlanner(),
            session_factory=lambda url, cfg: fake_session, analyzer=analyzer)

    assert fake_session.closed
    assert not out.exists()
