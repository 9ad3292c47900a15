from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..agents.planner import ActionPlanner
from ..dom.page_map import analyze_page
from ..utils.gifgen import generate_gif
from ..utils.overlay import apply_cursor
from .browser import BrowserSession
from .config import RunConfig, load_config
from .errors import IterationBoundReached
from .executor import capture_hold_frames, start_cursor_for
from .graph import build_graph, recursion_limit_for
from .history import CompletedActionLog
from .types import FrameSample, RunState


@dataclass
class RunResult:
    frames: List[FrameSample] = field(default_factory=list)
    status: str = "completed"
    completion_via: Optional[str] = None
    warning: Optional[IterationBoundReached] = None
    iterations: int = 0
    completed: CompletedActionLog = field(default_factory=CompletedActionLog)
    dropped_frames: int = 0
    skipped_actions: int = 0
    output_path: Optional[str] = None
    size_bytes: int = 0


def run_loop(
    session,
    goal: str,
    config: RunConfig,
    planner,
    analyzer: Callable = analyze_page,
) -> RunResult:
    """Record the whole goal on an already open session: hold, plan/execute rounds, hold."""
    opening = start_cursor_for(config)
    frames, dropped = capture_hold_frames(session, config, opening)

    state: RunState = {
        "goal": goal,
        "run_config": config,
        "session": session,
        "planner": planner,
        "analyzer": analyzer,
        "actions": [],
        "frames": frames,
        "last_cursor": None,
        "completed": CompletedActionLog(),
        "iteration": 0,
        "hit_checkpoint": False,
        "done": False,
        "completion_via": None,
        "warning": None,
        "dropped_frames": dropped,
        "skipped_actions": 0,
    }

    app = build_graph()
    final_state = app.invoke(
        state,
        config={"run_name": "demogif_recording",
                "recursion_limit": recursion_limit_for(config.max_iterations)},
    )

    closing = final_state.get("last_cursor") or opening
    hold, dropped = capture_hold_frames(session, config, closing)
    all_frames = list(final_state["frames"]) + hold

    result = RunResult(
        frames=all_frames,
        completion_via=final_state.get("completion_via"),
        warning=final_state.get("warning"),
        iterations=final_state.get("iteration", 0),
        completed=final_state["completed"],
        dropped_frames=final_state.get("dropped_frames", 0) + dropped,
        skipped_actions=final_state.get("skipped_actions", 0),
    )
    print(
        f"[Orchestrator] Recording finished after {result.iterations} round(s): "
        f"{len(all_frames)} frames, {result.skipped_actions} skipped action(s), "
        f"{result.dropped_frames} dropped frame(s)")
    return result


def run(
    url: str,
    goal: str,
    output_path: Union[str, Path],
    config: Optional[RunConfig] = None,
    planner=None,
    session_factory: Optional[Callable] = None,
    analyzer: Callable = analyze_page,
) -> RunResult:
    """Open the page, record the goal, burn in the cursor and write the GIF."""
    config = config or load_config()
    if planner is None:
        planner = ActionPlanner(model=config.model)
    opener = session_factory or BrowserSession.open

    print(f"[Orchestrator] Starting run: {goal!r} on {url}")
    session = opener(url, config)
    try:
        result = run_loop(session, goal, config, planner, analyzer)
    except Exception as e:
        print(f"[Orchestrator] Run failed: {e}")
        raise
    finally:
        session.close()

    images = [f.image for f in result.frames]
    if config.cursor_overlay:
        print("[Orchestrator] Applying cursor overlay...")
        images = apply_cursor(images, [f.cursor for f in result.frames])

    print(f"[Orchestrator] Generating GIF ({len(images)} frames)...")
    result.size_bytes = generate_gif(images, output_path, config.fps, config.max_width)
    result.output_path = str(output_path)
    print(f"[Orchestrator] ✓ Saved to {output_path} ({result.size_bytes / (1024 * 1024):.1f} MB)")
    return result


def print_summary(goal: str, result: RunResult) -> None:
    print("\n=== demogif result ===")
    print("Goal:", goal)
    print("Output:", result.output_path)
    print("Rounds:", result.iterations, f"({result.completion_via})")
    print("Frames:", len(result.frames))
    if result.warning:
        print("Warning:", result.warning)
    if len(result.completed):
        print("Completed actions:")
        for line in result.completed.summary().splitlines():
            print(f"  {line}")
