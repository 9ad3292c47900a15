import time
from typing import List, Optional, Sequence, Tuple

from ..utils.imaging import decode_frame
from ..utils.overlay import ease_in_out, lerp_point
from .config import RunConfig
from .errors import ElementNotFound, FrameCaptureFailed
from .types import Action, ActionType, CursorSample, CursorState, ExecutionResult, FrameSample

MIN_MOVEMENT_STEPS = 5
MIN_CLICK_FRAMES = 3
MAX_WAIT_FRAMES = 60  # ~3 seconds at 20 fps
SCROLL_STEPS = 10
TYPING_DELAY_MS = 50
TYPE_FRAME_EVERY = 2


class _Recorder:
    """Collects frames for one action and counts the ones that could not be captured."""

    def __init__(self, session):
        self.session = session
        self.frames: List[FrameSample] = []
        self.dropped = 0

    def capture(self, cursor: Optional[CursorSample]) -> bool:
        try:
            image = decode_frame(self.session.screenshot())
        except FrameCaptureFailed:
            self.dropped += 1
            return False
        self.frames.append(FrameSample(image=image, cursor=cursor))
        return True


def _sleep_ms(ms: float) -> None:
    if ms > 0:
        time.sleep(ms / 1000.0)


def start_cursor_for(config: RunConfig) -> CursorSample:
    """Cursor at the viewport centre, used before anything has moved it."""
    return CursorSample(
        x=config.viewport_width // 2,
        y=config.viewport_height // 2,
        state=CursorState.DEFAULT,
    )


def _wait_frame_count(wait_ms: int, interval_ms: int) -> int:
    return min(max(wait_ms // interval_ms, 1), MAX_WAIT_FRAMES)


def _capture_wait(rec: _Recorder, cursor: CursorSample, wait_ms: int, interval_ms: int) -> None:
    for _ in range(_wait_frame_count(wait_ms, interval_ms)):
        rec.capture(cursor)
        _sleep_ms(interval_ms)


def _move_to(
    rec: _Recorder,
    cursor: CursorSample,
    target: Tuple[int, int],
    state: CursorState,
    config: RunConfig,
) -> None:
    """Glide the real mouse from the cursor to the target, one frame per step."""
    steps = max(config.fps // 2, MIN_MOVEMENT_STEPS)
    start = (cursor.x, cursor.y)
    for i in range(steps + 1):
        t = ease_in_out(i / steps)
        x, y = lerp_point(start, target, t)
        rec.session.move_cursor(x, y)
        rec.capture(CursorSample(x=x, y=y, state=state))
        _sleep_ms(config.frame_interval_ms / 2)


def _click(rec: _Recorder, action: Action, cursor: CursorSample, config: RunConfig) -> CursorSample:
    x, y = rec.session.find_element(action.selector).center()
    _move_to(rec, cursor, (x, y), CursorState.POINTER, config)

    rec.session.click(action.selector)

    # Burst with the click flag set so the ripple shows up
    for _ in range(max(config.fps // 3, MIN_CLICK_FRAMES)):
        rec.capture(CursorSample(x=x, y=y, state=CursorState.POINTER, click=True))
        _sleep_ms(config.frame_interval_ms)

    return CursorSample(x=x, y=y, state=CursorState.POINTER)


def _hover(rec: _Recorder, action: Action, cursor: CursorSample, config: RunConfig) -> CursorSample:
    x, y = rec.session.find_element(action.selector).center()
    _move_to(rec, cursor, (x, y), CursorState.POINTER, config)

    rec.session.hover(action.selector)

    resting = CursorSample(x=x, y=y, state=CursorState.POINTER)
    for _ in range(max(config.fps // 4, 1)):
        rec.capture(resting)
        _sleep_ms(config.frame_interval_ms)
    return resting


def _type(rec: _Recorder, action: Action, cursor: CursorSample, config: RunConfig) -> CursorSample:
    x, y = rec.session.find_element(action.selector).center()
    _move_to(rec, cursor, (x, y), CursorState.TEXT, config)

    rec.session.focus_and_clear(action.selector)
    resting = CursorSample(x=x, y=y, state=CursorState.TEXT)
    rec.capture(resting)

    text = action.text
    last = len(text) - 1
    for i, ch in enumerate(text):
        rec.session.type_char(ch)
        if i % TYPE_FRAME_EVERY == 0 or i == last:
            _sleep_ms(TYPING_DELAY_MS)
            rec.capture(resting)
        else:
            _sleep_ms(TYPING_DELAY_MS / 2)

    # Hold on the finished text
    for _ in range(max(config.fps // 4, 1)):
        rec.capture(resting)
        _sleep_ms(config.frame_interval_ms)
    return resting


def _scroll(rec: _Recorder, action: Action, cursor: CursorSample, config: RunConfig) -> CursorSample:
    step_x = action.x / SCROLL_STEPS
    step_y = action.y / SCROLL_STEPS
    for _ in range(SCROLL_STEPS):
        rec.session.scroll(step_x, step_y)
        _sleep_ms(config.frame_interval_ms)
        rec.capture(cursor)
    return cursor


def _wait(rec: _Recorder, action: Action, cursor: CursorSample, config: RunConfig) -> CursorSample:
    _capture_wait(rec, cursor, action.wait_ms or 0, config.frame_interval_ms)
    return cursor


def _navigate(rec: _Recorder, action: Action, cursor: CursorSample, config: RunConfig) -> CursorSample:
    rec.session.navigate(action.url)
    rec.session.wait_for_load()
    rec.capture(cursor)
    return cursor


_HANDLERS = {
    ActionType.CLICK: _click,
    ActionType.TYPE: _type,
    ActionType.SCROLL: _scroll,
    ActionType.HOVER: _hover,
    ActionType.WAIT: _wait,
    ActionType.NAVIGATE: _navigate,
}


def _describe(action: Action) -> str:
    if action.type is ActionType.NAVIGATE:
        return f"{action.type.value} {action.url}"
    if action.type is ActionType.SCROLL:
        return f"{action.type.value} ({action.x}, {action.y})"
    if action.type is ActionType.WAIT:
        return f"{action.type.value} {action.wait_ms or 0}ms"
    return f"{action.type.value} {action.selector}"


def execute_batch(
    session,
    actions: Sequence[Action],
    config: RunConfig,
    start_cursor: Optional[CursorSample] = None,
) -> ExecutionResult:
    """Run actions in order until the list ends or a checkpoint action finishes.

    Missing elements skip the action (zero frames) and the batch carries on,
    even past a skipped checkpoint. Failed screenshots drop a
    single frame. DriverFailure from navigation propagates.
    """
    interval_ms = config.frame_interval_ms
    cursor = start_cursor or start_cursor_for(config)
    result = ExecutionResult()

    total = len(actions)
    for i, action in enumerate(actions):
        label = f"[Executor]   [{i + 1}/{total}] {_describe(action)}"
        rec = _Recorder(session)
        try:
            new_cursor = _HANDLERS[action.type](rec, action, cursor, config)
        except ElementNotFound as e:
            print(f"{label} ✗ ({e})")
            result.skipped_actions.append(i)
            result.dropped_frames += rec.dropped
            result.action_frame_counts.append(0)
            continue

        cursor = new_cursor
        _capture_wait(rec, cursor, action.wait_ms or config.base_delay_ms, interval_ms)

        result.frames.extend(rec.frames)
        result.dropped_frames += rec.dropped
        result.action_frame_counts.append(len(rec.frames))

        if action.checkpoint:
            print(f"{label} ✓ [checkpoint]")
            result.hit_checkpoint = True
            result.checkpoint_index = i
            break
        print(f"{label} ✓")

    result.last_cursor = cursor
    if result.dropped_frames:
        print(f"[Executor] Dropped {result.dropped_frames} frame(s) that failed to capture.")
    return result


def capture_hold_frames(
    session, config: RunConfig, cursor: Optional[CursorSample]
) -> Tuple[List[FrameSample], int]:
    """One second of frames at a fixed cursor for the opening/closing beat."""
    rec = _Recorder(session)
    for _ in range(config.fps):
        rec.capture(cursor)
    return rec.frames, rec.dropped
