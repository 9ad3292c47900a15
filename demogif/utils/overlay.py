"""
Cursor overlay: burns an arrow cursor and click ripples into captured frames.

Screenshots never contain the real mouse pointer, so the cursor samples
recorded during execution are drawn back in afterwards.
"""

import math
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from ..core.types import CursorSample

RGBA = Tuple[int, int, int, int]

CURSOR_OUTLINE: RGBA = (0, 0, 0, 255)
CURSOR_FILL: RGBA = (255, 255, 255, 255)
RIPPLE_COLOR: RGBA = (66, 133, 244, 100)
RIPPLE_RADIUS = 15

# Arrow outline, relative to the cursor tip
CURSOR_POINTS = [
    (0, 0),
    (0, 16),
    (4, 12),
    (7, 18),
    (10, 17),
    (7, 11),
    (12, 11),
]


def ease_in_out(t: float) -> float:
    """Quadratic ease-in-out on [0, 1]."""
    if t < 0.5:
        return 2 * t * t
    return 1 - 2 * (1 - t) * (1 - t)


def lerp_point(start: Tuple[int, int], end: Tuple[int, int], t: float) -> Tuple[int, int]:
    x = int(start[0] + t * (end[0] - start[0]))
    y = int(start[1] + t * (end[1] - start[1]))
    return x, y


def interpolate_positions(
    waypoints: Sequence[Optional[CursorSample]], frame_count: int
) -> List[Optional[CursorSample]]:
    """Spread M waypoints across N frames, easing between neighbours."""
    if frame_count <= 0:
        return []
    if not waypoints:
        return [None] * frame_count

    m = len(waypoints)
    result: List[Optional[CursorSample]] = []
    for i in range(frame_count):
        if i == frame_count - 1:
            result.append(waypoints[-1])
            continue

        pos = i / frame_count * m
        idx = min(int(pos), m - 1)
        current = waypoints[idx]
        nxt = waypoints[idx + 1] if idx < m - 1 else None
        if current is None or nxt is None:
            result.append(current)
            continue

        progress = ease_in_out(pos - idx)
        x, y = lerp_point((current.x, current.y), (nxt.x, nxt.y), progress)
        result.append(CursorSample(x=x, y=y, state=current.state, click=current.click))
    return result


def set_pixel_safe(pixels, size: Tuple[int, int], x: int, y: int, color: RGBA) -> None:
    w, h = size
    if 0 <= x < w and 0 <= y < h:
        pixels[x, y] = color


def draw_line(pixels, size, x1: int, y1: int, x2: int, y2: int, color: RGBA) -> None:
    """Bresenham line between two points, inclusive."""
    dx = abs(x2 - x1)
    dy = abs(y2 - y1)
    sx = 1 if x1 < x2 else -1
    sy = 1 if y1 < y2 else -1
    err = dx - dy

    while True:
        set_pixel_safe(pixels, size, x1, y1, color)
        if x1 == x2 and y1 == y2:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x1 += sx
        if e2 < dx:
            err += dx
            y1 += sy


def is_inside_cursor(dx: int, dy: int) -> bool:
    if dy < 0 or dy > 16 or dx < 0:
        return False
    # Head of the arrow
    if dy <= 11:
        return dx <= dy * 12 // 16
    # Shaft
    return dx <= 4


def draw_cursor(pixels, size, x: int, y: int) -> None:
    for dy in range(18):
        for dx in range(13):
            if is_inside_cursor(dx, dy):
                set_pixel_safe(pixels, size, x + dx, y + dy, CURSOR_FILL)

    n = len(CURSOR_POINTS)
    for i in range(n):
        p1 = CURSOR_POINTS[i]
        p2 = CURSOR_POINTS[(i + 1) % n]
        draw_line(pixels, size, x + p1[0], y + p1[1], x + p2[0], y + p2[1], CURSOR_OUTLINE)


def draw_click_ripple(pixels, size, x: int, y: int, radius: int = RIPPLE_RADIUS) -> None:
    for angle in range(360):
        rad = math.radians(angle)
        px = x + int(radius * math.cos(rad))
        py = y + int(radius * math.sin(rad))
        set_pixel_safe(pixels, size, px, py, RIPPLE_COLOR)
        set_pixel_safe(pixels, size, px + 1, py, RIPPLE_COLOR)
        set_pixel_safe(pixels, size, px, py + 1, RIPPLE_COLOR)


def draw_cursor_on_frame(frame: Image.Image, cursor: Optional[CursorSample]) -> Image.Image:
    base = frame.convert("RGBA")
    if cursor is None:
        return base.convert("RGB")

    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    pixels = layer.load()
    if cursor.click:
        draw_click_ripple(pixels, layer.size, cursor.x, cursor.y)
    # Same glyph for every cursor state
    draw_cursor(pixels, layer.size, cursor.x, cursor.y)

    return Image.alpha_composite(base, layer).convert("RGB")


def apply_cursor(
    frames: Sequence[Image.Image], cursors: Sequence[Optional[CursorSample]]
) -> List[Image.Image]:
    """Return new frames with the cursor drawn in; inputs are left untouched."""
    if not cursors:
        return list(frames)

    if len(cursors) == len(frames):
        resolved = list(cursors)
    else:
        resolved = interpolate_positions(cursors, len(frames))

    return [draw_cursor_on_frame(frame, pos) for frame, pos in zip(frames, resolved)]
