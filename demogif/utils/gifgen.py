from collections import Counter
from pathlib import Path
from typing import List, Sequence, Tuple, Union

from PIL import GifImagePlugin, Image

from ..core.config import DEFAULT_MAX_WIDTH
from .imaging import output_size, resize_frame

RGBA = Tuple[int, int, int, int]

PALETTE_SIZE = 256
TRANSPARENT: RGBA = (0, 0, 0, 0)
SAMPLE_STEP = 4
# Leave each frame in place; the next one is drawn over it
DISPOSAL_NONE = 1


def frame_delay(fps: int) -> int:
    """Per-frame display delay in hundredths of a second."""
    # Half-up rounding; GIF players treat 0 as "as fast as possible"
    return max(int(100 / fps + 0.5), 1)


def build_palette(img: Image.Image) -> List[RGBA]:
    """Most frequent colours of a frame, slot 0 reserved for transparency."""
    rgba = img.convert("RGBA")
    pixels = rgba.load()
    w, h = rgba.size

    counts: Counter = Counter()
    for y in range(0, h, SAMPLE_STEP):
        for x in range(0, w, SAMPLE_STEP):
            counts[pixels[x, y]] += 1

    palette: List[RGBA] = [TRANSPARENT]
    for color, _ in counts.most_common(PALETTE_SIZE - 1):
        palette.append(color)

    # Pad with greys so the table is always full
    while len(palette) < PALETTE_SIZE:
        gray = len(palette)
        palette.append((gray, gray, gray, 255))
    return palette


def _palette_image(palette: Sequence[RGBA]) -> Image.Image:
    # Opaque colours shifted down one slot; the spare last slot repeats the
    # previous colour so a nearest-colour search never lands on it first.
    opaque = [c[:3] for c in palette[1:]]
    opaque.append(opaque[-1])
    flat: List[int] = []
    for rgb in opaque:
        flat.extend(rgb)
    pal_img = Image.new("P", (1, 1))
    pal_img.putpalette(flat)
    return pal_img


def quantize_frame(img: Image.Image, palette: Sequence[RGBA], pal_img: Image.Image) -> Image.Image:
    """Map a frame onto the shared palette with Floyd-Steinberg dithering."""
    paletted = img.convert("RGB").quantize(
        palette=pal_img, dither=Image.Dither.FLOYDSTEINBERG)
    # Move every index up by one so slot 0 stays the transparent colour
    shifted = paletted.remap_palette([PALETTE_SIZE - 1] + list(range(PALETTE_SIZE - 1)))
    flat: List[int] = []
    for color in palette:
        flat.extend(color[:3])
    shifted.putpalette(flat)
    return shifted


def _write_frames(out: Path, paletted: Sequence[Image.Image], delay: int) -> None:
    """Write one image block per frame, each with the same delay.

    Image.save(save_all=True) merges a frame identical to the previous one and
    sums their durations; hold and wait frames must each stay a frame.
    """
    header, _ = GifImagePlugin.getheader(paletted[0], info={"loop": 0, "transparency": 0})
    with open(out, "wb") as fp:
        for chunk in header:
            fp.write(chunk)
        for frame in paletted:
            for chunk in GifImagePlugin.getdata(
                frame, duration=delay * 10, transparency=0, disposal=DISPOSAL_NONE
            ):
                fp.write(chunk)
        fp.write(b";")


def generate_gif(
    frames: Sequence[Image.Image],
    output_path: Union[str, Path],
    fps: int,
    max_width: int = DEFAULT_MAX_WIDTH,
) -> int:
    """Encode frames as an endlessly looping GIF and return its size in bytes."""
    if not frames:
        print("[GIF] No frames to encode; nothing written.")
        return 0

    width = max_width or DEFAULT_MAX_WIDTH
    size = output_size(frames[0], width)
    delay = frame_delay(fps)

    resized = [resize_frame(f, size) for f in frames]
    palette = build_palette(resized[0])
    pal_img = _palette_image(palette)
    paletted = [quantize_frame(f, palette, pal_img) for f in resized]

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    _write_frames(out, paletted, delay)
    size_bytes = out.stat().st_size
    print(f"[GIF] Wrote {len(paletted)} frames ({size[0]}x{size[1]}) to {out} ({size_bytes} bytes)")
    return size_bytes
