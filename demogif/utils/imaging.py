from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from ..core.errors import FrameCaptureFailed


def decode_frame(data: bytes) -> Image.Image:
    """Decode screenshot bytes into a fully loaded RGB image."""
    if not data:
        raise FrameCaptureFailed("empty screenshot")
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise FrameCaptureFailed(f"screenshot decode failed: {e}")
    return img.convert("RGB")


def output_size(first: Image.Image, width: int) -> Tuple[int, int]:
    """Target size for a fixed output width, keeping the first frame's aspect ratio."""
    w, h = first.size
    aspect = h / w
    return width, max(int(width * aspect), 1)


def resize_frame(img: Image.Image, size: Tuple[int, int]) -> Image.Image:
    if img.size == size:
        return img.convert("RGB")
    return img.convert("RGB").resize(size, Image.LANCZOS)
