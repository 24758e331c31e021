from __future__ import annotations
import io
from typing import Iterable

from PIL import Image, UnidentifiedImageError

DEFAULT_SIZE = 512


def allowed_image(filename: str, exts: Iterable[str]) -> bool:
    """Check the file extension against the configured image extensions."""
    if not filename or "." not in filename:
        return False
    ext = filename.rsplit(".", 1)[1].lower()
    return ext in set(exts)


def open_image(file_or_stream) -> Image.Image:
    """Load an image or raise ValueError."""
    try:
        img = Image.open(file_or_stream)
        img.load()
        return img
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError("Invalid image") from e


def square(img: Image.Image, size: int = DEFAULT_SIZE) -> Image.Image:
    """Center-crop to square and resize with LANCZOS."""
    img = img.convert("RGBA")
    w, h = img.size
    side = min(w, h)
    left = (w - side) // 2
    top = (h - side) // 2
    return img.crop((left, top, left + side, top + side)).resize((size, size), Image.LANCZOS)


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def normalize_badge_image(data: bytes, size: int = DEFAULT_SIZE) -> bytes:
    """Validate uploaded badge artwork and return it as a square PNG."""
    return png_bytes(square(open_image(io.BytesIO(data)), size))
