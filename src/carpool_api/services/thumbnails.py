from __future__ import annotations

import io

from PIL import Image

JPEG_QUALITY = 75


def make_thumbnail(raw: bytes, width: int) -> bytes:
    """
    Downscale an image to `width` pixels wide (aspect ratio kept) and re-encode it as JPEG.

    Raises whatever Pillow raises for undecodable or oversized input
    (UnidentifiedImageError, DecompressionBombError, OSError, ValueError);
    callers decide how to degrade.
    """
    with Image.open(io.BytesIO(raw)) as img:
        img.load()
        src_w, src_h = img.size
        height = max(1, round(width / max(src_w, 1) * src_h))

        thumb = img.convert("RGB").resize((width, height), Image.Resampling.LANCZOS)

    out = io.BytesIO()
    thumb.save(out, format="JPEG", quality=JPEG_QUALITY)
    return out.getvalue()
