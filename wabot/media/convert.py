"""Image format conversion for stickers."""

import io

from PIL import Image, UnidentifiedImageError


class ConversionError(Exception):
    """Image conversion failure with a user-facing short message."""

    def __init__(self, short_message: str, detail: str = ""):
        self.short_message = short_message
        self.detail = detail
        super().__init__(detail or short_message)


def sticker_to_png(data: bytes) -> bytes:
    """Decode a sticker (WebP, possibly animated) and re-encode it as PNG.

    PNG is lossless, so the pixels of the sticker come through unchanged.
    Animated stickers are reduced to their first frame.
    """
    if not data:
        raise ConversionError("empty sticker", "No sticker bytes to convert")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.seek(0)
            out = io.BytesIO()
            img.save(out, format="PNG")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ConversionError("unreadable sticker", str(e)) from e

    return out.getvalue()
