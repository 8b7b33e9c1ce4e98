import logging
from functools import lru_cache
from typing import Sequence, Tuple

from PIL import ImageColor, ImageFont

log = logging.getLogger(__name__)

FALLBACK_COLOR = (59, 130, 246)  # #3b82f6


def parse_color(value: str, default: Tuple[int, int, int] = FALLBACK_COLOR) -> Tuple[int, int, int]:
    """Any CSS-ish color Pillow understands ("#112233", "rgb(...)", "navy")."""
    try:
        return ImageColor.getrgb(value.strip())[:3]
    except (ValueError, AttributeError):
        log.warning("unusable color %r, falling back to %s", value, default)
        return default


@lru_cache(maxsize=16)
def _load_font(names: Tuple[str, ...], size: int):
    # Pillow default bitmap font is too small; try common fonts, fall back to default.
    for name in names:
        try:
            return ImageFont.truetype(name, size=size)
        except OSError:
            continue
    log.warning("none of %s found, using Pillow's default font", list(names))
    return ImageFont.load_default(size=size)


def caption_font(names: Sequence[str], size: int):
    return _load_font(tuple(names), int(size))
