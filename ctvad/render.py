import io
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import requests
from PIL import Image, ImageDraw

from .errors import ImageLoadError
from .layout import wrap_text
from .models import AdScript, VisualAsset
from .theme import caption_font, parse_color

log = logging.getLogger(__name__)


def _fetch_image(url: str, timeout: float, user_agent: Optional[str] = None) -> VisualAsset:
    if url.startswith("data:"):
        raise ImageLoadError("inline data URLs are not loaded")
    try:
        if url.startswith(("http://", "https://")):
            headers = {"User-Agent": user_agent} if user_agent else {}
            r = requests.get(url, timeout=timeout, headers=headers)
            r.raise_for_status()
            im = Image.open(io.BytesIO(r.content))
        else:
            im = Image.open(url)
        im.load()
        return VisualAsset(url=url, image=im.convert("RGB"))
    except (requests.RequestException, OSError, Image.DecompressionBombError) as e:
        raise ImageLoadError(f"{url}: {e}") from e


def load_images(
    urls: Sequence[str],
    timeout: float = 15,
    max_workers: int = 8,
    user_agent: Optional[str] = None,
) -> List[VisualAsset]:
    """Fetch every URL concurrently; failures are dropped, order is kept."""
    if not urls:
        return []

    def _one(url):
        try:
            return _fetch_image(url, timeout, user_agent)
        except ImageLoadError as e:
            log.warning("dropping image %s", e)
            return None

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(urls)))) as ex:
        results = list(ex.map(_one, urls))
    assets = [a for a in results if a is not None]
    log.info("loaded %d/%d images", len(assets), len(urls))
    return assets


class SegmentCursor:
    """Which segment is on screen at frame f.

    Segment i ends at the first frame whose timestamp reaches the cumulative
    duration of segments 0..i, so boundaries never drift from the audio.
    Walks forward only, so a full sweep over the video costs
    O(frames + segments). Past the end of the script it holds the last segment.
    """

    def __init__(self, durations: Sequence[float], fps: int):
        if not durations:
            raise ValueError("need at least one segment")
        self.ends = []
        elapsed = 0.0
        for d in durations:
            elapsed += d
            self.ends.append(int(math.ceil(elapsed * fps - 1e-9)))
        self.index = 0
        self.start_frame = 0
        self._last = -1

    def advance(self, frame: int) -> int:
        if frame < self._last:
            raise ValueError(f"cursor cannot rewind from frame {self._last} to {frame}")
        self._last = frame
        last = len(self.ends) - 1
        while self.index < last and frame >= self.ends[self.index]:
            self.start_frame = self.ends[self.index]
            self.index += 1
        return self.index


def image_index(segment_index: int, image_count: int) -> int:
    return segment_index % max(1, image_count)


def cover_fit(img: Image.Image, w: int, h: int) -> Image.Image:
    """Scale so the image covers w x h, center it, crop the overflow."""
    scale = max(w / img.width, h / img.height)
    sw = max(w, int(math.ceil(img.width * scale)))
    sh = max(h, int(math.ceil(img.height * scale)))
    resized = img.resize((sw, sh), Image.LANCZOS)
    left = (sw - w) // 2
    top = (sh - h) // 2
    return resized.crop((left, top, left + w, top + h))


class FrameCompositor:
    """Color fill, faded cover-fit image, caption band, caption text."""

    def __init__(self, cfg: dict, primary_color: str, images: Sequence[VisualAsset]):
        video = cfg["video"]
        style = cfg["style"]
        self.w = int(video["width"])
        self.h = int(video["height"])
        self.style = style
        self.color = parse_color(primary_color)
        self.images = list(images)
        self.font = caption_font(style["font_names"], style["font_size"])
        self.max_text_width = self.w - 2 * int(style["margin"])
        self._backgrounds: Dict[int, Image.Image] = {}

    def measure(self, text: str) -> float:
        return self.font.getlength(text)

    def background(self, segment_index: int) -> Image.Image:
        if not self.images:
            return Image.new("RGB", (self.w, self.h), self.color)
        k = image_index(segment_index, len(self.images))
        if k not in self._backgrounds:
            base = Image.new("RGB", (self.w, self.h), self.color)
            fitted = cover_fit(self.images[k].image, self.w, self.h)
            self._backgrounds[k] = Image.blend(base, fitted, float(self.style["image_alpha"]))
        return self._backgrounds[k].copy()

    def caption_lines(self, text: str) -> List[str]:
        return wrap_text(text, self.max_text_width, self.measure, self.style.get("max_lines"))

    def compose(self, segment_index: int, text: str) -> Image.Image:
        st = self.style
        img = self.background(segment_index)
        d = ImageDraw.Draw(img, "RGBA")

        band_h = int(st["band_height"])
        d.rectangle((0, self.h - band_h, self.w, self.h), fill=(0, 0, 0, int(round(255 * st["band_alpha"]))))

        lines = self.caption_lines(text)
        line_h = int(st["line_height"])
        center_y = self.h - band_h / 2
        start_y = center_y - (len(lines) - 1) * line_h / 2
        fill = parse_color(st.get("text_color", "#ffffff"))
        off = int(st.get("shadow_offset", 3))

        for i, ln in enumerate(lines):
            l, t, r, b = d.textbbox((0, 0), ln, font=self.font)
            x = self.w / 2 - (l + r) / 2
            y = start_y + i * line_h - (t + b) / 2
            if st.get("shadow", True):
                d.text((x + off, y + off), ln, font=self.font, fill=(0, 0, 0, 160))
            d.text((x, y), ln, font=self.font, fill=fill)
        return img


def frame_pattern(total_frames: int) -> str:
    digits = max(4, len(str(max(0, total_frames - 1))))
    return f"frame%0{digits}d.png"


def iter_frames(
    cfg: dict,
    primary_color: str,
    script: AdScript,
    images: Sequence[VisualAsset],
) -> Iterator[Tuple[int, int, Image.Image]]:
    """Yield (frame_number, segment_index, frame) for the whole video."""
    fps = int(cfg["video"]["fps"])
    total = int(round(fps * float(cfg["video"]["duration_s"])))
    comp = FrameCompositor(cfg, primary_color, images)
    cursor = SegmentCursor(script.durations, fps)

    cached_index, cached = None, None
    for f in range(total):
        idx = cursor.advance(f)
        if idx != cached_index:
            # no animation: a segment's frame is the same for its whole window
            cached_index, cached = idx, comp.compose(idx, script.segments[idx].text)
        yield f, idx, cached


def render_frames(
    cfg: dict,
    primary_color: str,
    script: AdScript,
    images: Sequence[VisualAsset],
    frames_dir: Path,
    on_progress: Optional[Callable[[float], None]] = None,
) -> int:
    """Write every frame as a numbered PNG; returns the frame count."""
    fps = int(cfg["video"]["fps"])
    total = int(round(fps * float(cfg["video"]["duration_s"])))
    pattern = frame_pattern(total)
    frames_dir = Path(frames_dir)
    frames_dir.mkdir(parents=True, exist_ok=True)

    png, png_for = None, None
    count = 0
    for f, idx, frame in iter_frames(cfg, primary_color, script, images):
        if png_for is not frame:
            buf = io.BytesIO()
            frame.save(buf, "PNG")
            png, png_for = buf.getvalue(), frame
        (frames_dir / (pattern % f)).write_bytes(png)
        count += 1
        if on_progress and f % fps == 0:
            on_progress(f / total)

    if on_progress:
        on_progress(1.0)
    log.info("rendered %d frames into %s", count, frames_dir)
    return count
