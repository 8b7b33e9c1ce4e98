from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image


@dataclass(frozen=True)
class ScriptSegment:
    text: str
    duration: float

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ValueError("segment text must be non-empty")
        if not self.duration > 0:
            raise ValueError(f"segment duration must be > 0, got {self.duration!r}")


@dataclass(frozen=True)
class AdScript:
    segments: Sequence[ScriptSegment]
    total_duration: Optional[float] = None

    def __post_init__(self):
        segs = tuple(self.segments)
        if not segs:
            raise ValueError("script needs at least one segment")
        total = sum(s.duration for s in segs)
        if self.total_duration is None:
            object.__setattr__(self, "total_duration", total)
        elif abs(self.total_duration - total) > 1e-6:
            raise ValueError(
                f"total_duration {self.total_duration} != sum of segments {total}"
            )
        object.__setattr__(self, "segments", segs)

    @property
    def durations(self) -> List[float]:
        return [s.duration for s in self.segments]

    @classmethod
    def from_dict(cls, d: dict) -> "AdScript":
        segs = [ScriptSegment(text=s["text"], duration=float(s["duration"])) for s in d["segments"]]
        return cls(segs, d.get("totalDuration", d.get("total_duration")))


@dataclass
class ScrapedData:
    title: str
    description: str
    images: List[str] = field(default_factory=list)
    primary_color: str = "#3b82f6"
    url: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> "ScrapedData":
        return cls(
            title=d["title"],
            description=d["description"],
            images=list(d.get("images", [])),
            primary_color=d.get("primaryColor", d.get("primary_color", "#3b82f6")),
            url=d.get("url", ""),
        )


@dataclass
class VisualAsset:
    url: str
    image: Image.Image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


@dataclass
class AudioClip:
    """Float PCM shaped (frames, channels), values nominally in [-1, 1]."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        if self.samples.ndim == 1:
            self.samples = self.samples[:, None]

    @property
    def channels(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate

    def __len__(self):
        return len(self.samples)


@dataclass
class MediaArtifact:
    data: bytes
    mime_type: str = "video/mp4"
