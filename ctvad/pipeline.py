"""
Generation pipeline: script + images -> narration, frames -> MP4 bytes.

Stages run strictly in order. Narration and image failures degrade the
result (silence, plain color). A broken encoder, an unwritable audio buffer
or a failed write of frames aborts the run, always as a single GenerationError.
"""

import logging
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .audio import assemble_clips
from .config import load_cfg
from .errors import EncoderError, GenerationError, WavEncodeError
from .ffmpeg_utils import EncoderHandle, get_encoder
from .models import AdScript, MediaArtifact, ScrapedData
from .render import frame_pattern, load_images, render_frames
from .tts import TTSProvider, build_providers, synthesize_segments
from .wav import write_wav

log = logging.getLogger(__name__)

INIT = "init"
SYNTHESIZE_AUDIO = "synthesize_audio"
ASSEMBLE_AUDIO = "assemble_audio"
ENCODE_WAV = "encode_wav"
RENDER_FRAMES = "render_frames"
ENCODE_MEDIA = "encode_media"
DONE = "done"

# (stage, share of overall progress)
STAGES = [
    (INIT, 0.05),
    (SYNTHESIZE_AUDIO, 0.15),
    (ASSEMBLE_AUDIO, 0.05),
    (ENCODE_WAV, 0.05),
    (RENDER_FRAMES, 0.55),
    (ENCODE_MEDIA, 0.15),
    (DONE, 0.0),
]


class ProgressTracker:
    """Maps per-stage [0, 1] progress onto the overall [0, 1] scale."""

    def __init__(self, on_progress: Optional[Callable[[float], None]] = None):
        self.on_progress = on_progress
        self.stage: Optional[str] = None
        self.history: List[str] = []
        self.value = 0.0
        self._order = [s for s, _ in STAGES]
        self._start = {}
        acc = 0.0
        for name, weight in STAGES:
            self._start[name] = (acc, weight)
            acc += weight

    def enter(self, stage: str):
        if self.stage is not None and self._order.index(stage) <= self._order.index(self.stage):
            raise RuntimeError(f"stage {stage} cannot follow {self.stage}")
        if self.stage is not None:
            self.update(1.0)
        self.stage = stage
        self.history.append(stage)
        log.info("stage: %s", stage)
        if stage == DONE:
            self._emit(1.0)
        else:
            self.update(0.0)

    def update(self, local: float):
        start, weight = self._start[self.stage]
        self._emit(start + weight * min(1.0, max(0.0, local)))

    def sub(self, lo: float, hi: float) -> Callable[[float], None]:
        """Callback covering only [lo, hi] of the current stage."""
        return lambda p: self.update(lo + (hi - lo) * p)

    def _emit(self, value: float):
        value = min(1.0, max(self.value, value))
        self.value = value
        if self.on_progress:
            self.on_progress(value)


def generate(
    scraped: ScrapedData,
    script: AdScript,
    cfg: Optional[dict] = None,
    on_progress: Optional[Callable[[float], None]] = None,
    providers: Optional[Sequence[TTSProvider]] = None,
    encoder: Optional[EncoderHandle] = None,
    tracker: Optional[ProgressTracker] = None,
) -> MediaArtifact:
    cfg = cfg or load_cfg()
    video = cfg["video"]
    fps = int(video["fps"])
    duration_s = float(video["duration_s"])
    sample_rate = int(cfg["audio"]["sample_rate"])
    tracker = tracker or ProgressTracker(on_progress)

    tracker.enter(INIT)
    encoder = encoder or get_encoder(cfg)
    try:
        encoder.acquire()
    except EncoderError as e:
        raise GenerationError(f"Video encoder unavailable: {e}") from e
    if providers is None:
        providers = build_providers(cfg, decoder=encoder)

    with tempfile.TemporaryDirectory(prefix="ctvad_") as td:
        td = Path(td)

        tracker.enter(SYNTHESIZE_AUDIO)
        tts = cfg["tts"]
        clips = synthesize_segments(
            script, providers, sample_rate,
            max_chars=int(tts["max_chars"]),
            max_workers=int(tts["max_workers"]),
            on_progress=tracker.update,
        )

        tracker.enter(ASSEMBLE_AUDIO)
        track = assemble_clips(clips, duration_s, sample_rate)
        del clips
        log.info("audio track: %.2fs at %d Hz", len(track) / sample_rate, sample_rate)

        tracker.enter(ENCODE_WAV)
        wav_path = td / "audio.wav"
        try:
            write_wav(wav_path, track, sample_rate, float(cfg["audio"]["volume"]))
        except (WavEncodeError, OSError) as e:
            raise GenerationError(f"Could not write audio track: {e}") from e
        del track

        tracker.enter(RENDER_FRAMES)
        img_cfg = cfg["images"]
        images = load_images(
            scraped.images,
            timeout=float(img_cfg["timeout_s"]),
            max_workers=int(img_cfg["max_workers"]),
            user_agent=cfg["scrape"].get("user_agent"),
        )
        tracker.update(0.05)
        frames_dir = td / "frames"
        try:
            total = render_frames(cfg, scraped.primary_color, script, images, frames_dir,
                                  on_progress=tracker.sub(0.05, 1.0))
        except OSError as e:
            raise GenerationError(f"Could not write video frames: {e}") from e
        del images

        tracker.enter(ENCODE_MEDIA)
        try:
            data = encoder.encode(
                frames_pattern=str(frames_dir / frame_pattern(total)),
                wav_path=str(wav_path),
                out_path=str(td / "output.mp4"),
                fps=fps,
                duration_s=duration_s,
                enc=cfg["encoder"],
            )
        except (EncoderError, OSError) as e:
            raise GenerationError(f"Video encoding failed: {e}") from e

    tracker.enter(DONE)
    log.info("generated %d bytes of video/mp4", len(data))
    return MediaArtifact(data=data, mime_type="video/mp4")
