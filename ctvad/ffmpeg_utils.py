import logging
import shutil
import subprocess
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from .errors import EncoderError

log = logging.getLogger(__name__)

UNINITIALIZED = "uninitialized"
LOADING = "loading"
READY = "ready"
FAILED = "failed"


def _run(cmd: List[str], stdin: Optional[bytes] = None) -> bytes:
    try:
        p = subprocess.run(cmd, input=stdin, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except OSError as e:
        raise EncoderError(f"could not run {cmd[0]}: {e}") from e
    if p.returncode != 0:
        err = p.stderr.decode("utf-8", "replace")
        raise EncoderError(f"ffmpeg failed (exit {p.returncode}):\n{err[-2000:]}")
    return p.stdout


class EncoderHandle:
    """Lazily located ffmpeg binary.

    Concurrent `acquire()` calls during a load share one Future. After a
    failed load the next `acquire()` tries again from scratch.
    """

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary
        self.path: Optional[str] = None
        self.version: Optional[str] = None
        self._state = UNINITIALIZED
        self._lock = threading.Lock()
        self._future: Optional[Future] = None

    @property
    def state(self) -> str:
        return self._state

    def _load(self) -> str:
        path = shutil.which(self.binary)
        if path is None:
            raise EncoderError(f"encoder binary {self.binary!r} not found on PATH")
        try:
            out = subprocess.run([path, "-hide_banner", "-version"], stdout=subprocess.PIPE,
                                 stderr=subprocess.STDOUT, timeout=30)
        except (OSError, subprocess.SubprocessError) as e:
            raise EncoderError(f"could not start {path}: {e}") from e
        if out.returncode != 0:
            raise EncoderError(f"{path} -version exited with {out.returncode}")
        first = out.stdout.decode("utf-8", "replace").splitlines()
        self.version = first[0] if first else "unknown"
        return path

    def acquire(self) -> "EncoderHandle":
        with self._lock:
            if self._state == READY:
                return self
            if self._state == LOADING:
                fut = self._future
                owner = False
            else:
                fut = self._future = Future()
                self._state = LOADING
                owner = True

        if owner:
            try:
                path = self._load()
            except EncoderError as e:
                with self._lock:
                    self._state = FAILED
                fut.set_exception(e)
            else:
                with self._lock:
                    self.path = path
                    self._state = READY
                log.info("encoder ready: %s (%s)", path, self.version)
                fut.set_result(path)

        fut.result()
        return self

    def run(self, args: List[str], stdin: Optional[bytes] = None) -> bytes:
        if self._state != READY:
            self.acquire()
        return _run([self.path, "-hide_banner", "-loglevel", "error"] + list(args), stdin=stdin)

    def encode(
        self,
        frames_pattern: str,
        wav_path: str,
        out_path: str,
        fps: int,
        duration_s: float,
        enc: Optional[dict] = None,
    ) -> bytes:
        """Mux numbered frames + one WAV into an MP4 and return its bytes."""
        enc = enc or {}
        cmd = [
            "-y",
            "-framerate", str(fps),
            "-i", frames_pattern,
            "-i", wav_path,
            "-c:v", enc.get("video_codec", "libx264"),
            "-preset", enc.get("preset", "ultrafast"),
            "-pix_fmt", enc.get("pix_fmt", "yuv420p"),
            "-c:a", enc.get("audio_codec", "aac"),
            "-b:a", enc.get("audio_bitrate", "192k"),
            "-shortest",
            "-t", str(duration_s),
            out_path,
        ]
        self.run(cmd)
        out = Path(out_path)
        if not out.exists() or out.stat().st_size == 0:
            raise EncoderError(f"ffmpeg produced no output at {out_path}")
        return out.read_bytes()

    def decode_pcm(self, data: bytes, sample_rate: int, channels: int = 2) -> np.ndarray:
        """Decode any container ffmpeg understands into float32 (frames, channels)."""
        raw = self.run([
            "-i", "pipe:0",
            "-f", "f32le",
            "-ac", str(channels),
            "-ar", str(sample_rate),
            "pipe:1",
        ], stdin=data)
        return np.frombuffer(raw, dtype="<f4").reshape(-1, channels).copy()


_handles: Dict[str, EncoderHandle] = {}
_handles_lock = threading.Lock()


def get_encoder(cfg: Optional[dict] = None) -> EncoderHandle:
    """Process-wide handle for the configured binary; not yet loaded."""
    binary = ((cfg or {}).get("encoder") or {}).get("binary", "ffmpeg")
    with _handles_lock:
        h = _handles.get(binary)
        if h is None:
            h = _handles[binary] = EncoderHandle(binary)
        return h
