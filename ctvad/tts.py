"""
Per-segment narration.

Every segment gets exactly one clip of exactly its declared duration: the
first provider that answers wins, and if none does the segment is silent.
A failed provider never fails the run.
"""

import io
import logging
import os
import wave
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence

import numpy as np
import requests

from .audio import fit_to_duration, silence
from .errors import EncoderError, TTSError
from .ffmpeg_utils import EncoderHandle, get_encoder
from .models import AdScript, AudioClip, ScriptSegment

log = logging.getLogger(__name__)

GOOGLE_TTS_URL = "https://translate.google.com/translate_tts"
ELEVENLABS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"


def _read_wav(data: bytes, sample_rate: int) -> np.ndarray:
    with wave.open(io.BytesIO(data), "rb") as wf:
        width = wf.getsampwidth()
        channels = wf.getnchannels()
        rate = wf.getframerate()
        raw = wf.readframes(wf.getnframes())
    if width == 2:
        pcm = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    elif width == 1:
        pcm = (np.frombuffer(raw, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    elif width == 4:
        pcm = np.frombuffer(raw, dtype="<i4").astype(np.float32) / 2147483648.0
    else:
        raise TTSError(f"unsupported WAV sample width {width}")
    pcm = pcm.reshape(-1, channels)
    if rate != sample_rate and len(pcm):
        n = int(round(len(pcm) * sample_rate / rate))
        src = np.arange(len(pcm)) / rate
        dst = np.arange(n) / sample_rate
        pcm = np.stack([np.interp(dst, src, pcm[:, c]) for c in range(channels)], axis=1)
    return pcm.astype(np.float32)


def decode_audio(data: bytes, sample_rate: int, decoder: Optional[EncoderHandle] = None) -> np.ndarray:
    """Bytes from a provider -> float32 (frames, channels) at `sample_rate`."""
    if not data:
        raise TTSError("empty audio payload")
    try:
        if data[:4] == b"RIFF" and data[8:12] == b"WAVE":
            pcm = _read_wav(data, sample_rate)
        else:
            pcm = (decoder or get_encoder()).decode_pcm(data, sample_rate)
    except (wave.Error, EOFError, ValueError, EncoderError) as e:
        raise TTSError(f"could not decode audio: {e}") from e
    if len(pcm) == 0:
        raise TTSError("decoded audio is empty")
    return pcm


class TTSProvider(ABC):
    name = "provider"

    def __init__(self, timeout: float = 10, decoder: Optional[EncoderHandle] = None):
        self.timeout = timeout
        self.decoder = decoder

    @abstractmethod
    def fetch(self, text: str, sample_rate: int) -> bytes:
        """Raw audio bytes for `text`; raise TTSError or requests errors."""

    def synthesize(self, text: str, sample_rate: int) -> np.ndarray:
        try:
            data = self.fetch(text, sample_rate)
        except requests.RequestException as e:
            raise TTSError(f"{self.name}: {e}") from e
        return decode_audio(data, sample_rate, self.decoder)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class GoogleTranslateTTS(TTSProvider):
    name = "google"

    def __init__(self, lang: str = "en", **kw):
        super().__init__(**kw)
        self.lang = lang

    def fetch(self, text, sample_rate):
        r = requests.get(GOOGLE_TTS_URL, params={
            "ie": "UTF-8",
            "client": "tw-ob",
            "tl": self.lang,
            "q": text,
        }, timeout=self.timeout)
        r.raise_for_status()
        return r.content


class ElevenLabsTTS(TTSProvider):
    name = "elevenlabs"

    def __init__(self, voice_id: str = "21m00Tcm4TlvDq8ikWAM", model_id: str = "eleven_multilingual_v2",
                 api_key_env: str = "ELEVENLABS_API_KEY", **kw):
        super().__init__(**kw)
        self.voice_id = voice_id
        self.model_id = model_id
        self.api_key_env = api_key_env

    def fetch(self, text, sample_rate):
        key = os.getenv(self.api_key_env)
        if not key:
            raise TTSError(f"{self.api_key_env} is not set")
        r = requests.post(
            ELEVENLABS_URL.format(voice_id=self.voice_id),
            params={"output_format": "mp3_44100_128"},
            headers={"xi-api-key": key, "Accept": "audio/mpeg"},
            json={"text": text, "model_id": self.model_id},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.content


class HttpTTS(TTSProvider):
    """Any endpoint taking {"text", "sample_rate"} as JSON and answering with audio."""

    name = "http"

    def __init__(self, url: str, headers: Optional[dict] = None, **kw):
        super().__init__(**kw)
        self.url = url
        self.headers = headers or {}

    def fetch(self, text, sample_rate):
        r = requests.post(self.url, json={"text": text, "sample_rate": sample_rate},
                          headers=self.headers, timeout=self.timeout)
        r.raise_for_status()
        return r.content


PROVIDERS = {
    "google": GoogleTranslateTTS,
    "elevenlabs": ElevenLabsTTS,
    "http": HttpTTS,
}


def build_providers(cfg: dict, decoder: Optional[EncoderHandle] = None) -> List[TTSProvider]:
    tts = cfg.get("tts", {})
    timeout = float(tts.get("timeout_s", 10))
    out = []
    for entry in tts.get("providers", []):
        entry = dict(entry)
        kind = entry.pop("kind", None)
        if kind not in PROVIDERS:
            raise ValueError(f"unknown tts provider kind {kind!r}")
        entry.setdefault("timeout", timeout)
        out.append(PROVIDERS[kind](decoder=decoder, **entry))
    return out


def synthesize_segment(
    segment: ScriptSegment,
    providers: Sequence[TTSProvider],
    sample_rate: int,
    max_chars: int = 200,
) -> AudioClip:
    text = segment.text[:max_chars]
    for p in providers:
        try:
            pcm = p.synthesize(text, sample_rate)
        except TTSError as e:
            log.warning("tts %s failed for %r: %s", p.name, text[:40], e)
            continue
        except Exception:
            log.warning("tts %s crashed for %r", p.name, text[:40], exc_info=True)
            continue
        clip = AudioClip(pcm, sample_rate)
        log.debug("tts %s: %.2fs of narration for a %.2fs segment", p.name, clip.duration, segment.duration)
        return fit_to_duration(clip, segment.duration)
    log.warning("no narration for %r, using %.1fs of silence", text[:40], segment.duration)
    return silence(segment.duration, sample_rate)


def synthesize_segments(
    script: AdScript,
    providers: Sequence[TTSProvider],
    sample_rate: int,
    max_chars: int = 200,
    max_workers: int = 1,
    on_progress: Optional[Callable[[float], None]] = None,
) -> List[AudioClip]:
    """One clip per segment, in segment order whatever the completion order."""
    segs = script.segments
    clips: List[Optional[AudioClip]] = [None] * len(segs)
    done = 0

    def _report():
        if on_progress:
            on_progress(done / len(segs))

    if max_workers <= 1:
        for i, seg in enumerate(segs):
            clips[i] = synthesize_segment(seg, providers, sample_rate, max_chars)
            done += 1
            _report()
        return clips

    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = {
            ex.submit(synthesize_segment, seg, providers, sample_rate, max_chars): i
            for i, seg in enumerate(segs)
        }
        for fut in as_completed(futures):
            clips[futures[fut]] = fut.result()
            done += 1
            _report()
    return clips
