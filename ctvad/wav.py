import io
import struct
import wave

import numpy as np

from .errors import WavEncodeError

HEADER_SIZE = 44


def to_int16(samples: np.ndarray, volume: float = 0.8) -> np.ndarray:
    """Clamp to [-1, 1], apply volume, scale asymmetrically to full int16 range."""
    x = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0) * volume
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    return scaled.astype(np.int16)


def encode_wav(samples: np.ndarray, sample_rate: int, volume: float = 0.8) -> bytes:
    """Serialize (frames, channels) or mono float PCM into a 16-bit RIFF/WAVE file."""
    arr = np.asarray(samples)
    if arr.ndim == 1:
        arr = arr[:, None]
    if arr.ndim != 2:
        raise WavEncodeError(f"expected a (frames, channels) buffer, got shape {arr.shape}")
    channels = arr.shape[1]
    if channels < 1:
        raise WavEncodeError("cannot write a WAV file with zero channels")
    if int(sample_rate) <= 0:
        raise WavEncodeError(f"invalid sample rate {sample_rate!r}")

    # row-major (frames, channels) is already interleaved
    pcm = to_int16(arr, volume)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(int(sample_rate))
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


def write_wav(path, samples: np.ndarray, sample_rate: int, volume: float = 0.8) -> int:
    data = encode_wav(samples, sample_rate, volume)
    with open(path, "wb") as f:
        f.write(data)
    return len(data)


def read_wav_header(data: bytes) -> dict:
    if len(data) < HEADER_SIZE:
        raise ValueError("buffer shorter than a WAV header")
    (riff, riff_size, wave_id, fmt_id, fmt_size, fmt, channels, rate,
     byte_rate, block_align, bits, data_id, data_length) = struct.unpack(
        "<4sI4s4sIHHIIHH4sI", data[:HEADER_SIZE]
    )
    if riff != b"RIFF" or wave_id != b"WAVE" or fmt_id != b"fmt " or data_id != b"data":
        raise ValueError("not a canonical RIFF/WAVE header")
    return {
        "riff_size": riff_size,
        "fmt_size": fmt_size,
        "audio_format": fmt,
        "num_channels": channels,
        "sample_rate": rate,
        "byte_rate": byte_rate,
        "block_align": block_align,
        "bits_per_sample": bits,
        "data_length": data_length,
    }
