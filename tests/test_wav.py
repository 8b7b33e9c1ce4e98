import numpy as np
import pytest

from ctvad.errors import WavEncodeError
from ctvad.wav import HEADER_SIZE, encode_wav, read_wav_header, to_int16, write_wav


def test_header_roundtrip_stereo():
    n, rate = 1000, 44100
    data = encode_wav(np.zeros((n, 2), dtype=np.float32), rate)
    h = read_wav_header(data)
    assert h["data_length"] == n * 4
    assert h["sample_rate"] == rate
    assert h["num_channels"] == 2
    assert h["audio_format"] == 1
    assert h["bits_per_sample"] == 16
    assert h["block_align"] == 4
    assert h["byte_rate"] == rate * 4
    assert h["riff_size"] == 36 + n * 4
    assert h["fmt_size"] == 16
    assert len(data) == HEADER_SIZE + n * 4


def test_mono_buffer():
    data = encode_wav(np.zeros(10), 8000)
    h = read_wav_header(data)
    assert h["num_channels"] == 1
    assert h["data_length"] == 20


def test_sample_conversion_is_asymmetric_and_clamped():
    x = np.array([-2.0, -1.0, 0.0, 0.5, 1.0, 3.0])
    assert to_int16(x, volume=1.0).tolist() == [-32768, -32768, 0, 16383, 32767, 32767]
    assert to_int16(np.array([-1.0, 1.0]), volume=0.8).tolist() == [-26214, 26213]


def test_payload_is_interleaved_little_endian():
    buf = np.array([[1.0, -1.0], [0.0, 0.5]])
    data = encode_wav(buf, 8000, volume=1.0)
    payload = np.frombuffer(data[HEADER_SIZE:], dtype="<i2")
    assert payload.tolist() == [32767, -32768, 0, 16383]


def test_zero_channels_is_fatal():
    with pytest.raises(WavEncodeError):
        encode_wav(np.zeros((10, 0)), 8000)


def test_bad_rate_is_fatal():
    with pytest.raises(WavEncodeError):
        encode_wav(np.zeros((10, 2)), 0)


def test_write_wav(tmp_path):
    p = tmp_path / "a.wav"
    size = write_wav(p, np.zeros((5, 2)), 8000)
    assert p.read_bytes()[:4] == b"RIFF"
    assert size == HEADER_SIZE + 20
