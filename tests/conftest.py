import numpy as np
import pytest
from PIL import Image

from ctvad.config import load_cfg
from ctvad.errors import EncoderError, TTSError
from ctvad.ffmpeg_utils import READY
from ctvad.models import AdScript, ScriptSegment, VisualAsset
from ctvad.tts import TTSProvider


@pytest.fixture
def small_cfg():
    return load_cfg(overrides={
        "video": {"width": 160, "height": 90, "fps": 10, "duration_s": 3},
        "style": {"font_size": 12, "line_height": 14, "band_height": 40, "margin": 8},
        "audio": {"sample_rate": 8000},
        "tts": {"max_workers": 1, "providers": []},
        "images": {"max_workers": 2},
    })


@pytest.fixture
def two_segments():
    return AdScript([ScriptSegment("Discover X", 3), ScriptSegment("Visit site", 3)])


@pytest.fixture
def asset():
    im = Image.new("RGB", (40, 20), (200, 10, 10))
    im.paste((10, 200, 10), (20, 0, 40, 20))
    return VisualAsset(url="mem://red-green", image=im)


class FailingTTS(TTSProvider):
    name = "failing"

    def __init__(self):
        super().__init__()
        self.calls = []

    def fetch(self, text, sample_rate):
        self.calls.append(text)
        raise TTSError("service down")


class ToneTTS(TTSProvider):
    """Returns `seconds` of a constant mono signal."""

    name = "tone"

    def __init__(self, seconds=1.0, level=0.5):
        super().__init__()
        self.seconds = seconds
        self.level = level
        self.calls = []

    def fetch(self, text, sample_rate):
        raise AssertionError("synthesize is overridden")

    def synthesize(self, text, sample_rate):
        self.calls.append(text)
        return np.full(int(self.seconds * sample_rate), self.level, dtype=np.float32)


class FakeEncoder:
    """Stands in for EncoderHandle without running ffmpeg."""

    def __init__(self, fail_load=False, fail_encode=False):
        self.fail_load = fail_load
        self.fail_encode = fail_encode
        self.state = "uninitialized"
        self.calls = []

    def acquire(self):
        if self.fail_load:
            self.state = "failed"
            raise EncoderError("ffmpeg not found")
        self.state = READY
        return self

    def encode(self, frames_pattern, wav_path, out_path, fps, duration_s, enc=None):
        import glob
        import os

        frames = sorted(glob.glob(os.path.join(os.path.dirname(frames_pattern), "*.png")))
        with open(wav_path, "rb") as f:
            wav = f.read()
        self.calls.append({"pattern": frames_pattern, "frames": len(frames), "wav": wav,
                           "fps": fps, "duration_s": duration_s})
        if self.fail_encode:
            raise EncoderError("Invalid data found when processing input")
        return b"\x00\x00\x00\x18ftypmp42fake"


@pytest.fixture
def fake_encoder():
    return FakeEncoder()
