import numpy as np
import pytest

from ctvad.audio import assemble_clips, fit_to_duration, silence, to_stereo
from ctvad.models import AudioClip

SR = 1000


def clip(seconds, value=0.25, channels=1):
    return AudioClip(np.full((int(seconds * SR), channels), value, dtype=np.float32), SR)


def test_longer_than_target_is_cut_to_target():
    out = assemble_clips([clip(20), clip(15)], 30, SR)
    assert out.shape == (30 * SR, 2)


def test_shorter_than_target_is_not_padded():
    out = assemble_clips([clip(3), clip(3)], 30, SR)
    assert out.shape == (6 * SR, 2)


def test_no_clips_means_full_silence():
    out = assemble_clips([], 30, SR)
    assert out.shape == (30 * SR, 2)
    assert not out.any()


def test_clips_are_laid_out_in_order():
    out = assemble_clips([clip(1, 0.1), clip(1, 0.2), clip(1, 0.3)], 2.5, SR)
    assert len(out) == int(2.5 * SR)
    assert np.allclose(out[:SR], 0.1)
    assert np.allclose(out[SR:2 * SR], 0.2)
    assert np.allclose(out[2 * SR:], 0.3)


def test_mono_is_duplicated_and_surround_is_cut():
    surround = AudioClip(np.tile(np.array([0.1, 0.2, 0.3, 0.4, 0.5, 0.6], dtype=np.float32), (SR, 1)), SR)
    out = assemble_clips([clip(1, 0.7), surround], 10, SR)
    assert np.allclose(out[:SR], 0.7)
    assert np.allclose(out[SR:, 0], 0.1)
    assert np.allclose(out[SR:, 1], 0.2)


def test_rate_mismatch():
    with pytest.raises(ValueError):
        assemble_clips([AudioClip(np.zeros(10), 44100)], 1, SR)


def test_fit_to_duration_pads_and_truncates():
    assert len(fit_to_duration(clip(1), 2.5)) == 2500
    assert len(fit_to_duration(clip(4), 2)) == 2000
    padded = fit_to_duration(clip(1, 0.5), 2)
    assert not padded.samples[SR:].any()


def test_silence_and_to_stereo():
    s = silence(1.5, SR)
    assert s.samples.shape == (1500, 2)
    assert to_stereo(np.zeros(4)).shape == (4, 2)
