import copy
from pathlib import Path
from typing import Optional

import yaml


DEFAULTS = {
    "out": "ctv-ad.mp4",
    "video": {
        "width": 1920,
        "height": 1080,
        "fps": 30,
        "duration_s": 30,
    },
    "style": {
        "image_alpha": 0.4,
        "band_height": 250,
        "band_alpha": 0.6,
        "font_size": 64,
        "line_height": 80,
        "max_lines": 3,
        "margin": 50,
        "text_color": "#ffffff",
        "shadow": True,
        "shadow_offset": 3,
        "font_names": ["DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf", "DejaVuSans.ttf"],
    },
    "audio": {
        "sample_rate": 48000,
        "volume": 0.8,
    },
    "tts": {
        "max_chars": 200,
        "timeout_s": 10,
        "max_workers": 4,
        "providers": [
            {"kind": "google", "lang": "en"},
        ],
    },
    "images": {
        "timeout_s": 15,
        "max_workers": 8,
    },
    "encoder": {
        "binary": "ffmpeg",
        "video_codec": "libx264",
        "preset": "ultrafast",
        "pix_fmt": "yuv420p",
        "audio_codec": "aac",
        "audio_bitrate": "192k",
    },
    "scrape": {
        "timeout_s": 15,
        "max_images": 8,
        "default_color": "#3b82f6",
        "user_agent": "Mozilla/5.0 (X11; Linux x86_64) ctv-ad-generator/1.0",
    },
}


def _merge(base: dict, over: dict) -> dict:
    out = copy.deepcopy(base)
    for k, v in (over or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def load_cfg(path: Optional[str] = None, overrides: Optional[dict] = None) -> dict:
    """Defaults, then the YAML file (if it exists), then `overrides`."""
    cfg = copy.deepcopy(DEFAULTS)
    if path and Path(path).exists():
        with open(path, "r", encoding="utf-8") as f:
            cfg = _merge(cfg, yaml.safe_load(f) or {})
    if overrides:
        cfg = _merge(cfg, overrides)
    return cfg
