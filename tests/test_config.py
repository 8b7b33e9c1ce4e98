from ctvad.config import DEFAULTS, load_cfg


def test_defaults_without_file(tmp_path):
    cfg = load_cfg(str(tmp_path / "missing.yaml"))
    assert cfg == DEFAULTS
    assert cfg is not DEFAULTS


def test_yaml_is_deep_merged(tmp_path):
    p = tmp_path / "c.yaml"
    p.write_text("video:\n  fps: 24\nstyle:\n  max_lines: 2\n", encoding="utf-8")
    cfg = load_cfg(str(p))
    assert cfg["video"]["fps"] == 24
    assert cfg["video"]["width"] == 1920
    assert cfg["style"]["max_lines"] == 2
    assert cfg["style"]["image_alpha"] == 0.4
    assert DEFAULTS["video"]["fps"] == 30


def test_overrides_win(tmp_path):
    cfg = load_cfg(None, overrides={"audio": {"volume": 0.5}})
    assert cfg["audio"] == {"sample_rate": 48000, "volume": 0.5}
