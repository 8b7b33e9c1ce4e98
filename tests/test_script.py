import pytest

from ctvad.models import AdScript, ScrapedData, ScriptSegment
from ctvad.script import generate_script


def test_template_fills_title_and_domain():
    s = generate_script(ScrapedData(title="Rocket Skates", description="Go fast.",
                                    url="https://www.acme.com/p/1"))
    texts = [seg.text for seg in s.segments]
    assert texts[0] == "Discover Rocket Skates"
    assert texts[1] == "Go fast."
    assert "Visit acme.com" in texts
    assert len(s.segments) == 9
    assert s.total_duration == 30


def test_script_invariants():
    with pytest.raises(ValueError):
        AdScript([])
    with pytest.raises(ValueError):
        AdScript([ScriptSegment("a", 3)], total_duration=4)
    with pytest.raises(ValueError):
        ScriptSegment("", 3)
    with pytest.raises(ValueError):
        ScriptSegment("a", 0)


def test_from_dict():
    s = AdScript.from_dict({"segments": [{"text": "a", "duration": 2}, {"text": "b", "duration": 1.5}],
                            "totalDuration": 3.5})
    assert s.durations == [2.0, 1.5]
