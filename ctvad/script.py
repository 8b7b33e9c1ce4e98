from urllib.parse import urlparse

from .models import AdScript, ScrapedData, ScriptSegment

FILLER = [
    ("Transform your experience today", 3),
    ("Join thousands of satisfied customers", 4),
    ("Premium quality, unbeatable value", 3),
    ("Limited time offer available now", 3),
]

CLOSING = [
    ("Act now and get started", 3),
    ("Your journey begins here", 3),
]


def _domain(url: str) -> str:
    host = urlparse(url).hostname or url
    return host[4:] if host.startswith("www.") else host


def generate_script(data: ScrapedData) -> AdScript:
    """The fixed 30s ad template filled in with the scraped page."""
    segs = [
        ScriptSegment(f"Discover {data.title}", 3),
        ScriptSegment(data.description, 5),
    ]
    segs += [ScriptSegment(t, d) for t, d in FILLER]
    segs.append(ScriptSegment(f"Visit {_domain(data.url)}", 3))
    segs += [ScriptSegment(t, d) for t, d in CLOSING]
    return AdScript(segs)
