import logging
import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from .errors import ScrapeError
from .models import ScrapedData

log = logging.getLogger(__name__)

DEFAULT_UA = "Mozilla/5.0 (X11; Linux x86_64) ctv-ad-generator/1.0"
IMAGE_EXT = re.compile(r"\.(jpg|jpeg|png|webp|gif|svg)$", re.I)
BG_IMAGE = re.compile(r"background-image:\s*url\(['\"]?([^'\")]+)['\"]?\)")
HEX_COLOR = re.compile(r"^#[0-9a-f]{6}$", re.I)


def _session(user_agent: str = DEFAULT_UA):
    s = requests.Session()
    s.headers.update({
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    })
    return s


def _safe_text(s: str) -> str:
    s = re.sub(r"\s+", " ", s).strip()
    return re.sub(r"[<>]", "", s)


def _meta(doc: BeautifulSoup, **attrs) -> Optional[str]:
    tag = doc.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return tag["content"].strip() or None
    return None


def make_absolute(src: str, base_url: str) -> str:
    if src.startswith(("http://", "https://")):
        return src
    if src.startswith("//"):
        return f"{urlparse(base_url).scheme or 'https'}:{src}"
    p = urlparse(base_url)
    if not p.scheme:
        return src
    # relative paths resolve against the site root
    return urljoin(f"{p.scheme}://{p.netloc}/", src)


def is_image_url(url: str) -> bool:
    p = urlparse(url)
    if p.scheme not in ("http", "https") or not p.netloc:
        return False
    return bool(IMAGE_EXT.search(p.path.lower())) or "image" in url or "product" in url


def extract_images(doc: BeautifulSoup, base_url: str, limit: int = 8) -> List[str]:
    found: List[str] = []

    def add(src):
        if not src:
            return
        u = make_absolute(src.strip(), base_url)
        if u not in found:
            found.append(u)

    add(_meta(doc, property="og:image"))
    add(_meta(doc, name="twitter:image"))

    for img in doc.find_all("img", src=True):
        src = img["src"]
        if src.startswith("data:") or len(src) <= 10:
            continue
        alt = (img.get("alt") or "").lower()
        try:
            width = int(img.get("width") or 0)
            height = int(img.get("height") or 0)
        except ValueError:
            width = height = 0
        looks_like_product = (
            "product" in alt or "item" in alt or len(alt) > 5 or width > 100 or height > 100
        )
        if looks_like_product or len(found) < 3:
            add(src)

    for el in doc.find_all(style=re.compile("background-image")):
        m = BG_IMAGE.search(el.get("style", ""))
        if m:
            add(m.group(1))

    for img in doc.select("picture > img[src]"):
        if not img["src"].startswith("data:"):
            add(img["src"])

    return [u for u in found if is_image_url(u)][:limit]


def extract_color(doc: BeautifulSoup) -> Optional[str]:
    color = _meta(doc, name="theme-color")
    if color and HEX_COLOR.match(color):
        return color
    return None


def parse_page(html: str, url: str, max_images: int = 8, default_color: str = "#3b82f6") -> ScrapedData:
    doc = BeautifulSoup(html, "html.parser")
    title_tag = doc.find("title")
    title = (
        _meta(doc, property="og:title")
        or _meta(doc, name="title")
        or (title_tag.get_text() if title_tag else None)
        or "Product"
    )
    description = (
        _meta(doc, property="og:description")
        or _meta(doc, name="description")
        or _meta(doc, name="og:description")
        or "Discover amazing products"
    )
    return ScrapedData(
        title=_safe_text(title[:100]),
        description=_safe_text(description[:200]),
        images=extract_images(doc, url, max_images),
        primary_color=extract_color(doc) or default_color,
        url=url,
    )


def scrape_url(url: str, cfg: Optional[dict] = None) -> ScrapedData:
    sc = (cfg or {}).get("scrape", {})
    try:
        r = _session(sc.get("user_agent", DEFAULT_UA)).get(url, timeout=float(sc.get("timeout_s", 15)))
        r.raise_for_status()
        if not r.text:
            raise ScrapeError("No HTML content received")
        data = parse_page(r.text, url, int(sc.get("max_images", 8)), sc.get("default_color", "#3b82f6"))
    except requests.RequestException as e:
        raise ScrapeError(f"Failed to scrape URL: {e}") from e
    log.info("scraped %s: %r, %d image(s), color %s", url, data.title, len(data.images), data.primary_color)
    return data
