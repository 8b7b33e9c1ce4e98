#!/usr/bin/env python3
import argparse
import json
import logging
import sys
from pathlib import Path

from ctvad.config import load_cfg
from ctvad.errors import GenerationError, ScrapeError
from ctvad.models import AdScript, ScrapedData
from ctvad.pipeline import generate
from ctvad.scrape import scrape_url
from ctvad.script import generate_script


def load_json(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def progress_printer():
    last = [-1]

    def _print(p: float):
        pct = int(p * 100)
        if pct > last[0]:
            last[0] = pct
            print(f"\r[progress] {pct:3d}%", end="", flush=True)
            if pct >= 100:
                print()
    return _print


def main(argv=None):
    ap = argparse.ArgumentParser(description="Turn a product page into a 30s CTV ad.")
    ap.add_argument("--config", default="config.yaml")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--url", help="product page to scrape")
    src.add_argument("--input", help="JSON with title/description/images/primaryColor/url")
    ap.add_argument("--script", default=None, help="JSON script overriding the template")
    ap.add_argument("--out", default=None)
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_cfg(args.config)
    out_path = args.out or cfg.get("out", "ctv-ad.mp4")

    try:
        if args.url:
            data = scrape_url(args.url, cfg)
        else:
            data = ScrapedData.from_dict(load_json(args.input))
        print(f"[page] {data.title} | {len(data.images)} image(s) | {data.primary_color}")

        script = AdScript.from_dict(load_json(args.script)) if args.script else generate_script(data)
        print(f"[script] {len(script.segments)} segments, {script.total_duration:g}s")

        artifact = generate(data, script, cfg, on_progress=progress_printer())
    except (ScrapeError, GenerationError) as e:
        print(f"\n[error] {e}", file=sys.stderr)
        return 1

    Path(out_path).write_bytes(artifact.data)
    print(f"[ok] wrote {out_path} ({len(artifact.data)} bytes, {artifact.mime_type})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
