from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from wikimap.logging_config import setup_logging
from wikimap.models import Category
from wikimap.properties import display_name
from wikimap.service import EnrichmentSession


def _read_features(path: Path) -> list[dict]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return data.get("features", [])
    return data


def _write_jsonl(path: Path, rows: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")


async def enrich(features: list[dict], category: Category, limit: int | None = None) -> list[dict]:
    rows: list[dict] = []
    async with EnrichmentSession() as session:
        for feature in features[:limit]:
            props = feature.get("properties") or {}
            name = display_name(props)
            if not name:
                continue
            wiki, card = await session.build_entity_card(name, category, props)
            rows.append({"name": name, "found": wiki.found, "card": card.model_dump()})
    return rows


def main() -> None:
    parser = argparse.ArgumentParser(description="Resolve every feature of a GeoJSON layer to an entity card.")
    parser.add_argument("geojson")
    parser.add_argument("--layer", default=None, help="layer id used to pick the category, e.g. rivers")
    parser.add_argument("--out", default="data/cards.jsonl")
    parser.add_argument("--limit", default=None, type=int)
    args = parser.parse_args()

    setup_logging()
    features = _read_features(Path(args.geojson))
    rows = asyncio.run(enrich(features, Category.from_layer(args.layer or args.geojson), args.limit))
    _write_jsonl(Path(args.out), rows)
    found = sum(1 for r in rows if r["found"])
    print(f"Wrote {len(rows)} cards ({found} with articles) to {args.out}")


if __name__ == "__main__":
    main()
