"""CLI entrypoint for wikimap."""

from __future__ import annotations

import argparse
import asyncio
import json

from wikimap.logging_config import setup_logging
from wikimap.models import Category


def main() -> None:
    setup_logging()

    parser = argparse.ArgumentParser(prog="wikimap")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve")

    for name in ("resolve", "candidates"):
        p = sub.add_parser(name)
        p.add_argument("name")
        p.add_argument("--layer", default=None, help="map layer id, e.g. city-hit")
        p.add_argument("--category", default=None, choices=[c.value for c in Category])
        p.add_argument("--country", default=None)
        p.add_argument("--state", default=None)

    events_parser = sub.add_parser("events")
    events_parser.add_argument("month", type=int)
    events_parser.add_argument("day", type=int)
    events_parser.add_argument("--year", type=int, default=None)

    args = parser.parse_args()

    if args.command == "serve":
        _serve()
    elif args.command == "resolve":
        asyncio.run(_resolve(args))
    elif args.command == "candidates":
        _candidates(args)
    elif args.command == "events":
        asyncio.run(_events(args.month, args.day, args.year))


def _category(args: argparse.Namespace) -> Category:
    return Category.parse(args.category) if args.category else Category.from_layer(args.layer)


def _properties(args: argparse.Namespace) -> dict:
    return {k: v for k, v in (("country", args.country), ("state", args.state)) if v}


def _serve() -> None:
    import uvicorn

    from wikimap.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "wikimap.api:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=(settings.env == "development"),
        log_level=settings.log_level.lower(),
    )


def _candidates(args: argparse.Namespace) -> None:
    from wikimap.properties import context_from_properties
    from wikimap.titles import build_title_candidates

    for title in build_title_candidates(args.name, _category(args), context_from_properties(_properties(args))):
        print(title)


async def _resolve(args: argparse.Namespace) -> None:
    from wikimap.service import EnrichmentSession

    async with EnrichmentSession() as session:
        wiki, card = await session.build_entity_card(args.name, _category(args), _properties(args))
    _print_card(card.title, wiki.found, card)


async def _events(month: int, day: int, year: int | None) -> None:
    from wikimap.service import EnrichmentSession

    async with EnrichmentSession() as session:
        if year is None:
            events = await session.fetch_events(month, day)
        else:
            events = await session.events_for_year(month, day, year)

    print(json.dumps([e.model_dump(by_alias=True) for e in events], ensure_ascii=False, indent=2))
    print(f"{len(events)} events")


def _print_card(name: str, found: bool, card) -> None:
    print("\n" + "-" * 72)
    print(f"Feature: {name}")
    print(f"Article: {card.wiki_title if found else '(none found)'}")
    print(f"URL:     {card.wiki_url}")
    if card.image_url:
        print(f"Image:   {card.image_url}")
    print(f"\n{card.description}\n")
    for stat in card.stats:
        print(f"   {stat.icon} {stat.label}: {stat.value}")


if __name__ == "__main__":
    main()
