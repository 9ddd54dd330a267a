from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import load_settings, open_backend
from .errors import MediaManError
from .models import registered_variants
from .rendering import CollectionRenderer, TextRenderer
from .service import CollectionService

logger = logging.getLogger(__name__)


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )


async def cmd_list(service: CollectionService, renderer: CollectionRenderer, args: argparse.Namespace) -> int:
    for identifier in await service.list_identifiers():
        print(identifier)
    return 0


async def cmd_show(service: CollectionService, renderer: CollectionRenderer, args: argparse.Namespace) -> int:
    collection = await service.load(args.id)
    print(renderer.render_collection(collection))
    return 0


async def cmd_create(service: CollectionService, renderer: CollectionRenderer, args: argparse.Namespace) -> int:
    collection = await service.create(args.name, identifier=args.id)
    print(collection.id)
    return 0


async def cmd_add(service: CollectionService, renderer: CollectionRenderer, args: argparse.Namespace) -> int:
    raw = {}
    for pair in args.fields:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            print(f"error: expected field=value, got {pair!r}", file=sys.stderr)
            return 2
        raw[key.strip()] = value
    item = renderer.read_new_item(service.variant, raw)
    if isinstance(item, str):
        print(f"error: {item}", file=sys.stderr)
        return 2
    collection = await service.add_item(args.id, item)
    print(renderer.render_item(collection.items[-1]))
    return 0


async def cmd_remove_item(service: CollectionService, renderer: CollectionRenderer, args: argparse.Namespace) -> int:
    before = await service.load(args.id)
    after = await service.remove_item(args.id, args.item_id)
    print(f"removed {len(before) - len(after)} item(s)")
    return 0


async def cmd_delete(service: CollectionService, renderer: CollectionRenderer, args: argparse.Namespace) -> int:
    await service.remove(args.id)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mediaman", description="Manage stored media collections")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--variant", default="book", choices=registered_variants(), help="Media type of the collections")
    p.add_argument("-c", "--config", default=None, help="Path to a YAML store config")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    sub = p.add_subparsers(dest="cmd")

    sub.add_parser("list", help="List stored collection ids").set_defaults(func=cmd_list)

    show_p = sub.add_parser("show", help="Print a collection")
    show_p.add_argument("id")
    show_p.set_defaults(func=cmd_show)

    create_p = sub.add_parser("create", help="Create an empty collection")
    create_p.add_argument("name")
    create_p.add_argument("--id", default=None, help="Identifier to store it under (generated if omitted)")
    create_p.set_defaults(func=cmd_create)

    add_p = sub.add_parser("add", help="Add an item: add ID name=Dune author=Herbert pages=412")
    add_p.add_argument("id")
    add_p.add_argument("fields", nargs="+", metavar="field=value")
    add_p.set_defaults(func=cmd_add)

    rm_item_p = sub.add_parser("remove-item", help="Remove every item with the given id")
    rm_item_p.add_argument("id")
    rm_item_p.add_argument("item_id")
    rm_item_p.set_defaults(func=cmd_remove_item)

    delete_p = sub.add_parser("delete", help="Delete a stored collection")
    delete_p.add_argument("id")
    delete_p.set_defaults(func=cmd_delete)
    return p


def main(argv: Optional[List[str]] = None, renderer: Optional[CollectionRenderer] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 2
    _setup_logging(args.verbose)
    renderer = renderer or TextRenderer()

    try:
        settings = load_settings(args.config)
        service = CollectionService(
            args.variant,
            backend=open_backend(settings),
            namespace_prefix=settings.namespace_prefix,
        )
        return asyncio.run(args.func(service, renderer, args))
    except MediaManError as e:
        logger.debug("Command %s failed", args.cmd, exc_info=True)
        print(f"error: {renderer.describe_error(e)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
