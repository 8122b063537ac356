"""Command-line interface for the Pop Up Archive SDK.

Prints raw response bodies so output can be piped into other tools.
"""

from __future__ import annotations

import argparse
import getpass
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape

from popuparchive.core.api.archive import ArchiveClient
from popuparchive.core.api.http.errors import PopUpArchiveError
from popuparchive.core.config.loader import configure_logging, load_app_config
from popuparchive.core.utils import get_logger

console = Console()
err_console = Console(stderr=True)


def _emit(text: str) -> None:
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)


def _parse_params(pairs: Sequence[str] | None) -> dict[str, str]:
    """Turn ``key=value`` arguments into a query mapping."""
    params: dict[str, str] = {}
    for pair in pairs or ():
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {pair!r}")
        params[key] = value
    return params


def run_command(args: argparse.Namespace, archive: ArchiveClient) -> int:
    """Execute one subcommand against an open client.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    params = _parse_params(args.param)

    if args.cmd == "authorize-url":
        _emit(archive.build_authorize_url(params))
        return 0

    if args.cmd == "token":
        password = args.password or getpass.getpass("Password: ")
        result = archive.exchange_credentials(args.username, password)
        if not result.issued:
            err_console.print("[red]No access token issued[/red]")
            _emit(archive.last_http_body or "")
            return 1
        _emit(result.access_token)
        return 0

    if args.cmd == "collections":
        if args.public:
            body = archive.get_public_collections(params)
        else:
            body = archive.get_user_collections(params)
    elif args.cmd == "collection":
        body = archive.get_collection_by_id(args.collection_id, params)
    elif args.cmd == "item":
        body = archive.get_item_by_id(args.collection_id, args.item_id, params)
    elif args.cmd == "items":
        body = archive.get_items_by_collection_id(args.collection_id, params)
    elif args.cmd == "search":
        body = archive.search_by_filter(args.key, args.value, params)
    else:
        raise ValueError(f"Unknown command: {args.cmd}")

    _emit(body)
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="popuparchive",
        description="Pop Up Archive - query collections and audio items",
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to app config (.json/.yaml). Defaults to popuparchive.yaml if present",
    )
    p.add_argument("--token", default=None, help="Access token (overrides config)")
    p.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    # Shared by every subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--param",
        "-p",
        action="append",
        metavar="KEY=VALUE",
        help="Extra query parameter (repeatable)",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("authorize-url", parents=[common], help="Print the OAuth authorize URL")

    token = sub.add_parser("token", parents=[common], help="Obtain a token (password grant)")
    token.add_argument("username")
    token.add_argument("--password", default=None, help="Prompted for when omitted")

    collections = sub.add_parser("collections", parents=[common], help="List collections")
    collections.add_argument(
        "--public", action="store_true", help="Public collections instead of the user's"
    )

    collection = sub.add_parser("collection", parents=[common], help="Show one collection")
    collection.add_argument("collection_id")

    item = sub.add_parser("item", parents=[common], help="Show one audio item")
    item.add_argument("collection_id")
    item.add_argument("item_id")

    items = sub.add_parser("items", parents=[common], help="List items of a collection")
    items.add_argument("collection_id")

    search = sub.add_parser("search", parents=[common], help="Search by filter")
    search.add_argument("key", help="Filter name, e.g. collection_id")
    search.add_argument("value", help="Filter value")

    return p


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for CLI."""
    p = build_arg_parser()
    args = p.parse_args(argv)

    try:
        app_config = load_app_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        err_console.print(f"[red]ERROR: Could not load config: {escape(str(e))}[/red]")
        return 1

    if args.verbose:
        app_config.logging = app_config.logging.model_copy(update={"level": "DEBUG"})
    configure_logging(app_config)

    try:
        with ArchiveClient.from_config(app_config) as archive:
            if args.token:
                archive.set_access_token(args.token)
            return run_command(args, archive)
    except argparse.ArgumentTypeError as e:
        p.error(str(e))
    except PopUpArchiveError as e:
        get_logger(__name__, command=args.cmd).debug("Command failed", exc_info=True)
        err_console.print(f"[red]ERROR: {escape(str(e))}[/red]", highlight=False)
        return 1
    return 1


if __name__ == "__main__":
    sys.exit(main())
