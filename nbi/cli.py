"""nbi command-line entry point.

Usage::

    nbi [tui]                         # interactive session (default)
    nbi check NAME [--json]
    nbi domain NAME [--tlds com,net] [--json]
    nbi serve [--host H] [--port P] [--open]
    nbi publish {npm,crates,pypi} [PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

from rich.console import Console
from rich.markup import escape

from nbi import __version__

logger = logging.getLogger(__name__)

_STATUS = {
    True: "[green]✓ Available[/green]",
    False: "[red]✗ Taken[/red]",
    None: "[yellow]? Unknown[/yellow]",
}


def _log_level(default: int) -> int:
    name = os.environ.get("NBI_LOG_LEVEL", "").upper()
    return getattr(logging, name, default) if name else default


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nbi",
        description="Check package name availability across registries",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("tui", help="Start the interactive session (default)")

    serve = sub.add_parser("serve", help="Start the HTTP API server")
    serve.add_argument("-p", "--port", type=int, default=None, help="Port (default: 3000 or NBI_PORT)")
    serve.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1 or NBI_HOST)")
    serve.add_argument("-o", "--open", action="store_true", help="Open the browser automatically")

    check = sub.add_parser("check", help="Check name availability")
    check.add_argument("name", help="Package name to check")
    check.add_argument("-j", "--json", action="store_true", help="Output as JSON")

    domain = sub.add_parser("domain", help="Check domain availability")
    domain.add_argument("name", help="Domain label or full domain (e.g. example.com)")
    domain.add_argument(
        "-t", "--tlds", default="com,net,org,io,dev",
        help="TLDs to check, comma-separated (default: com,net,org,io,dev)",
    )
    domain.add_argument("-j", "--json", action="store_true", help="Output as JSON")

    publish = sub.add_parser("publish", help="Publish a package with its ecosystem's toolchain")
    publish.add_argument("registry", choices=["npm", "crates", "pypi"])
    publish.add_argument("path", nargs="?", default=".", help="Package directory (default: .)")

    return parser


def run_check(name: str, as_json: bool, console: Console | None = None) -> int:
    from nbi.config import load_config_or_default
    from nbi.registry import check_all

    config = load_config_or_default()
    results = asyncio.run(check_all(name, config.registries))

    if as_json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return 0

    console = console or Console()
    console.print(f"Checking availability for: [bold]{escape(name)}[/bold]\n")
    for r in results:
        line = f"  {r.kind.label:<12} {_STATUS[r.available]}"
        if r.error:
            line += f" ({escape(r.error)})"
        console.print(line, highlight=False)
    return 0


def run_domain_check(name: str, tlds: str, as_json: bool, console: Console | None = None) -> int:
    from nbi.registry import domain as dns

    domains = dns.expand_domain_query(name, tlds.split(","))
    results = asyncio.run(dns.check_domains(domains))

    if as_json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return 0

    console = console or Console()
    console.print(f"Checking domain availability for: [bold]{escape(name)}[/bold]\n")
    for r in results:
        domain = escape(f"{r.domain:<25}")
        console.print(f"  {domain} {_STATUS[r.available]}", highlight=False)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "tui"

    if command == "tui":
        from nbi.config import config_dir

        log_dir = config_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            filename=str(log_dir / "nbi.log"),
            level=_log_level(logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        from nbi.tui import run_tui

        run_tui()
        return 0

    if command == "serve":
        logging.basicConfig(level=_log_level(logging.INFO))
        from nbi.server import serve

        serve(host=args.host, port=args.port, open_browser=args.open)
        return 0

    logging.basicConfig(level=_log_level(logging.WARNING), format="%(levelname)s: %(message)s")

    if command == "check":
        return run_check(args.name, args.json)
    if command == "domain":
        return run_domain_check(args.name, args.tlds, args.json)

    from nbi.publish import PublishError, run_publish

    try:
        run_publish(args.registry, args.path)
    except PublishError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0
