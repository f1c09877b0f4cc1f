"""Command line entry point: one-shot template resolution and the API server."""
from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.traceback import install as install_rich_traceback

from fqdnFeed.config import load_settings
from fqdnFeed.errors import FqdnFeedError
from fqdnFeed.logging_config import get_logger
from fqdnFeed.resolver.dns_lookup import DNSResolver, FamilyResolver
from fqdnFeed.resolver.freshness import parse_span
from fqdnFeed.resolver.models import AddressFamily, FeedResult
from fqdnFeed.resolver.service import ServiceRegistry
from fqdnFeed.store.base import config_id
from fqdnFeed.store.memory import MemoryStore

install_rich_traceback()
console = Console()
logger = get_logger("cli")


def load_template(path: str) -> Any:
    """Read a JSON or YAML feed template."""
    text = Path(path).read_text()
    if path.endswith((".yaml", ".yml")):
        return yaml.safe_load(text)
    return json.loads(text)


async def resolve_template(
    template: Any,
    span: int,
    *,
    resolver: Optional[FamilyResolver] = None,
    timeout: float = 2.0,
) -> FeedResult:
    """Resolve a template once against a throwaway in-memory store."""
    registry = ServiceRegistry(MemoryStore(), resolver or DNSResolver(timeout=timeout))
    await registry.replace_config_document(config_id("cli"), template)
    service = await registry.get_service(config_id("cli"))
    return await service.run(span)


def _render(result: FeedResult, output_format: str) -> None:
    if output_format == "json":
        console.print(Syntax(json.dumps(result.document, indent=2), "json"))
        return
    family = AddressFamily(output_format)
    plain = result.buffer.plain(family)
    if plain:
        console.print(plain, highlight=False)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="fqdnfeed", description="FQDN to address feed service")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve a template file once and print the result")
    resolve.add_argument("template", help="Path to a JSON or YAML template")
    resolve.add_argument("--span", default=None, help="Trailing window in seconds (default 86400)")
    resolve.add_argument("--format", choices=["json", "ipv4", "ipv6"], default="json", dest="output_format")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    if args.command == "serve":
        from fqdnFeed.api.server import run

        run(args.host, args.port)
        return 0

    settings = load_settings()
    span = parse_span(args.span, settings.feed.default_span_seconds)
    try:
        template = load_template(args.template)
        result = asyncio.run(resolve_template(template, span, timeout=settings.dns.timeout_seconds))
    except (OSError, ValueError, yaml.YAMLError, FqdnFeedError) as exc:
        logger.error(f"Template resolution failed: {exc}", extra={"outcome": "error"})
        console.print(f"[red]Error:[/red] {exc}")
        return 1
    _render(result, args.output_format)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
