# src/main.py — v2
"""CLI entry point — process, stats, cache, usage and chat commands.

Usage:
    invoicex process <reference> [--no-cache] [--document-id ID]
    invoicex stats
    invoicex cache list | purge
    invoicex usage clear
    invoicex chat <session_id> <question>

Results are printed to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from invoicex.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        from invoicex.config.settings import load_settings

        settings = load_settings()
        _setup_logging(settings, args.verbose)
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="invoicex",
        description=f"invoicex v{__version__} — Invoice extraction with prompt caching",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- process ---
    p_process = subparsers.add_parser(
        "process", help="Extract invoice fields from a URL or file",
    )
    p_process.add_argument("reference", help="Document URL or local path")
    p_process.add_argument(
        "--no-cache", action="store_true",
        help="Skip the cache lookup (result is still cached)",
    )
    p_process.add_argument(
        "--document-id", default=None,
        help="Identifier recorded with the usage record",
    )
    p_process.set_defaults(func=_cmd_process)

    # --- stats ---
    p_stats = subparsers.add_parser(
        "stats", help="Show token usage and cache savings",
    )
    p_stats.add_argument(
        "--all-operations", action="store_true",
        help="Aggregate every operation, not only invoice processing",
    )
    p_stats.set_defaults(func=_cmd_stats)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Prompt cache administration")
    cache_sub = p_cache.add_subparsers(dest="cache_command", required=True)
    cache_sub.add_parser("list", help="List cache entries").set_defaults(func=_cmd_cache_list)
    cache_sub.add_parser("purge", help="Delete every cache entry").set_defaults(func=_cmd_cache_purge)

    # --- usage ---
    p_usage = subparsers.add_parser("usage", help="Usage ledger administration")
    usage_sub = p_usage.add_subparsers(dest="usage_command", required=True)
    usage_sub.add_parser("clear", help="Delete every usage record").set_defaults(func=_cmd_usage_clear)

    # --- chat ---
    p_chat = subparsers.add_parser(
        "chat", help="Ask the invoice assistant a question",
    )
    p_chat.add_argument("session_id", help="Conversation session id")
    p_chat.add_argument("question", help="Question to ask")
    p_chat.add_argument(
        "--invoices", default=None,
        help="JSON file with a list of extracted invoices to discuss",
    )
    p_chat.set_defaults(func=_cmd_chat)

    return parser


async def _cmd_process(args: argparse.Namespace, settings) -> int:
    """Process one document and print the result."""
    from invoicex.api.facade import process_document

    result = await process_document(
        args.reference,
        force_no_cache=args.no_cache,
        document_id=args.document_id,
        settings=settings,
    )
    _print_json(result.model_dump(mode="json"))
    return 0


async def _cmd_stats(args: argparse.Namespace, settings) -> int:
    from invoicex.api.facade import usage_statistics
    from invoicex.pipeline.invoice_processor import OPERATION

    stats = await usage_statistics(
        settings=settings, operation=None if args.all_operations else OPERATION,
    )
    _print_json(stats.model_dump(mode="json"))
    return 0


async def _cmd_cache_list(args: argparse.Namespace, settings) -> int:
    from invoicex.cache.cache_factory import create_prompt_cache

    cache = create_prompt_cache(settings)
    try:
        entries = await cache.entries()
    finally:
        cache.close()
    _print_json([
        {
            "id": e.id,
            "fingerprint": e.fingerprint,
            "created_at": e.created_at.isoformat(),
            "updated_at": e.updated_at.isoformat(),
        }
        for e in entries
    ])
    return 0


async def _cmd_cache_purge(args: argparse.Namespace, settings) -> int:
    from invoicex.cache.cache_factory import create_prompt_cache

    cache = create_prompt_cache(settings)
    try:
        removed = await cache.purge()
    finally:
        cache.close()
    _print_json({"removed": removed})
    return 0


async def _cmd_usage_clear(args: argparse.Namespace, settings) -> int:
    from invoicex.api.facade import create_usage_ledger

    ledger = create_usage_ledger(settings)
    try:
        removed = await ledger.delete_all()
    finally:
        ledger.close()
    _print_json({"removed": removed})
    return 0


async def _cmd_chat(args: argparse.Namespace, settings) -> int:
    from pathlib import Path

    from pydantic import TypeAdapter

    from invoicex.api.facade import create_assistant
    from invoicex.core.models import ExtractedResult

    invoices: list[ExtractedResult] = []
    if args.invoices:
        raw = Path(args.invoices).read_text(encoding="utf-8")
        invoices = TypeAdapter(list[ExtractedResult]).validate_json(raw)

    assistant = create_assistant(settings)
    try:
        reply = await assistant.ask(args.session_id, args.question, invoices)
    finally:
        assistant.close()
    _print_json(reply.model_dump(mode="json"))
    return 0


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from invoicex.logging.logger import setup_logging_from_settings

    setup_logging_from_settings(settings, level="DEBUG" if verbose else None)


if __name__ == "__main__":
    sys.exit(main())
