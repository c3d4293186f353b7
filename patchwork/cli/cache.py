"""Inspect or prune the patchwork image cache.

Usage::

    python -m patchwork.cli.cache stats
    python -m patchwork.cli.cache cleanup

``stats`` prints the same JSON as ``GET /api/cache-stats.json``.
``cleanup`` runs the expiry / count / size eviction pass that normally
happens before every write, then prints the resulting statistics.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys


async def _run(command: str) -> int:
    from patchwork.main import build_components, close_components

    components = build_components()
    try:
        cache = components["cache_manager"]
        if command == "cleanup":
            # Count raw store entries: stats already hide expired ones.
            before = len(await cache.store.get_all_entries())
            await cache.cleanup()
            after = len(await cache.store.get_all_entries())
            print(f"Removed {before - after} entries", file=sys.stderr)
        stats = await cache.get_stats()
    finally:
        await close_components(components)

    print(json.dumps(stats.model_dump(mode="json"), indent=2))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m patchwork.cli.cache",
        description="Inspect or prune the patchwork image cache.",
    )
    parser.add_argument(
        "command",
        choices=["stats", "cleanup"],
        help="stats: print cache statistics; cleanup: run the eviction pass.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the cache tool."""
    args = _build_parser().parse_args(argv)
    sys.exit(asyncio.run(_run(args.command)))


if __name__ == "__main__":
    main()
