"""Render a patchwork from the command line.

Usage::

    python -m patchwork.cli.generate rj
    python -m patchwork.cli.generate rj --period 7day --rows 4 --cols 4 -o grid.jpg
    python -m patchwork.cli.generate mayhem --provider listenbrainz --no-border --no-cache

Runs the same cache-then-generate flow as ``GET /patchwork.jpg``: a cached
image is written as-is, a miss is generated and stored (unless
``--no-cache``).  Progress goes to stderr; the exit code is 0 on success
and 1 on invalid arguments or a failed generation.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path

from pydantic import ValidationError

from patchwork.models.request import BorderStyle, PatchworkRequest, Period, ProviderName
from patchwork.utils.errors import PatchworkError


def build_request(args: argparse.Namespace) -> PatchworkRequest:
    """Turn parsed arguments into a validated :class:`PatchworkRequest`.

    Raises
    ------
    pydantic.ValidationError
        If a value is outside its allowed range.
    """
    return PatchworkRequest(
        username=args.username,
        period=args.period,
        rows=args.rows,
        cols=args.cols,
        image_size=args.size,
        border=BorderStyle.NONE if args.no_border else BorderStyle.NORMAL,
        provider=ProviderName(args.provider),
    )


async def _run(request: PatchworkRequest, output: Path, use_cache: bool) -> int:
    """Generate (or fetch) the patchwork and write it to *output*."""
    from patchwork.main import build_components, close_components

    components = build_components()
    try:
        cache = components["cache_manager"]
        key = cache.generate_key(request)

        data = await cache.get(key) if use_cache else None
        if data is not None:
            print("Cache hit", file=sys.stderr)
        else:
            start = time.monotonic()
            try:
                result = await components["generator"].generate(request)
            except PatchworkError as exc:
                print(f"Error generating patchwork: {exc.message}", file=sys.stderr)
                return 1
            data = result.image
            print(
                f"Generated {result.width}x{result.height}px in {time.monotonic() - start:.1f}s",
                file=sys.stderr,
            )
            if use_cache:
                await cache.set(key, data, request.period)
    finally:
        await close_components(components)

    output.write_bytes(data)
    print(f"Written to: {output} ({len(data):,} bytes)", file=sys.stderr)
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m patchwork.cli.generate",
        description="Render a listener's top albums as a cover-art grid JPEG.",
    )
    parser.add_argument("username", help="Last.fm or ListenBrainz user name.")
    parser.add_argument(
        "--period",
        default=Period.OVERALL.value,
        help="Statistics range: 7day, 1month, 3month, 6month, 12month or overall.",
    )
    parser.add_argument("--rows", type=int, default=3, help="Grid rows (1-10).")
    parser.add_argument("--cols", type=int, default=3, help="Grid columns (1-10).")
    parser.add_argument("--size", type=int, default=150, help="Tile edge in pixels (50-300).")
    parser.add_argument(
        "--no-border",
        action="store_true",
        help="Pack tiles edge to edge instead of separating them with 1px lines.",
    )
    parser.add_argument(
        "--provider",
        choices=[p.value for p in ProviderName],
        default=ProviderName.LASTFM.value,
        help="Listening-statistics service.",
    )
    parser.add_argument(
        "--output", "-o",
        default="patchwork.jpg",
        help="Destination file (default: patchwork.jpg).",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Always regenerate and do not store the result.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the generate tool."""
    args = _build_parser().parse_args(argv)

    try:
        request = build_request(args)
    except ValidationError as exc:
        print(f"Error: invalid arguments\n{exc}", file=sys.stderr)
        sys.exit(1)

    exit_code = asyncio.run(_run(request, Path(args.output).resolve(), use_cache=not args.no_cache))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
