"""Patchwork canvas assembly and JPEG encoding.

Pure, synchronous Pillow code; the generator runs it in a worker thread.

Layout for ``rows x cols`` tiles of ``size`` pixels with a ``b`` pixel gap
(``b`` is 1 for bordered grids and 0 otherwise)::

    width  = size * cols + b * (cols - 1)
    height = size * rows + b * (rows - 1)
    tile i -> row i // cols, col i % cols
              left = col * (size + b), top = row * (size + b)

Cells without a tile keep the background: white for bordered grids (so the
gaps read as white lines), black for borderless ones.
"""

from __future__ import annotations

import io
from collections.abc import Sequence

from PIL import Image

from patchwork.utils.errors import CompositionError

JPEG_QUALITY = 90

_BORDERED_BACKGROUND = (255, 255, 255)
_BORDERLESS_BACKGROUND = (0, 0, 0)


def patchwork_dimensions(rows: int, cols: int, image_size: int, bordered: bool) -> tuple[int, int]:
    """Return the ``(width, height)`` of the finished canvas."""
    border = 1 if bordered else 0
    width = image_size * cols + border * (cols - 1)
    height = image_size * rows + border * (rows - 1)
    return width, height


def tile_position(index: int, cols: int, image_size: int, bordered: bool) -> tuple[int, int]:
    """Return the ``(left, top)`` pixel offset of tile *index* (row-major)."""
    border = 1 if bordered else 0
    row, col = divmod(index, cols)
    return col * (image_size + border), row * (image_size + border)


def compose_patchwork(
    tiles: Sequence[Image.Image],
    rows: int,
    cols: int,
    image_size: int,
    bordered: bool,
) -> bytes:
    """Paste *tiles* onto a fresh canvas and encode it as JPEG.

    Extra tiles beyond ``rows * cols`` are ignored.

    Raises
    ------
    CompositionError
        If the canvas cannot be created or encoded.
    """
    width, height = patchwork_dimensions(rows, cols, image_size, bordered)
    background = _BORDERED_BACKGROUND if bordered else _BORDERLESS_BACKGROUND

    try:
        canvas = Image.new("RGB", (width, height), background)
        for index, tile in enumerate(tiles[: rows * cols]):
            canvas.paste(tile, tile_position(index, cols, image_size, bordered))

        buffer = io.BytesIO()
        canvas.save(buffer, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    except (OSError, ValueError) as exc:
        raise CompositionError(message=f"Failed to create patchwork: {exc}") from exc

    return buffer.getvalue()
