"""Mouse cursor shapes cut from a cursor sheet image."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

CURSOR_SIZE = 32
CURSOR_COUNT = 10
# Each cursor occupies a 16x16 block of the sheet, drawn at double size.
_SHEET_BLOCK = 16

EMPTY = 0
FILLED = 1
OUTLINE = 2


@dataclass(frozen=True)
class CursorMasks:
    """AND and XOR bitmaps of a 32x32 monochrome cursor, MSB first."""

    and_mask: bytes
    xor_mask: bytes
    width: int = CURSOR_SIZE
    height: int = CURSOR_SIZE
    hot_x: int = 2
    hot_y: int = 2


def cursor_pattern(pixels: Sequence[Sequence[int]], index: int) -> list[list[int]]:
    """32x32 grid of EMPTY, FILLED and OUTLINE cells for cursor ``index``.

    ``pixels`` is the sheet indexed as ``pixels[y][x]``; a pixel counts as
    set when its low four bits are not zero.
    """
    if not 0 <= index < CURSOR_COUNT:
        raise ValueError(f"cursor index out of range: {index}")
    size = CURSOR_SIZE
    base = _SHEET_BLOCK * index
    pat = [[EMPTY] * (size + 2) for _ in range(size + 2)]
    for y in range(size):
        row = pixels[y >> 1]
        for x in range(size):
            if row[(x >> 1) + base] & 0x0F:
                pat[y + 1][x + 1] = FILLED

    for y in range(1, size + 1):
        for x in range(1, size + 1):
            if pat[y][x] == EMPTY and FILLED in (
                    pat[y - 1][x], pat[y + 1][x], pat[y][x - 1], pat[y][x + 1]):
                pat[y][x] = OUTLINE
    return [row[1:-1] for row in pat[1:-1]]


def _pack(bits: Iterable[bool]) -> int:
    value = 0
    for bit in bits:
        value = value << 1 | int(bit)
    return value


def cursor_masks(pixels: Sequence[Sequence[int]], index: int) -> CursorMasks:
    """Bitmaps for cursor ``index``: AND set where empty, XOR set where filled."""
    pattern = cursor_pattern(pixels, index)
    and_mask = bytearray()
    xor_mask = bytearray()
    for row in pattern:
        for start in range(0, CURSOR_SIZE, 8):
            chunk = row[start:start + 8]
            and_mask.append(_pack(v == EMPTY for v in chunk))
            xor_mask.append(_pack(v == FILLED for v in chunk))
    return CursorMasks(bytes(and_mask), bytes(xor_mask))