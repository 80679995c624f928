"""Palette entries and the window and box records used by the graphics system."""

from __future__ import annotations

from dataclasses import dataclass, field

MAX_CG = 10000
PALETTE_SIZE = 256

Palette = list[int]


def setpalette256(r: int, g: int, b: int) -> int:
    """Pack 8-bit components into a 0xRRGGBB palette entry."""
    return ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


def setpalette16(r: int, g: int, b: int) -> int:
    """Pack 4-bit components, scaled to 8 bits, into a palette entry."""
    return setpalette256(255 * (r & 0x0F) // 15,
                         255 * (g & 0x0F) // 15,
                         255 * (b & 0x0F) // 15)


def pal_r(value: int) -> int:
    return value >> 16 & 0xFF


def pal_g(value: int) -> int:
    return value >> 8 & 0xFF


def pal_b(value: int) -> int:
    return value & 0xFF


@dataclass
class Box:
    """A rectangle drawn by the box commands, with its colour."""

    color: int = 0
    sx: int = 0
    sy: int = 0
    ex: int = 0
    ey: int = 0


@dataclass
class TextWindow:
    """A text or menu window, and the screen area saved behind it."""

    sx: int = 0
    sy: int = 0
    ex: int = 0
    ey: int = 0
    frame: bool = False
    push: bool = False
    screen: list[int] | None = None
    screen_x: int = 0
    screen_y: int = 0
    screen_width: int = 0
    screen_height: int = 0
    screen_palette: Palette = field(default_factory=lambda: [0] * PALETTE_SIZE)
    window: list[int] | None = None
    window_x: int = 0
    window_y: int = 0
    window_width: int = 0
    window_height: int = 0
    window_palette: Palette = field(default_factory=lambda: [0] * PALETTE_SIZE)

    @property
    def width(self) -> int:
        return self.ex - self.sx + 1

    @property
    def height(self) -> int:
        return self.ey - self.sy + 1