"""Off-screen video memory of the graphics system and its drawing primitives."""

from __future__ import annotations

from .palette import (
    PALETTE_SIZE,
    Box,
    Palette,
    TextWindow,
    setpalette16,
    setpalette256,
)

VRAM_WIDTH = 640
VRAM_HEIGHT = 480
SCREEN_PLANES = 3  # front, back, menu
BOX_COUNT = 20
WINDOW_COUNT = 10
_DIRECT_COLOR = 0x80000000


def default_palette(sys_ver: int) -> Palette:
    """The palette a game starts with, for system version ``sys_ver``."""
    pal = [0] * PALETTE_SIZE
    base = [
        (0x0, 0x0, 0x0), (0x0, 0x0, 0xA), (0xA, 0x0, 0x0), (0xA, 0x0, 0xA),
        (0x0, 0x0, 0x0), (0x0, 0xA, 0xA), (0xA, 0xA, 0x0), (0xD, 0xD, 0xD),
        (0x7, 0x7, 0x7), (0x0, 0x0, 0xF), (0xF, 0x0, 0x0), (0xF, 0x0, 0xF),
        (0x0, 0xF, 0x0), (0x0, 0xF, 0xF), (0xF, 0xF, 0x0), (0xF, 0xF, 0xF),
    ]
    for index, rgb in enumerate(base):
        pal[index] = setpalette16(*rgb)
    if sys_ver == 1:
        for index in range(0x10, 0x1F):
            n = index & 7
            pal[index] = setpalette16(0xF if n & 2 else 0,
                                      0xF if n & 4 else 0,
                                      0xF if n & 1 else 0)
    for index in range(0x1F, 0xF0, 0x10):
        pal[index] = setpalette16(0xF, 0xF, 0xF)

    # Preset antialiasing shades for text in the primary colours on black.
    for i in range(1, 8):
        for j in range(8):
            n = 255 * j // 7
            pal[0xC0 + i * 8 + j] = setpalette16(n if i & 4 else 0,
                                                 n if i & 2 else 0,
                                                 n if i & 1 else 0)
    return pal


def _default_windows(gakuen: bool) -> tuple[list[TextWindow], list[TextWindow]]:
    text_w = []
    menu_w = []
    for i in range(WINDOW_COUNT):
        if gakuen:
            text = TextWindow(8, 260, 505, 384, frame=False)
            if i == 1:
                menu = TextWindow(128, 32, 337, 178, frame=True)
            else:
                menu = TextWindow(288, 30, 433, 210, frame=True)
        else:
            text = TextWindow(8, 311, 623, 391, frame=True)
            menu = TextWindow(464, 80, 623, 240, frame=True)
        text.push = False
        menu.push = True
        text_w.append(text)
        menu_w.append(menu)
    return text_w, menu_w


class Screen:
    """Three planes of indexed video memory and the colour surface shown from plane 0."""

    def __init__(self, sys_ver: int = 1, gakuen: bool = False):
        self.sys_ver = sys_ver
        if gakuen:
            self.window_width = 582
            self.screen_width = 512
            self.window_height = self.screen_height = 424
        else:
            self.window_width = self.screen_width = 640
            self.window_height = self.screen_height = 400
        self.scroll = self.screen_height

        self.vram = [[[0] * VRAM_WIDTH for _ in range(VRAM_HEIGHT)]
                     for _ in range(SCREEN_PLANES)]
        self.display = [[0] * VRAM_WIDTH for _ in range(VRAM_HEIGHT)]
        self.invalidated: list[tuple[int, int, int, int]] = []
        self.dirty = False

        self.program_palette = default_palette(sys_ver)
        self.screen_palette = list(self.program_palette)

        self.text_w, self.menu_w = _default_windows(gakuen)
        self.boxes = [Box(0, 0, 0, 639, 399) for _ in range(BOX_COUNT)]

        self.src_screen = 0
        self.dest_screen = 0

    # Palette and pixels

    def set_palette(self, index: int, r: int, g: int, b: int) -> None:
        value = setpalette16(r, g, b) if index < 16 else setpalette256(r, g, b)
        self.screen_palette[index] = self.program_palette[index] = value

    def get_pixel(self, dest: int, x: int, y: int) -> int:
        value = self.vram[dest][y][x]
        if value & _DIRECT_COLOR:
            return 0
        return value & 0xFF

    def set_pixel(self, dest: int, x: int, y: int, color: int) -> None:
        self.vram[dest][y][x] = color

    # Presentation

    def _to_display(self, value: int) -> int:
        if self.sys_ver == 3 and value & _DIRECT_COLOR:
            return value & 0xFFFFFF
        return self.screen_palette[value & 0xFF]

    def flush_screen(self) -> None:
        """Convert the whole of plane 0 to colours and mark it for redraw."""
        for y in range(self.screen_height):
            src = self.vram[0][y]
            dst = self.display[y]
            for x in range(self.screen_width):
                dst[x] = self._to_display(src[x])
        self._invalidate(0, 0, self.screen_width, self.screen_height)

    def draw_screen(self, sx: int, sy: int, width: int, height: int) -> None:
        """Convert a rectangle of plane 0, clipped to the screen, to colours."""
        x0 = max(sx, 0)
        y0 = max(sy, 0)
        x1 = min(sx + width, self.screen_width)
        y1 = min(sy + height, self.screen_height)
        if x1 <= x0 or y1 <= y0:
            x0 = y0 = x1 = y1 = 0
        for y in range(y0, y1):
            src = self.vram[0][y]
            dst = self.display[y]
            for x in range(x0, x1):
                dst[x] = self._to_display(src[x])
        self._invalidate(x0, y0, x1 - x0, y1 - y0)

    def _invalidate(self, sx: int, sy: int, width: int, height: int) -> None:
        if sy + height > self.screen_height:
            height = self.screen_height - sy
        if sx + width > VRAM_WIDTH:
            width = VRAM_WIDTH - sx
        self.invalidated.append((sx, sy, width, height))
        self.dirty = True

    # Copies

    def _blit(self, src: int, sx: int, sy: int, w: int, h: int,
              dest: int, dx: int, dy: int) -> None:
        if sx < 0:
            w += sx
            dx -= sx
            sx = 0
        if sy < 0:
            h += sy
            dy -= sy
            sy = 0
        w = min(w, VRAM_WIDTH - sx)
        h = min(h, VRAM_HEIGHT - sy)
        if dx < 0:
            w += dx
            sx -= dx
            dx = 0
        if dy < 0:
            h += dy
            sy -= dy
            dy = 0
        w = min(w, VRAM_WIDTH - dx)
        h = min(h, VRAM_HEIGHT - dy)
        if w <= 0 or h <= 0:
            return
        rows = [self.vram[src][sy + y][sx:sx + w] for y in range(h)]
        for y, row in enumerate(rows):
            self.vram[dest][dy + y][dx:dx + w] = row

    def copy(self, sx: int, sy: int, ex: int, ey: int, dx: int, dy: int) -> None:
        """Copy a rectangle from the source plane to the destination plane."""
        width = ex - sx + 1
        height = ey - sy + 1
        self._blit(self.src_screen, sx, sy, width, height, self.dest_screen, dx, dy)
        if self.dest_screen == 0:
            self.draw_screen(dx, dy, width, height)

    def gcopy(self, gsc: int, gde: int, glx: int, gly: int, gsw: int) -> None:
        """Copy in the old 80-column, 8-dot unit addressing."""
        src = 0 if gsw in (0, 2) else 1
        dest = 0 if gsw in (0, 3) else 1
        sx = (gsc % 80) * 8
        sy = gsc // 80
        dx = (gde % 80) * 8
        dy = gde // 80
        self._blit(src, sx, sy, glx * 8, gly, dest, dx, dy)
        if dest == 0:
            self.draw_screen(dx, dy, glx * 8, gly)

    # Drawing

    def paint(self, x: int, y: int, color: int) -> None:
        """Flood-fill the area of plane 0 around (x, y) that has its colour."""
        plane = self.vram[0]
        old_color = plane[y][x]
        if old_color == color:
            return

        minx = maxx = x
        miny = maxy = y
        stack = [(x, y)]
        while stack:
            x, y = stack.pop()
            row = plane[y]
            while x >= 0 and row[x] == old_color:
                x -= 1
            x += 1
            minx = min(x, minx)
            span_above = span_below = False
            while x < VRAM_WIDTH and row[x] == old_color:
                row[x] = color
                if y > 0:
                    above = plane[y - 1][x]
                    if not span_above and above == old_color:
                        stack.append((x, y - 1))
                        span_above = True
                    elif span_above and above != old_color:
                        span_above = False
                if y < self.screen_height - 1:
                    below = plane[y + 1][x]
                    if not span_below and below == old_color:
                        stack.append((x, y + 1))
                        span_below = True
                    elif span_below and below != old_color:
                        span_below = False
                x += 1
            maxx = max(x - 1, maxx)
            miny = min(y, miny)
            maxy = max(y, maxy)
        self.draw_screen(minx, miny, maxx - minx + 1, maxy - miny + 1)

    def draw_box(self, index: int) -> None:
        """Clear everything (0), fill box 1-10 or outline box 11-20."""
        if index == 0:
            self.box_fill(self.dest_screen, 0, 0, 639, 479, 0)
            return
        if not 1 <= index <= BOX_COUNT:
            raise ValueError(f"box index out of range: {index}")
        box = self.boxes[index - 1]
        if index <= 10:
            self.box_fill(self.dest_screen, box.sx, box.sy, box.ex, box.ey, box.color)
        else:
            self.box_line(self.dest_screen, box.sx, box.sy, box.ex, box.ey, box.color)

    def draw_mesh(self, sx: int, sy: int, width: int, height: int) -> None:
        """Overlay a checkerboard of colour 255 on plane 0."""
        plane = self.vram[0]
        for h, y in enumerate(range(sy, VRAM_HEIGHT, 2)):
            if h * 2 >= height:
                break
            for x in range(max(sx, 0), min(sx + width, VRAM_WIDTH), 2):
                plane[y][x] = 255
            if y + 1 < VRAM_HEIGHT:
                for x in range(max(sx + 1, 0), min(sx + width, VRAM_WIDTH), 2):
                    plane[y + 1][x] = 255
        self.draw_screen(sx, sy, width, height)

    def box_fill(self, dest: int, sx: int, sy: int, ex: int, ey: int, color: int) -> None:
        plane = self.vram[dest]
        x0, x1 = max(sx, 0), min(ex + 1, VRAM_WIDTH)
        for y in range(max(sy, 0), min(ey + 1, VRAM_HEIGHT)):
            row = plane[y]
            for x in range(x0, x1):
                row[x] = color
        if dest == 0:
            self.draw_screen(sx, sy, ex - sx + 1, ey - sy + 1)

    def box_line(self, dest: int, sx: int, sy: int, ex: int, ey: int, color: int) -> None:
        plane = self.vram[dest]
        for x in range(max(sx, 0), min(ex + 1, VRAM_WIDTH)):
            for y in (sy, ey):
                if 0 <= y < VRAM_HEIGHT:
                    plane[y][x] = color
        for y in range(max(sy, 0), min(ey + 1, VRAM_HEIGHT)):
            for x in (sx, ex):
                if 0 <= x < VRAM_WIDTH:
                    plane[y][x] = color
        if dest == 0:
            self.draw_screen(sx, sy, ex - sx + 1, ey - sy + 1)