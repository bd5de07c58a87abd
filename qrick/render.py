"""Raster Renderer — map a module matrix (and an excavated logo) to RGB pixels."""

import io

import numpy as np
from PIL import Image, ImageDraw

from qrick.errors import InvalidInputError
from qrick.logging import audit, get_logger, trace
from qrick.logo import LogoSpec
from qrick.matrix import Matrix, Role

log = get_logger("render")

DEFAULT_BOX_SIZE = 10
DEFAULT_BORDER = 4

RGB = tuple[int, int, int]


def validate_color(color, name: str = "color") -> RGB:
    """Check an (r, g, b) tuple of ints 0-255."""
    if (
        not isinstance(color, (tuple, list))
        or len(color) != 3
        or not all(isinstance(ch, (int, np.integer)) and not isinstance(ch, bool) and 0 <= ch <= 255 for ch in color)
    ):
        raise InvalidInputError(f"{name} must be an (r, g, b) tuple of 0-255 ints, got {color!r}")
    return tuple(int(ch) for ch in color)


def _validate_geometry(box_size: int, border: int):
    if not isinstance(box_size, int) or isinstance(box_size, bool) or box_size < 1:
        raise InvalidInputError(f"box_size must be a positive int, got {box_size!r}")
    if not isinstance(border, int) or isinstance(border, bool) or border < 0:
        raise InvalidInputError(f"border must be a non-negative int, got {border!r}")


def _logo_box(logo: LogoSpec, box_size: int, border: int) -> tuple[int, int, int, int]:
    """Pixel (left, top, right, bottom) of the scaled logo.

    Edges are rounded from module coordinates, so the box never leaves the window.
    """
    x = (logo.col + border) * box_size
    y = (logo.row + border) * box_size
    left = x + round(logo.x_offset * box_size)
    top = y + round(logo.y_offset * box_size)
    right = x + round((logo.x_offset + logo.width) * box_size)
    bottom = y + round((logo.y_offset + logo.height) * box_size)
    return left, top, max(right, left + 1), max(bottom, top + 1)


def _paste_logo(image: Image.Image, holes: np.ndarray, logo: LogoSpec, bg: RGB, box_size: int, border: int):
    """Composite the scaled logo over the background on excavated pixels only."""
    left, top, right, bottom = _logo_box(logo, box_size, border)
    w, h = right - left, bottom - top

    resized = logo.image.resize((w, h), Image.LANCZOS)
    patch = Image.new("RGBA", (w, h), bg + (255,))
    patch.alpha_composite(resized)
    mask = Image.fromarray(holes[top:bottom, left:right].astype(np.uint8) * 255)
    image.paste(patch.convert("RGB"), (left, top), mask)


@trace
def render(
    matrix: Matrix,
    fg: RGB,
    bg: RGB,
    logo: LogoSpec | None = None,
    box_size: int = DEFAULT_BOX_SIZE,
    border: int = DEFAULT_BORDER,
) -> Image.Image:
    """Render the matrix to an RGB image.

    Each module becomes a ``box_size`` square; dark modules take ``fg``,
    light and excavated modules ``bg``. A ``border``-module quiet zone in
    ``bg`` surrounds the symbol. The logo shows through excavated modules
    only; function modules inside its window keep their colours.
    """
    fg = validate_color(fg, "fg")
    bg = validate_color(bg, "bg")
    _validate_geometry(box_size, border)

    def blow_up(grid):
        grid = np.pad(grid, border, constant_values=False)
        return np.repeat(np.repeat(grid, box_size, axis=0), box_size, axis=1)

    pixels = blow_up(matrix.modules & (matrix.roles != Role.EXCAVATED))

    arr = np.empty(pixels.shape + (3,), dtype=np.uint8)
    arr[...] = bg
    arr[pixels] = fg
    image = Image.fromarray(arr)

    if logo is not None:
        _paste_logo(image, blow_up(matrix.roles == Role.EXCAVATED), logo, bg, box_size, border)

    audit(
        "render.done", logger=log,
        version=matrix.version, image_px=f"{image.width}x{image.height}",
        box_size=box_size, border=border, logo=logo is not None,
    )
    return image


def to_png(image: Image.Image) -> bytes:
    """Encode as PNG bytes."""
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


# Role colours: (dark, light)
_ROLE_COLORS = {
    Role.FUNCTION: ((220, 50, 50), (255, 180, 180)),    # red
    Role.FORMAT: ((220, 200, 50), (255, 240, 180)),     # yellow
    Role.RESERVED: ((50, 50, 220), (180, 180, 255)),    # blue
    Role.DATA: ((0, 0, 0), (255, 255, 255)),
    Role.EXCAVATED: ((160, 160, 160), (220, 220, 220)),  # gray
}


@trace
def render_role_map(matrix: Matrix, scale: int = 20) -> Image.Image:
    """Colour-coded dump of module roles.

    Colors:
        - Red: function patterns (finders, separators, timing, alignment)
        - Yellow: format information
        - Blue: version information
        - Black/White: data and EC modules
        - Gray: excavated modules
    """
    _validate_geometry(scale, 0)
    size = matrix.size
    img = Image.new("RGB", (size * scale, size * scale), (255, 255, 255))
    draw = ImageDraw.Draw(img)

    for r in range(size):
        for c in range(size):
            module = matrix.module(r, c)
            dark, light = _ROLE_COLORS[module.role]
            x0, y0 = c * scale, r * scale
            x1, y1 = x0 + scale - 1, y0 + scale - 1
            draw.rectangle([x0, y0, x1, y1], fill=dark if module.dark else light)
            draw.rectangle([x0, y0, x1, y1], outline=(230, 230, 230))
    return img
