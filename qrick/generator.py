"""QR generation pipeline — text in, colored raster out."""

from PIL import Image

from qrick.logging import audit, get_logger, trace
from qrick.logo import composite_logo
from qrick.render import DEFAULT_BORDER, DEFAULT_BOX_SIZE, render, validate_color
from qrick.symbol import build_symbol

log = get_logger("generator")

# Every symbol carries level H; its recovery budget also pays for the logo.
ECC_LEVEL = "H"

DEFAULT_FG = (0x32, 0xCD, 0x32)   # lime green
DEFAULT_BG = (0x1E, 0x1E, 0x1E)   # near black
DEFAULT_LOGO_BOX_FRACTION = 0.3


@trace
def generate(
    text: str,
    fg_color: tuple[int, int, int] = DEFAULT_FG,
    bg_color: tuple[int, int, int] = DEFAULT_BG,
    logo: Image.Image | None = None,
    logo_box_fraction: float | None = None,
    *,
    box_size: int = DEFAULT_BOX_SIZE,
    border: int = DEFAULT_BORDER,
) -> Image.Image:
    """Generate a QR code image, optionally with a centred logo.

    Args:
        text: 1..500 characters to encode.
        fg_color: (r, g, b) of dark modules.
        bg_color: (r, g, b) of light modules, quiet zone and logo backdrop.
        logo: Decoded raster (PIL image or uint8 array); None for no logo.
        logo_box_fraction: Logo window side as a fraction of the grid side.
                           Defaults to 0.3 when a logo is given.
        box_size: Pixel size of each module.
        border: Quiet zone width in modules.

    Returns:
        RGB PIL Image. Identical arguments always give identical pixels.

    Raises:
        InvalidInputError: bad text, colors, fraction or geometry.
        CapacityExceededError: text does not fit version 40-H.
        UnsupportedFormatError: logo is not a decoded raster.
    """
    fg = validate_color(fg_color, "fg_color")
    bg = validate_color(bg_color, "bg_color")
    if logo is not None and logo_box_fraction is None:
        logo_box_fraction = DEFAULT_LOGO_BOX_FRACTION

    matrix = build_symbol(text, ECC_LEVEL)
    matrix, logo_spec = composite_logo(matrix, logo, logo_box_fraction)
    img = render(matrix, fg, bg, logo_spec, box_size=box_size, border=border)

    audit("qr.generated", logger=log,
          data=text[:80], version=matrix.version, size=f"{matrix.size}x{matrix.size}",
          ecc=ECC_LEVEL, mask=matrix.mask, logo=logo_spec is not None,
          image_px=f"{img.size[0]}x{img.size[1]}")
    return img
