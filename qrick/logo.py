"""Logo Compositor — excavate a centred module window and fit a logo into it."""

import math
from dataclasses import dataclass
from numbers import Real

import numpy as np
from PIL import Image

from qrick.ecc import codeword_blocks
from qrick.errors import InvalidInputError, SymbolInvariantError, UnsupportedFormatError
from qrick.logging import audit, get_logger, trace
from qrick.matrix import Matrix, Role
from qrick.symbol import data_positions
from qrick.tables import ecc_per_block, num_blocks

log = get_logger("logo")

# Largest logo window side, as a fraction of the grid side
MAX_LOGO_FRACTION = 0.30
# Share of all modules that may ever be excavated: the recovery budget of level H
MAX_EXCAVATION_RATIO = 0.30
# Damaged codewords allowed per RS block, as a share of what the block can correct
RECOVERY_SAFETY = 0.95


@dataclass(frozen=True, eq=False)
class LogoSpec:
    """Where and how large the logo sits, in module units.

    ``row``/``col``/``side`` give the excavated window; ``width``/``height``
    and the offsets place the aspect-preserving logo inside it.
    """

    image: Image.Image
    row: int
    col: int
    side: int
    width: float
    height: float
    x_offset: float
    y_offset: float


def normalize_logo(logo) -> Image.Image:
    """Return the decoded raster as RGBA.

    Accepts a PIL image or a uint8 numpy array (H×W, H×W×3, H×W×4).
    """
    if isinstance(logo, np.ndarray):
        if logo.dtype != np.uint8 or logo.ndim not in (2, 3) or (logo.ndim == 3 and logo.shape[2] not in (3, 4)):
            raise UnsupportedFormatError(f"unsupported logo array {logo.dtype} {logo.shape}")
        logo = Image.fromarray(logo)
    if not isinstance(logo, Image.Image):
        raise UnsupportedFormatError(f"logo must be a decoded raster, got {type(logo).__name__}")
    if logo.width == 0 or logo.height == 0:
        raise UnsupportedFormatError("logo has no pixels")
    try:
        return logo.convert("RGBA")
    except (ValueError, OSError) as e:
        raise UnsupportedFormatError(f"cannot read logo pixels (mode {logo.mode}): {e}") from e

def excavation_window(size: int, box_fraction: float) -> tuple[int, int]:
    """(start, side) of the centred square covering ``box_fraction`` of the grid side.

    Fractions above MAX_LOGO_FRACTION are clamped to it. The side keeps the
    parity of ``size`` so the window is exactly centred.
    """
    if isinstance(box_fraction, bool) or not isinstance(box_fraction, Real) or not math.isfinite(box_fraction):
        raise InvalidInputError(f"logo box fraction must be a number, got {box_fraction!r}")
    if not 0 < box_fraction <= 1:
        raise InvalidInputError(f"logo box fraction must be in (0, 1], got {box_fraction}")

    if box_fraction > MAX_LOGO_FRACTION:
        log.warning("Logo box fraction clamped from %.2f to %.2f", box_fraction, MAX_LOGO_FRACTION)
        box_fraction = MAX_LOGO_FRACTION

    side = min(size, math.ceil(box_fraction * size - 1e-9))
    if (size - side) % 2:
        side += 1
    if side * side > MAX_EXCAVATION_RATIO * size * size:
        raise SymbolInvariantError(f"{side}x{side} window exceeds {MAX_EXCAVATION_RATIO:.0%} of a {size}x{size} grid")
    return (size - side) // 2, side


def damaged_codewords(matrix: Matrix, start: int, side: int) -> list[int]:
    """Codewords per RS block with at least one data module inside the window."""
    blocks = codeword_blocks(matrix.version, matrix.ecc)
    positions = np.array(data_positions(matrix.roles)[:len(blocks) * 8])
    rows, cols = positions[:, 0], positions[:, 1]
    inside = (rows >= start) & (rows < start + side) & (cols >= start) & (cols < start + side)
    hit = np.unique(np.flatnonzero(inside) // 8)
    return np.bincount(np.asarray(blocks)[hit], minlength=num_blocks(matrix.version, matrix.ecc)).tolist()


def within_recovery_budget(matrix: Matrix, damaged: list[int]) -> bool:
    """Every block keeps its damaged codewords under RECOVERY_SAFETY of its correction capacity."""
    correctable = ecc_per_block(matrix.version, matrix.ecc) // 2
    return max(damaged) < RECOVERY_SAFETY * correctable


def fit_logo(logo_size: tuple[int, int], side: int) -> tuple[float, float, float, float]:
    """Scale (w, h) so the longer side spans the window; centre the shorter one.

    Returns (width, height, x_offset, y_offset) in modules.
    """
    w, h = logo_size
    if w >= h:
        width, height = float(side), side * h / w
    else:
        width, height = side * w / h, float(side)
    return width, height, (side - width) / 2, (side - height) / 2


@trace
def composite_logo(matrix: Matrix, logo, box_fraction: float | None) -> tuple[Matrix, LogoSpec | None]:
    """Excavate the logo window and describe the logo placement.

    The window shrinks two modules at a time until the codewords it damages
    fit the recovery budget of every RS block. Only data modules are
    cleared; function, format and version modules stay in place.
    With ``logo=None`` the matrix passes through untouched.

    Raises:
        UnsupportedFormatError: logo is not a decoded raster.
        InvalidInputError: box fraction missing or outside (0, 1].
    """
    if logo is None:
        return matrix, None

    image = normalize_logo(logo)
    if box_fraction is None:
        raise InvalidInputError("a logo needs a box fraction")
    start, side = excavation_window(matrix.size, box_fraction)
    requested = side
    damaged = damaged_codewords(matrix, start, side)
    while side > 1 and not within_recovery_budget(matrix, damaged):
        start, side = start + 1, side - 2
        damaged = damaged_codewords(matrix, start, side)
    if side < requested:
        log.warning("Logo window shrunk from %d to %d modules to stay within EC recovery", requested, side)

    excavated = matrix.excavate(start, start, side)
    width, height, x_off, y_off = fit_logo(image.size, side)
    spec = LogoSpec(image, start, start, side, width, height, x_off, y_off)

    cleared = excavated.count(Role.EXCAVATED)
    audit(
        "logo.excavated", logger=log,
        window=f"{side}x{side}@{start},{start}",
        modules=cleared,
        coverage=f"{cleared / matrix.size ** 2:.1%}",
        damaged_per_block=max(damaged),
        correctable_per_block=ecc_per_block(matrix.version, matrix.ecc) // 2,
        logo_px=f"{image.width}x{image.height}",
        logo_modules=f"{width:.2f}x{height:.2f}",
    )
    return excavated, spec
