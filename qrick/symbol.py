"""Symbol Builder — version selection, function patterns, codeword placement, masking.

Produces a :class:`~qrick.matrix.Matrix`; nothing here knows about pixels,
so headless consumers can stop at :func:`build_symbol`.
"""

import numpy as np

from qrick.ecc import build_codewords
from qrick.encoder import Segment, encode_segments, make_segments, segments_bit_length, validate_text
from qrick.errors import CapacityExceededError, InvalidInputError, SymbolInvariantError
from qrick.logging import audit, get_logger, trace
from qrick.masking import NUM_MASKS, evaluate_mask, evaluate_masks, format_positions, select_mask
from qrick.matrix import Matrix, Role
from qrick.tables import (
    ALIGNMENT_POSITIONS,
    MAX_VERSION,
    VERSION_GENERATOR,
    VERSION_RANGES,
    data_codewords,
    symbol_size,
)

log = get_logger("symbol")


# ---------------------------------------------------------------------------
# Version selection
# ---------------------------------------------------------------------------

def select_version(text: str, ecc: str = "H") -> tuple[int, list[Segment]]:
    """Smallest version whose data capacity holds the segmented text.

    Segmentation depends on the count-field widths, so each version range
    is segmented on its own.
    """
    required = None
    for lo, hi in VERSION_RANGES:
        segments = make_segments(text, lo)
        needed = segments_bit_length(segments, lo)
        if needed is None:
            continue
        required = needed
        for version in range(lo, hi + 1):
            if needed <= data_codewords(version, ecc) * 8:
                return version, segments
    available = data_codewords(MAX_VERSION, ecc) * 8
    raise CapacityExceededError(required if required is not None else available + 1, available, ecc)


# ---------------------------------------------------------------------------
# Function patterns
# ---------------------------------------------------------------------------

def _draw_finder(modules, roles, row, col):
    """7x7 finder with its one-module light separator, clipped to the grid."""
    size = modules.shape[0]
    for dr in range(-1, 8):
        for dc in range(-1, 8):
            r, c = row + dr, col + dc
            if 0 <= r < size and 0 <= c < size:
                dist = max(abs(dr - 3), abs(dc - 3))
                modules[r, c] = dist not in (2, 4)
                roles[r, c] = Role.FUNCTION


def _draw_alignment(modules, roles, row, col):
    for dr in range(-2, 3):
        for dc in range(-2, 3):
            modules[row + dr, col + dc] = max(abs(dr), abs(dc)) != 1
            roles[row + dr, col + dc] = Role.FUNCTION


def version_bits(version: int) -> int:
    """18-bit version word, BCH(18,6) protected."""
    rem = version
    for _ in range(12):
        rem = (rem << 1) ^ ((rem >> 11) * VERSION_GENERATOR)
    return version << 12 | rem


def function_patterns(version: int) -> tuple[np.ndarray, np.ndarray]:
    """Unmasked grid with every non-data module placed and tagged.

    Format cells are reserved (light) here; their content depends on the
    mask and is written per candidate.
    """
    size = symbol_size(version)
    modules = np.zeros((size, size), dtype=bool)
    roles = np.full((size, size), Role.DATA, dtype=np.uint8)

    # Timing
    for i in range(size):
        modules[6, i] = modules[i, 6] = i % 2 == 0
        roles[6, i] = roles[i, 6] = Role.FUNCTION

    for row, col in ((0, 0), (0, size - 7), (size - 7, 0)):
        _draw_finder(modules, roles, row, col)

    centres = ALIGNMENT_POSITIONS[version]
    last = len(centres) - 1
    for i, row in enumerate(centres):
        for j, col in enumerate(centres):
            if (i, j) in ((0, 0), (0, last), (last, 0)):
                continue
            _draw_alignment(modules, roles, row, col)

    for copy in format_positions(size):
        for r, c in copy:
            roles[r, c] = Role.FORMAT

    # Dark module
    modules[size - 8, 8] = True
    roles[size - 8, 8] = Role.FUNCTION

    if version >= 7:
        bits = version_bits(version)
        for i in range(18):
            a, b = size - 11 + i % 3, i // 3
            modules[b, a] = modules[a, b] = (bits >> i) & 1
            roles[b, a] = roles[a, b] = Role.RESERVED

    return modules, roles


# ---------------------------------------------------------------------------
# Codeword placement
# ---------------------------------------------------------------------------

def data_positions(roles: np.ndarray) -> list[tuple[int, int]]:
    """Data cells in placement order: column pairs from the right, zig-zagging up and down."""
    size = roles.shape[0]
    order = []
    right = size - 1
    while right >= 1:
        if right == 6:
            right = 5
        upward = ((right + 1) & 2) == 0
        for vert in range(size):
            row = size - 1 - vert if upward else vert
            for col in (right, right - 1):
                if roles[row, col] == Role.DATA:
                    order.append((row, col))
        right -= 2
    return order


def place_codewords(modules: np.ndarray, roles: np.ndarray, codewords: list[int]) -> None:
    """Write codeword bits MSB first along the placement path.

    Cells left over after the last codeword are remainder bits and stay light.
    """
    positions = data_positions(roles)
    bits = np.unpackbits(np.array(codewords, dtype=np.uint8))
    remainder = len(positions) - bits.size
    if not 0 <= remainder < 8:
        raise SymbolInvariantError(
            f"{bits.size} codeword bits for {len(positions)} data modules"
        )
    rows, cols = np.array(positions[:bits.size]).T
    modules[rows, cols] = bits.astype(bool)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

@trace
def build_symbol(text: str, ecc: str = "H", mask: int | None = None) -> Matrix:
    """Encode ``text`` into a finished, masked module matrix.

    Args:
        text: 1..500 characters.
        ecc: EC level; the pipeline always uses H.
        mask: Force a mask id 0-7 (inspection tools); None selects by penalty.

    Raises:
        InvalidInputError: text rejected, or mask id out of range.
        CapacityExceededError: text does not fit version 40 at ``ecc``.
    """
    validate_text(text)
    if mask is not None and not (isinstance(mask, int) and 0 <= mask < NUM_MASKS):
        raise InvalidInputError(f"mask must be 0-7, got {mask!r}")

    version, segments = select_version(text, ecc)
    bits = encode_segments(segments, version)
    codewords = build_codewords(bits, version, ecc)

    base, roles = function_patterns(version)
    place_codewords(base, roles, codewords)

    if mask is None:
        chosen = select_mask(evaluate_masks(base, roles, ecc))
    else:
        chosen = evaluate_mask(base, roles, ecc, mask)

    matrix = Matrix(version, ecc, chosen.mask_id, chosen.modules, roles)
    audit(
        "symbol.built", logger=log,
        version=version, size=f"{matrix.size}x{matrix.size}", ecc=ecc,
        mask=chosen.mask_id, penalty=chosen.penalty,
        segments="+".join(s.mode.name.lower() for s in segments),
        bits=len(bits), codewords=len(codewords),
    )
    return matrix
