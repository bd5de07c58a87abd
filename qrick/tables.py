"""Static QR tables (ISO/IEC 18004): block structure, alignment positions, mode widths.

All tables are read-only and shared by every request.
"""

from types import MappingProxyType

from qrick.errors import SymbolInvariantError

MIN_VERSION = 1
MAX_VERSION = 40

ECC_LEVELS = ("L", "M", "Q", "H")

# Format-information bits for each level (note: not in L/M/Q/H order)
ECC_FORMAT_BITS = MappingProxyType({"L": 0b01, "M": 0b00, "Q": 0b11, "H": 0b10})

# ---------------------------------------------------------------------------
# Codeword distribution, indexed by version (index 0 unused)
# ---------------------------------------------------------------------------

# EC codewords in each block
_ECC_PER_BLOCK = MappingProxyType({
    "L": (0, 7, 10, 15, 20, 26, 18, 20, 24, 30, 18, 20, 24, 26, 30, 22, 24, 28, 30, 28, 28,
          28, 28, 30, 30, 26, 28, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
    "M": (0, 10, 16, 26, 18, 24, 16, 18, 22, 22, 26, 30, 22, 22, 24, 24, 28, 28, 26, 26, 26,
          26, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28),
    "Q": (0, 13, 22, 18, 26, 18, 24, 18, 22, 20, 24, 28, 26, 24, 20, 30, 24, 28, 28, 26, 30,
          28, 30, 30, 30, 30, 28, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
    "H": (0, 17, 28, 22, 16, 22, 28, 26, 26, 24, 28, 24, 28, 22, 24, 24, 30, 28, 28, 26, 28,
          30, 24, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
})

# Number of RS blocks
_NUM_BLOCKS = MappingProxyType({
    "L": (0, 1, 1, 1, 1, 1, 2, 2, 2, 2, 4, 4, 4, 4, 4, 6, 6, 6, 6, 7, 8,
          8, 9, 9, 10, 12, 12, 12, 13, 14, 15, 16, 17, 18, 19, 19, 20, 21, 22, 24, 25),
    "M": (0, 1, 1, 1, 2, 2, 4, 4, 4, 5, 5, 5, 8, 9, 9, 10, 10, 11, 13, 14, 16,
          17, 17, 18, 20, 21, 23, 25, 26, 28, 29, 31, 33, 35, 37, 38, 40, 43, 45, 47, 49),
    "Q": (0, 1, 1, 2, 2, 4, 4, 6, 6, 8, 8, 8, 10, 12, 16, 12, 17, 16, 18, 21, 20,
          23, 23, 25, 27, 29, 34, 34, 35, 38, 40, 43, 45, 48, 51, 53, 56, 59, 62, 65, 68),
    "H": (0, 1, 1, 2, 4, 4, 4, 5, 6, 8, 8, 11, 11, 16, 16, 18, 16, 19, 21, 25, 25,
          25, 34, 30, 32, 35, 37, 40, 42, 45, 48, 51, 54, 57, 60, 63, 66, 70, 74, 77, 81),
})

# Distinct EC block lengths, one generator polynomial each
EC_BLOCK_LENGTHS = tuple(sorted({n for row in _ECC_PER_BLOCK.values() for n in row if n}))

# ---------------------------------------------------------------------------
# Alignment pattern centre coordinates (rows and columns), by version
# ---------------------------------------------------------------------------

ALIGNMENT_POSITIONS = (
    (),
    (), (6, 18), (6, 22), (6, 26), (6, 30), (6, 34),
    (6, 22, 38), (6, 24, 42), (6, 26, 46), (6, 28, 50), (6, 30, 54), (6, 32, 58), (6, 34, 62),
    (6, 26, 46, 66), (6, 26, 48, 70), (6, 26, 50, 74), (6, 30, 54, 78), (6, 30, 56, 82),
    (6, 30, 58, 86), (6, 34, 62, 90),
    (6, 28, 50, 72, 94), (6, 26, 50, 74, 98), (6, 30, 54, 78, 102), (6, 28, 54, 80, 106),
    (6, 32, 58, 84, 110), (6, 30, 58, 86, 114), (6, 34, 62, 90, 118),
    (6, 26, 50, 74, 98, 122), (6, 30, 54, 78, 102, 126), (6, 26, 52, 78, 104, 130),
    (6, 30, 56, 82, 108, 134), (6, 34, 60, 86, 112, 138), (6, 30, 58, 86, 114, 142),
    (6, 34, 62, 90, 118, 146),
    (6, 30, 54, 78, 102, 126, 150), (6, 24, 50, 76, 102, 128, 154), (6, 28, 54, 80, 106, 132, 158),
    (6, 32, 58, 84, 110, 136, 162), (6, 26, 54, 82, 110, 138, 166), (6, 30, 58, 86, 114, 142, 170),
)

# ---------------------------------------------------------------------------
# Mode constants
# ---------------------------------------------------------------------------

ALPHANUMERIC_CHARSET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./:"
ALPHANUMERIC_INDEX = MappingProxyType({ch: i for i, ch in enumerate(ALPHANUMERIC_CHARSET)})

# Version ranges sharing one set of character-count widths
VERSION_RANGES = ((1, 9), (10, 26), (27, 40))

# BCH generators and the format-info XOR mask
FORMAT_GENERATOR = 0x537
FORMAT_MASK = 0x5412
VERSION_GENERATOR = 0x1F25


def symbol_size(version: int) -> int:
    """Grid side in modules."""
    return version * 4 + 17


def _check(version: int, ecc: str):
    if not MIN_VERSION <= version <= MAX_VERSION or ecc not in ECC_FORMAT_BITS:
        raise SymbolInvariantError(f"no table entry for version {version!r} level {ecc!r}")


def raw_codewords(version: int) -> int:
    """Total codewords (data + EC) a version holds, remainder bits excluded."""
    _check(version, "H")
    n = (16 * version + 128) * version + 64
    if version >= 2:
        num_align = version // 7 + 2
        n -= (25 * num_align - 10) * num_align - 55
        if version >= 7:
            n -= 36
    return n // 8


def ecc_per_block(version: int, ecc: str) -> int:
    _check(version, ecc)
    return _ECC_PER_BLOCK[ecc][version]


def num_blocks(version: int, ecc: str) -> int:
    _check(version, ecc)
    return _NUM_BLOCKS[ecc][version]


def data_codewords(version: int, ecc: str) -> int:
    """Data codeword capacity of (version, level)."""
    return raw_codewords(version) - ecc_per_block(version, ecc) * num_blocks(version, ecc)


def block_layout(version: int, ecc: str) -> list[int]:
    """Data codewords per block, short blocks first."""
    blocks = num_blocks(version, ecc)
    total = raw_codewords(version)
    short_len = total // blocks - ecc_per_block(version, ecc)
    num_short = blocks - total % blocks
    return [short_len] * num_short + [short_len + 1] * (blocks - num_short)


def version_range_index(version: int) -> int:
    for i, (lo, hi) in enumerate(VERSION_RANGES):
        if lo <= version <= hi:
            return i
    raise SymbolInvariantError(f"version {version!r} outside 1-40")
