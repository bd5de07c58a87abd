"""Mask evaluation — the 8 XOR patterns, penalty scoring and format information.

Each candidate is an independent pure evaluation of the unmasked grid; the
best one is picked by minimum penalty, lowest mask id on ties.
"""

from dataclasses import dataclass

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from qrick.errors import SymbolInvariantError
from qrick.logging import audit, get_logger
from qrick.matrix import Role
from qrick.tables import ECC_FORMAT_BITS, FORMAT_GENERATOR, FORMAT_MASK

log = get_logger("masking")

NUM_MASKS = 8

# Penalty weights N1..N4
PENALTY_RUN = 3
PENALTY_BLOCK = 3
PENALTY_FINDER = 40
PENALTY_BALANCE = 10

_FINDER_LIKE = (
    np.array([1, 0, 1, 1, 1, 0, 1, 0, 0, 0, 0], dtype=bool),
    np.array([0, 0, 0, 0, 1, 0, 1, 1, 1, 0, 1], dtype=bool),
)


# ---------------------------------------------------------------------------
# Mask patterns
# ---------------------------------------------------------------------------

_MASK_CONDITIONS = (
    lambda i, j: (i + j) % 2 == 0,
    lambda i, j: i % 2 == 0,
    lambda i, j: j % 3 == 0,
    lambda i, j: (i + j) % 3 == 0,
    lambda i, j: (i // 2 + j // 3) % 2 == 0,
    lambda i, j: (i * j) % 2 + (i * j) % 3 == 0,
    lambda i, j: ((i * j) % 2 + (i * j) % 3) % 2 == 0,
    lambda i, j: ((i + j) % 2 + (i * j) % 3) % 2 == 0,
)


def mask_pattern(mask_id: int, size: int) -> np.ndarray:
    """Bool grid, True where mask ``mask_id`` flips a module (i = row, j = col)."""
    if not 0 <= mask_id < NUM_MASKS:
        raise SymbolInvariantError(f"mask id {mask_id} outside 0-7")
    i, j = np.indices((size, size))
    return _MASK_CONDITIONS[mask_id](i, j)


def apply_mask(modules: np.ndarray, roles: np.ndarray, mask_id: int) -> np.ndarray:
    """XOR the pattern onto data modules only; returns a new array."""
    flip = mask_pattern(mask_id, modules.shape[0]) & (roles == Role.DATA)
    return modules ^ flip


# ---------------------------------------------------------------------------
# Format information
# ---------------------------------------------------------------------------

def format_bits(ecc: str, mask_id: int) -> int:
    """15-bit format word: level + mask, BCH(15,5) protected, XOR-masked."""
    data = ECC_FORMAT_BITS[ecc] << 3 | mask_id
    rem = data
    for _ in range(10):
        rem = (rem << 1) ^ ((rem >> 9) * FORMAT_GENERATOR)
    return (data << 10 | rem) ^ FORMAT_MASK


def format_positions(size: int) -> tuple[list[tuple[int, int]], list[tuple[int, int]]]:
    """(row, col) of format bits 0..14 for the two copies."""
    first = [(i, 8) for i in range(6)] + [(7, 8), (8, 8), (8, 7)]
    first += [(8, 14 - i) for i in range(9, 15)]
    second = [(8, size - 1 - i) for i in range(8)]
    second += [(size - 15 + i, 8) for i in range(8, 15)]
    return first, second


def draw_format_bits(modules: np.ndarray, ecc: str, mask_id: int) -> None:
    bits = format_bits(ecc, mask_id)
    for copy in format_positions(modules.shape[0]):
        for i, (r, c) in enumerate(copy):
            modules[r, c] = (bits >> i) & 1


# ---------------------------------------------------------------------------
# Penalty rules
# ---------------------------------------------------------------------------

def penalty_runs(modules: np.ndarray) -> int:
    """N1: each same-color run of length >= 5 in a row or column scores 3 + (length - 5)."""
    score = 0
    for grid in (modules, modules.T):
        for line in grid:
            edges = np.flatnonzero(line[1:] != line[:-1]) + 1
            runs = np.diff(np.concatenate(([0], edges, [line.size])))
            long_runs = runs[runs >= 5]
            score += int((long_runs - 5 + PENALTY_RUN).sum())
    return score


def penalty_blocks(modules: np.ndarray) -> int:
    """N2: each 2x2 block of one color scores 3 (overlapping blocks all count)."""
    tl = modules[:-1, :-1]
    same = (tl == modules[:-1, 1:]) & (tl == modules[1:, :-1]) & (tl == modules[1:, 1:])
    return PENALTY_BLOCK * int(np.count_nonzero(same))


def penalty_finder_like(modules: np.ndarray) -> int:
    """N3: 1:1:3:1:1 dark pattern with 4 light modules on a side, 40 per side.

    The quiet zone around the symbol counts as light.
    """
    count = 0
    for grid in (modules, modules.T):
        padded = np.pad(grid, ((0, 0), (4, 4)), constant_values=False)
        windows = sliding_window_view(padded, 11, axis=1)
        for pattern in _FINDER_LIKE:
            count += int(np.count_nonzero(np.all(windows == pattern, axis=2)))
    return PENALTY_FINDER * count


def penalty_balance(modules: np.ndarray) -> int:
    """N4: 10 points per full 5% step the dark ratio deviates from 50%."""
    total = modules.size
    dark = int(np.count_nonzero(modules))
    k = (abs(dark * 20 - total * 10) + total - 1) // total - 1
    return PENALTY_BALANCE * max(k, 0)


def penalty_breakdown(modules: np.ndarray) -> tuple[int, int, int, int]:
    return (
        penalty_runs(modules),
        penalty_blocks(modules),
        penalty_finder_like(modules),
        penalty_balance(modules),
    )


# ---------------------------------------------------------------------------
# Candidate evaluation
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class MaskCandidate:
    mask_id: int
    penalties: tuple[int, int, int, int]
    modules: np.ndarray

    @property
    def penalty(self) -> int:
        return sum(self.penalties)


def evaluate_mask(base: np.ndarray, roles: np.ndarray, ecc: str, mask_id: int) -> MaskCandidate:
    """Mask a copy of ``base``, write its format word and score it."""
    modules = apply_mask(base, roles, mask_id)
    draw_format_bits(modules, ecc, mask_id)
    return MaskCandidate(mask_id, penalty_breakdown(modules), modules)


def evaluate_masks(base: np.ndarray, roles: np.ndarray, ecc: str) -> list[MaskCandidate]:
    return [evaluate_mask(base, roles, ecc, mask_id) for mask_id in range(NUM_MASKS)]


def select_mask(candidates: list[MaskCandidate]) -> MaskCandidate:
    """Minimum total penalty; lowest mask id breaks ties."""
    if not candidates:
        raise SymbolInvariantError("no mask candidates to choose from")
    best = min(candidates, key=lambda c: (c.penalty, c.mask_id))
    audit(
        "mask.selected", logger=log,
        mask=best.mask_id, penalty=best.penalty,
        scores={str(c.mask_id): c.penalty for c in candidates},
    )
    return best
