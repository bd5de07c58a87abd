import numpy as np
import pytest

from qrick.errors import SymbolInvariantError
from qrick.masking import (
    MaskCandidate,
    apply_mask,
    evaluate_mask,
    format_bits,
    mask_pattern,
    penalty_balance,
    penalty_blocks,
    penalty_breakdown,
    penalty_finder_like,
    penalty_runs,
    select_mask,
)
from qrick.matrix import Role
from qrick.symbol import function_patterns


def _candidate(mask_id, *penalties):
    return MaskCandidate(mask_id, tuple(penalties), np.zeros((21, 21), dtype=bool))


class TestPatterns:
    def test_mask_0_checkerboard(self):
        assert mask_pattern(0, 4).astype(int).tolist() == [
            [1, 0, 1, 0],
            [0, 1, 0, 1],
            [1, 0, 1, 0],
            [0, 1, 0, 1],
        ]

    def test_mask_1_rows_and_2_columns(self):
        assert mask_pattern(1, 3)[:, 0].tolist() == [True, False, True]
        assert mask_pattern(2, 4)[0].tolist() == [True, False, False, True]

    def test_all_masks_differ(self):
        patterns = {mask_pattern(m, 21).tobytes() for m in range(8)}
        assert len(patterns) == 8

    def test_rejects_unknown_mask(self):
        with pytest.raises(SymbolInvariantError):
            mask_pattern(8, 21)

    def test_function_modules_untouched(self):
        base, roles = function_patterns(2)
        for mask_id in range(8):
            masked = apply_mask(base, roles, mask_id)
            fixed = roles != Role.DATA
            assert (masked[fixed] == base[fixed]).all()
            assert not (masked == base).all()


class TestFormatBits:
    @pytest.mark.parametrize("ecc,mask,expected", [
        ("L", 0, 0b111011111000100),
        ("M", 0, 0b101010000010010),
        ("Q", 0, 0b011010101011111),
        ("H", 0, 0b001011010001001),
    ])
    def test_known_words(self, ecc, mask, expected):
        assert format_bits(ecc, mask) == expected

    def test_candidate_carries_its_format_word(self):
        base, roles = function_patterns(1)
        cand = evaluate_mask(base, roles, "H", 5)
        bits = format_bits("H", 5)
        column = [int(cand.modules[r, 8]) for r in range(6)]
        assert column == [(bits >> i) & 1 for i in range(6)]


class TestPenalties:
    def test_all_light_5x5(self):
        grid = np.zeros((5, 5), dtype=bool)
        assert penalty_runs(grid) == 30
        assert penalty_blocks(grid) == 48
        assert penalty_finder_like(grid) == 0
        assert penalty_balance(grid) == 90

    def test_run_of_six(self):
        grid = np.zeros((2, 6), dtype=bool)
        grid[1] = [True, False, True, False, True, False]
        assert penalty_runs(grid) == 4

    def test_finder_like_counts_each_side(self):
        grid = np.zeros((7, 7), dtype=bool)
        grid[3] = [1, 0, 1, 1, 1, 0, 1]
        assert penalty_finder_like(grid) == 80

    def test_finder_like_needs_light_margin(self):
        grid = np.zeros((5, 15), dtype=bool)
        grid[2] = [1, 1, 1, 1, 1, 0, 1, 1, 1, 0, 1, 1, 1, 1, 1]
        assert penalty_finder_like(grid) == 0

    @pytest.mark.parametrize("dark,expected", [(221, 0), (200, 0), (198, 10), (190, 10), (0, 90), (441, 90)])
    def test_balance(self, dark, expected):
        grid = np.zeros(441, dtype=bool)
        grid[:dark] = True
        assert penalty_balance(grid.reshape(21, 21)) == expected

    def test_breakdown_sums(self):
        base, roles = function_patterns(1)
        cand = evaluate_mask(base, roles, "H", 2)
        assert cand.penalty == sum(penalty_breakdown(cand.modules))


class TestSelection:
    def test_unique_minimum(self):
        candidates = [_candidate(m, 100 + m, 0, 0, 0) for m in range(8)]
        candidates[5] = _candidate(5, 40, 0, 0, 0)
        assert select_mask(candidates).mask_id == 5

    def test_tie_goes_to_lowest_id(self):
        candidates = [_candidate(m, 50, 0, 40 if m % 2 else 0, 0) for m in range(8)]
        assert select_mask(list(reversed(candidates))).mask_id == 0

    def test_empty(self):
        with pytest.raises(SymbolInvariantError):
            select_mask([])
