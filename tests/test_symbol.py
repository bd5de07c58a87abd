import numpy as np
import pytest

from conftest import reference_modules
from qrick.errors import CapacityExceededError, InvalidInputError
from qrick.masking import evaluate_masks, select_mask
from qrick.matrix import Role
from qrick.symbol import (
    build_symbol,
    data_positions,
    function_patterns,
    place_codewords,
    select_version,
    version_bits,
)
from qrick.ecc import build_codewords
from qrick.encoder import encode_segments
from qrick.tables import raw_codewords, symbol_size

FINDER = np.array([
    [1, 1, 1, 1, 1, 1, 1],
    [1, 0, 0, 0, 0, 0, 1],
    [1, 0, 1, 1, 1, 0, 1],
    [1, 0, 1, 1, 1, 0, 1],
    [1, 0, 1, 1, 1, 0, 1],
    [1, 0, 0, 0, 0, 0, 1],
    [1, 1, 1, 1, 1, 1, 1],
], dtype=bool)


class TestVersionSelection:
    @pytest.mark.parametrize("text,version", [
        ("1" * 17, 1),
        ("1" * 18, 2),
        ("A" * 10, 1),
        ("A" * 11, 2),
        ("a" * 7, 1),
        ("a" * 8, 2),
        ("HELLO WORLD", 2),
        ("https://qrcode.gomes.lol", 3),
    ])
    def test_minimal_version(self, text, version):
        assert select_version(text, "H")[0] == version

    def test_largest_payload_fits_version_40(self):
        text = "\U0001F600" * 318 + "a"   # 1273 UTF-8 bytes
        assert select_version(text, "H")[0] == 40

    def test_one_codeword_over_capacity(self):
        text = "\U0001F600" * 318 + "aa"  # 1274 bytes: one codeword more than 40-H holds
        with pytest.raises(CapacityExceededError) as exc:
            select_version(text, "H")
        assert exc.value.required_codewords == exc.value.available_codewords + 1
        assert exc.value.available_codewords == 1276


class TestFunctionPatterns:
    @pytest.mark.parametrize("version", [1, 2, 7, 40])
    def test_finders_timing_dark_module(self, version):
        modules, roles = function_patterns(version)
        size = symbol_size(version)
        for r, c in ((0, 0), (0, size - 7), (size - 7, 0)):
            assert (modules[r:r + 7, c:c + 7] == FINDER).all()
            assert (roles[r:r + 7, c:c + 7] == Role.FUNCTION).all()
        timing = modules[6, 8:size - 8]
        assert timing.tolist() == [i % 2 == 0 for i in range(8, size - 8)]
        assert modules[size - 8, 8]

    def test_format_and_version_cells(self):
        _, roles = function_patterns(7)
        assert np.count_nonzero(roles == Role.FORMAT) == 30
        assert np.count_nonzero(roles == Role.RESERVED) == 36
        _, roles = function_patterns(6)
        assert np.count_nonzero(roles == Role.RESERVED) == 0

    def test_version_bits(self):
        assert version_bits(7) == 0b000111110010010100

    def test_data_capacity_every_version(self):
        for version in range(1, 41):
            _, roles = function_patterns(version)
            spare = len(data_positions(roles)) - raw_codewords(version) * 8
            assert spare in (0, 3, 4, 7)


class TestBuildSymbol:
    def test_matrix_shape_and_tags(self):
        matrix = build_symbol("https://qrcode.gomes.lol")
        assert matrix.version == 3
        assert matrix.size == 29
        assert matrix.modules.shape == matrix.roles.shape == (29, 29)
        assert matrix.ecc == "H"
        assert 0 <= matrix.mask <= 7

    def test_matrix_is_read_only(self):
        matrix = build_symbol("HELLO")
        with pytest.raises(ValueError):
            matrix.modules[10, 10] = True

    def test_auto_mask_is_minimum_penalty(self):
        text = "hello, world!"
        version, segments = select_version(text, "H")
        base, roles = function_patterns(version)
        place_codewords(base, roles, build_codewords(encode_segments(segments, version), version, "H"))
        candidates = evaluate_masks(base, roles, "H")

        matrix = build_symbol(text)
        best = min(c.penalty for c in candidates)
        assert matrix.mask == select_mask(candidates).mask_id
        assert next(c.penalty for c in candidates if c.mask_id == matrix.mask) == best
        assert all(c.mask_id >= matrix.mask for c in candidates if c.penalty == best)

    def test_deterministic(self):
        a = build_symbol("same input")
        b = build_symbol("same input")
        assert (a.modules == b.modules).all() and a.mask == b.mask

    def test_rejects_bad_mask(self):
        with pytest.raises(InvalidInputError):
            build_symbol("x", mask=8)

    def test_rejects_empty(self):
        with pytest.raises(InvalidInputError):
            build_symbol("")


class TestAgainstReference:
    @pytest.mark.parametrize("text", [
        "HELLO WORLD",
        "01234567",
        "hello, world!",
        "https://qrcode.gomes.lol",
        "hello, world! " * 8,     # version 10: uneven blocks, version info
        "7" * 500,                # numeric, second count-width range
    ])
    def test_forced_masks_match_qrcode(self, text):
        for mask in (0, 3, 6):
            matrix = build_symbol(text, mask=mask)
            assert matrix.mask == mask
            assert matrix.to_lists() == reference_modules(text, matrix.version, mask)

    def test_all_masks_match_qrcode(self):
        for mask in range(8):
            matrix = build_symbol("QRICK", mask=mask)
            assert matrix.to_lists() == reference_modules("QRICK", matrix.version, mask)
