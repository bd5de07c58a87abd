"""Error-Correction Encoder — pad the data stream, split into blocks, append Reed-Solomon codewords.

Arithmetic is over GF(256) with the QR primitive polynomial
x^8 + x^4 + x^3 + x^2 + 1 (0x11D) and generator element alpha = 2.
"""

from types import MappingProxyType

from qrick.errors import SymbolInvariantError
from qrick.logging import get_logger
from qrick.tables import (
    EC_BLOCK_LENGTHS,
    block_layout,
    data_codewords,
    ecc_per_block,
    raw_codewords,
)

log = get_logger("ecc")

PRIMITIVE_POLY = 0x11D
PAD_BYTES = (0xEC, 0x11)


# ---------------------------------------------------------------------------
# GF(256) tables
# ---------------------------------------------------------------------------

def _build_field_tables() -> tuple[tuple[int, ...], tuple[int, ...]]:
    exp = [0] * 512
    log_ = [0] * 256
    x = 1
    for i in range(255):
        exp[i] = exp[i + 255] = x
        log_[x] = i
        x <<= 1
        if x & 0x100:
            x ^= PRIMITIVE_POLY
    return tuple(exp), tuple(log_)


GF_EXP, GF_LOG = _build_field_tables()


def gf_mul(a: int, b: int) -> int:
    if a == 0 or b == 0:
        return 0
    return GF_EXP[GF_LOG[a] + GF_LOG[b]]


def _generator_poly(degree: int) -> tuple[int, ...]:
    """Coefficients of prod(x - alpha^i) for i < degree, highest power first, leading 1 dropped."""
    coeffs = [1]
    for i in range(degree):
        root = GF_EXP[i]
        nxt = coeffs + [0]
        for j in range(1, len(nxt)):
            nxt[j] ^= gf_mul(coeffs[j - 1], root)
        coeffs = nxt
    return tuple(coeffs[1:])


# Every EC block length the symbol format uses
GENERATOR_POLYS = MappingProxyType({degree: _generator_poly(degree) for degree in EC_BLOCK_LENGTHS})


# ---------------------------------------------------------------------------
# Reed-Solomon
# ---------------------------------------------------------------------------

def rs_remainder(data: list[int], degree: int) -> list[int]:
    """EC codewords for one block: remainder of data(x)·x^degree divided by the generator."""
    generator = GENERATOR_POLYS.get(degree)
    if generator is None:
        raise SymbolInvariantError(f"no generator polynomial of degree {degree}")
    remainder = [0] * degree
    for byte in data:
        factor = byte ^ remainder.pop(0)
        remainder.append(0)
        if factor:
            for i, coeff in enumerate(generator):
                remainder[i] ^= gf_mul(coeff, factor)
    return remainder


# ---------------------------------------------------------------------------
# Padding, blocking, interleaving
# ---------------------------------------------------------------------------

def pad_bitstream(bits: list[int], version: int, ecc: str = "H") -> list[int]:
    """Terminator, byte alignment and 0xEC/0x11 filler up to the data capacity.

    Returns the data codewords.
    """
    capacity = data_codewords(version, ecc) * 8
    if len(bits) > capacity:
        raise SymbolInvariantError(f"{len(bits)} bits exceed {capacity} at version {version}-{ecc}")

    padded = list(bits)
    padded.extend([0] * min(4, capacity - len(padded)))
    padded.extend([0] * (-len(padded) % 8))

    codewords = []
    for i in range(0, len(padded), 8):
        byte = 0
        for bit in padded[i:i + 8]:
            byte = (byte << 1) | bit
        codewords.append(byte)

    filler = 0
    while len(codewords) < capacity // 8:
        codewords.append(PAD_BYTES[filler])
        filler ^= 1
    return codewords


def split_blocks(data: list[int], version: int, ecc: str = "H") -> list[list[int]]:
    """Split data codewords into the block structure of (version, level)."""
    layout = block_layout(version, ecc)
    if sum(layout) != len(data):
        raise SymbolInvariantError(f"{len(data)} data codewords for a {sum(layout)}-codeword layout")
    blocks = []
    pos = 0
    for length in layout:
        blocks.append(data[pos:pos + length])
        pos += length
    return blocks


def interleave(blocks: list[list[int]]) -> list[int]:
    """Round-robin across blocks; shorter blocks drop out when exhausted."""
    out = []
    for i in range(max(len(b) for b in blocks)):
        for block in blocks:
            if i < len(block):
                out.append(block[i])
    return out


def codeword_blocks(version: int, ecc: str = "H") -> list[int]:
    """RS block index of every codeword, in final interleaved order."""
    layout = block_layout(version, ecc)
    degree = ecc_per_block(version, ecc)
    data = interleave([[block] * length for block, length in enumerate(layout)])
    return data + interleave([[block] * degree for block in range(len(layout))])


def build_codewords(bits: list[int], version: int, ecc: str = "H") -> list[int]:
    """Final codeword sequence: interleaved data codewords, then interleaved EC codewords."""
    data_blocks = split_blocks(pad_bitstream(bits, version, ecc), version, ecc)
    degree = ecc_per_block(version, ecc)
    ec_blocks = [rs_remainder(block, degree) for block in data_blocks]

    result = interleave(data_blocks) + interleave(ec_blocks)
    if len(result) != raw_codewords(version):
        raise SymbolInvariantError(f"built {len(result)} codewords, version {version} holds {raw_codewords(version)}")
    log.debug("version %d-%s: %d blocks, %d codewords", version, ecc, len(data_blocks), len(result))
    return result
