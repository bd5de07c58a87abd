"""Data Encoder — classify text into QR mode segments and build the data bitstream."""

from dataclasses import dataclass
from enum import Enum

from qrick.errors import InvalidInputError
from qrick.logging import get_logger
from qrick.tables import ALPHANUMERIC_INDEX, version_range_index

log = get_logger("encoder")

MAX_TEXT_LENGTH = 500


class Mode(Enum):
    """Encoding modes: (indicator, char-count widths per version range, rank)."""

    NUMERIC = (0b0001, (10, 12, 14), 0)
    ALPHANUMERIC = (0b0010, (9, 11, 13), 1)
    BYTE = (0b0100, (8, 16, 16), 2)

    @property
    def indicator(self) -> int:
        return self.value[0]

    @property
    def rank(self) -> int:
        return self.value[2]

    def count_bits(self, version: int) -> int:
        return self.value[1][version_range_index(version)]


@dataclass(frozen=True)
class Segment:
    """A run of text encoded in one mode."""

    mode: Mode
    text: str

    @property
    def payload(self) -> bytes:
        return self.text.encode("utf-8")

    @property
    def char_count(self) -> int:
        """Value written into the character-count field."""
        if self.mode is Mode.BYTE:
            return len(self.payload)
        return len(self.text)

    def payload_bits(self) -> int:
        n = self.char_count
        if self.mode is Mode.NUMERIC:
            return 10 * (n // 3) + (0, 4, 7)[n % 3]
        if self.mode is Mode.ALPHANUMERIC:
            return 11 * (n // 2) + 6 * (n % 2)
        return 8 * n

    def fits(self, version: int) -> bool:
        return self.char_count < (1 << self.mode.count_bits(version))

    def bit_length(self, version: int) -> int:
        return 4 + self.mode.count_bits(version) + self.payload_bits()


def _int_to_bits(value: int, width: int) -> list[int]:
    """Fixed-width bit list, MSB first."""
    return [(value >> (width - 1 - i)) & 1 for i in range(width)]


def validate_text(text: str) -> None:
    """Reject text the encoder cannot carry."""
    if not isinstance(text, str):
        raise InvalidInputError(f"text must be str, got {type(text).__name__}")
    if not text:
        raise InvalidInputError("text is empty")
    if len(text) > MAX_TEXT_LENGTH:
        raise InvalidInputError(f"text is {len(text)} characters, limit is {MAX_TEXT_LENGTH}")
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidInputError(f"text is not encodable: {e.reason} at position {e.start}") from e


def char_mode(ch: str) -> Mode:
    """Narrowest mode able to carry a single character."""
    if "0" <= ch <= "9":
        return Mode.NUMERIC
    if ch in ALPHANUMERIC_INDEX:
        return Mode.ALPHANUMERIC
    return Mode.BYTE


def classify_runs(text: str) -> list[Segment]:
    """Split text into maximal runs of characters sharing a narrowest mode."""
    runs: list[Segment] = []
    start = 0
    for i in range(1, len(text) + 1):
        if i == len(text) or char_mode(text[i]) is not char_mode(text[start]):
            runs.append(Segment(char_mode(text[start]), text[start:i]))
            start = i
    return runs


def make_segments(text: str, version: int) -> list[Segment]:
    """Segment text for the character-count widths of ``version``.

    Adjacent runs are merged into the wider mode whenever that does not
    lengthen the stream, until no merge helps.
    """
    segments = classify_runs(text)
    i = 0
    while i < len(segments) - 1:
        a, b = segments[i], segments[i + 1]
        mode = a.mode if a.mode.rank >= b.mode.rank else b.mode
        joined = Segment(mode, a.text + b.text)
        if joined.bit_length(version) <= a.bit_length(version) + b.bit_length(version):
            segments[i:i + 2] = [joined]
            # the wider run may now absorb its left neighbour
            i = max(i - 1, 0)
        else:
            i += 1
    return segments


def segments_bit_length(segments: list[Segment], version: int) -> int | None:
    """Total stream length, or None when a count field overflows at ``version``."""
    if not all(seg.fits(version) for seg in segments):
        return None
    return sum(seg.bit_length(version) for seg in segments)


def _payload(segment: Segment) -> list[int]:
    bits: list[int] = []
    if segment.mode is Mode.NUMERIC:
        digits = segment.text
        for i in range(0, len(digits), 3):
            chunk = digits[i:i + 3]
            bits.extend(_int_to_bits(int(chunk), (0, 4, 7, 10)[len(chunk)]))
    elif segment.mode is Mode.ALPHANUMERIC:
        chars = segment.text
        for i in range(0, len(chars) - 1, 2):
            bits.extend(_int_to_bits(ALPHANUMERIC_INDEX[chars[i]] * 45 + ALPHANUMERIC_INDEX[chars[i + 1]], 11))
        if len(chars) % 2:
            bits.extend(_int_to_bits(ALPHANUMERIC_INDEX[chars[-1]], 6))
    else:
        for byte in segment.payload:
            bits.extend(_int_to_bits(byte, 8))
    return bits


def encode_segments(segments: list[Segment], version: int) -> list[int]:
    """Mode indicator + count field + payload for each segment, concatenated."""
    bits: list[int] = []
    for seg in segments:
        bits.extend(_int_to_bits(seg.mode.indicator, 4))
        bits.extend(_int_to_bits(seg.char_count, seg.mode.count_bits(version)))
        bits.extend(_payload(seg))
    log.debug("encoded %d segment(s) into %d bits", len(segments), len(bits))
    return bits
