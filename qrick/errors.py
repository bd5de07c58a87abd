"""Errors raised by the QRick pipeline."""


class QRickError(Exception):
    """Base class for errors reported to the caller."""


class InvalidInputError(QRickError, ValueError):
    """Text, color or fraction rejected before encoding."""


class CapacityExceededError(QRickError):
    """Payload does not fit the largest symbol at the requested EC level."""

    def __init__(self, required_bits: int, available_bits: int, ecc: str = "H"):
        self.required_bits = required_bits
        self.available_bits = available_bits
        self.ecc = ecc
        super().__init__(
            f"data needs {required_bits} bits but version 40-{ecc} holds {available_bits}"
        )

    @property
    def required_codewords(self) -> int:
        return (self.required_bits + 7) // 8

    @property
    def available_codewords(self) -> int:
        return self.available_bits // 8


class UnsupportedFormatError(QRickError, TypeError):
    """Logo is not a decoded raster image."""


class SymbolInvariantError(AssertionError):
    """Internal table or placement inconsistency. Never expected at runtime."""
