"""Module matrix — the pixel-free product of the Symbol Builder."""

from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple

import numpy as np

from qrick.errors import SymbolInvariantError
from qrick.tables import symbol_size


class Role(IntEnum):
    DATA = 0
    FUNCTION = 1   # finders, separators, timing, alignment, dark module
    FORMAT = 2
    RESERVED = 3   # version information
    EXCAVATED = 4


class Module(NamedTuple):
    dark: bool
    role: Role


@dataclass(frozen=True, eq=False)
class Matrix:
    """Square grid of modules tagged with version, EC level and mask id.

    ``modules`` is a bool array (True = dark), ``roles`` a uint8 array of
    :class:`Role` values. Both are read-only once the matrix exists.
    """

    version: int
    ecc: str
    mask: int
    modules: np.ndarray
    roles: np.ndarray

    def __post_init__(self):
        side = symbol_size(self.version)
        if self.modules.shape != (side, side) or self.roles.shape != (side, side):
            raise SymbolInvariantError(
                f"version {self.version} needs a {side}x{side} grid, got {self.modules.shape}"
            )
        if not 0 <= self.mask <= 7:
            raise SymbolInvariantError(f"mask id {self.mask} outside 0-7")
        self.modules.flags.writeable = False
        self.roles.flags.writeable = False

    @property
    def size(self) -> int:
        return self.modules.shape[0]

    def module(self, row: int, col: int) -> Module:
        return Module(bool(self.modules[row, col]), Role(int(self.roles[row, col])))

    def count(self, role: Role) -> int:
        return int(np.count_nonzero(self.roles == role))

    def excavate(self, row: int, col: int, side: int) -> "Matrix":
        """New matrix with the data modules of a side x side square cleared and tagged EXCAVATED.

        Function, format and version modules inside the square are kept.
        """
        modules = self.modules.copy()
        roles = self.roles.copy()
        window = np.zeros(roles.shape, dtype=bool)
        window[row:row + side, col:col + side] = True
        window &= roles == Role.DATA
        modules[window] = False
        roles[window] = Role.EXCAVATED
        return Matrix(self.version, self.ecc, self.mask, modules, roles)

    def to_lists(self) -> list[list[bool]]:
        return self.modules.tolist()

