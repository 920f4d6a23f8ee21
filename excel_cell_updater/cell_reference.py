"""Cell address parsing between "A1" notation and zero-based coordinates."""

import re
from dataclasses import dataclass
from typing import Any, Tuple

from .utils.exceptions import InvalidAddressError

# Absolute markers ("$A$1") are accepted and dropped
CELL_ADDRESS_PATTERN = re.compile(r"\$?([A-Za-z]+)\$?([0-9]+)")

ALPHABET_SIZE = 26


@dataclass(frozen=True)
class CellAddress:
    """Zero-based row/column coordinates of a single cell."""

    row: int
    column: int

    def __post_init__(self):
        if self.row < 0 or self.column < 0:
            raise ValueError(
                f"Cell coordinates must be non-negative: row={self.row}, column={self.column}"
            )

    def to_string(self) -> str:
        """Encode back into "A1" notation."""
        return f"{column_letters_from_index(self.column)}{self.row + 1}"

    def as_openpyxl(self) -> Tuple[int, int]:
        """Return the 1-based (row, column) pair openpyxl expects."""
        return self.row + 1, self.column + 1

    def __str__(self) -> str:
        return self.to_string()


def column_index_from_letters(letters: str) -> int:
    """Convert column letters to a zero-based index ("A" -> 0, "AA" -> 26).

    Letters are read as a bijective base-26 numeral (A=1 .. Z=26, no zero
    digit), most significant letter first.
    """
    if not letters or not letters.isalpha() or not letters.isascii():
        raise ValueError(f"Invalid column letters: {letters!r}")

    value = 0
    for letter in letters.upper():
        value = value * ALPHABET_SIZE + (ord(letter) - ord("A") + 1)
    return value - 1


def column_letters_from_index(index: int) -> str:
    """Convert a zero-based column index to letters (0 -> "A", 26 -> "AA")."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative: {index}")

    letters = []
    remaining = index + 1
    while remaining > 0:
        remaining, digit = divmod(remaining - 1, ALPHABET_SIZE)
        letters.append(chr(ord("A") + digit))
    return "".join(reversed(letters))


def parse_cell_address(address: Any) -> CellAddress:
    """Parse a cell address such as "B2" into CellAddress(row=1, column=1).

    Raises:
        InvalidAddressError: if the address is not letters followed by
            digits, or the row number is not a positive integer.
    """
    if not isinstance(address, str):
        raise InvalidAddressError(address, "address must be a string")

    match = CELL_ADDRESS_PATTERN.fullmatch(address)
    if not match:
        raise InvalidAddressError(address, "expected column letters followed by a row number")

    letters, digits = match.groups()
    try:
        row_number = int(digits)
    except ValueError:
        # Python caps int() on very long digit strings
        raise InvalidAddressError(address, "row number is too long")
    if row_number < 1:
        raise InvalidAddressError(address, "row number must be 1 or greater")

    return CellAddress(row=row_number - 1, column=column_index_from_letters(letters))


def is_valid_cell_address(address: Any) -> bool:
    """Check whether an address parses, without raising."""
    try:
        parse_cell_address(address)
        return True
    except InvalidAddressError:
        return False
