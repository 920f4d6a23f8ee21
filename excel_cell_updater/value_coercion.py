"""Mapping of untyped input values onto typed cell content."""

import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from openpyxl.cell.cell import Cell


class ContentKind(Enum):
    """Kinds of content a cell can be given."""

    BLANK = "blank"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    FALLBACK_TEXT = "fallback_text"


@dataclass(frozen=True)
class CellContent:
    """Typed content ready to be written into a cell."""

    kind: ContentKind
    value: Union[None, str, float, bool] = None

    @property
    def cell_value(self) -> Union[None, str, float, bool]:
        """Value as stored by openpyxl; blank cells hold None."""
        if self.kind is ContentKind.BLANK:
            return None
        return self.value


BLANK = CellContent(ContentKind.BLANK)


def coerce_value(value: Any) -> CellContent:
    """Coerce any value into cell content. Never raises.

    Numbers are stored as floats, so integers beyond 2**53 may not survive
    exactly. Unknown types fall back to their string form.
    """
    if value is None:
        return BLANK
    if isinstance(value, str):
        return CellContent(ContentKind.TEXT, value)
    # bool is a subclass of int
    if isinstance(value, bool):
        return CellContent(ContentKind.BOOLEAN, value)
    if isinstance(value, numbers.Real):
        try:
            return CellContent(ContentKind.NUMBER, float(value))
        except (OverflowError, ValueError):
            return CellContent(ContentKind.FALLBACK_TEXT, str(value))
    return CellContent(ContentKind.FALLBACK_TEXT, str(value))


def apply_content(cell: Cell, content: CellContent) -> None:
    """Write coerced content into an openpyxl cell.

    Text is stored verbatim, so a leading "=" does not become a formula.
    """
    cell.value = content.cell_value
    if content.kind in (ContentKind.TEXT, ContentKind.FALLBACK_TEXT) and cell.data_type == "f":
        cell.data_type = "s"
