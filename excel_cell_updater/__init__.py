"""Apply batches of cell updates to Excel workbooks."""

from .cell_reference import CellAddress, is_valid_cell_address, parse_cell_address
from .excel_updater import ExcelUpdater, UpdateResult, update_excel_cells
from .path_resolver import PathResolver, ResolvedLocation
from .value_coercion import CellContent, ContentKind, coerce_value

__version__ = "1.0.0"

__all__ = [
    "CellAddress",
    "CellContent",
    "ContentKind",
    "ExcelUpdater",
    "PathResolver",
    "ResolvedLocation",
    "UpdateResult",
    "coerce_value",
    "is_valid_cell_address",
    "parse_cell_address",
    "update_excel_cells",
]
