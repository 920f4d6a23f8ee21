"""Excel file update module for writing cell values by address."""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .cell_reference import parse_cell_address
from .config_manager import ConfigManager, DEFAULT_ALLOWED_EXTENSIONS
from .path_resolver import PathResolver, ResolvedLocation
from .utils.exceptions import (
    CellUpdateError,
    NoSheetError,
    ValidationError,
    WorkbookFormatError,
)
from .utils.file_utils import copy_stream_to_file, validate_file_extension
from .value_coercion import apply_content, coerce_value

logger = logging.getLogger(__name__)

# Worksheet size limits of the xlsx format
MAX_ROWS = 1048576
MAX_COLUMNS = 16384


@dataclass
class UpdateResult:
    """Outcome of a successful update run."""

    applied_count: int
    destination_path: str
    destination_directory_created: bool = False
    copied_from_template: bool = False
    # Failures are raised, so a returned result never carries one
    first_failure: Optional[Tuple[str, Exception]] = None


class ExcelUpdater:
    """Applies a batch of cell updates to the first sheet of a workbook.

    The batch is all-or-nothing: the workbook is saved only after every
    update succeeded. The first failing cell aborts the run with
    CellUpdateError and nothing from the batch reaches disk.

    Not safe for concurrent calls against the same destination; callers
    must serialize runs per file.
    """

    def __init__(
        self,
        path_resolver: Optional[PathResolver] = None,
        keep_vba: Optional[bool] = None,
        allowed_extensions: Optional[List[str]] = None,
    ):
        """Initialize updater.

        Args:
            path_resolver: Resolver for templates and output paths
            keep_vba: Preserve VBA projects; None means only for .xlsm files
            allowed_extensions: Destination extensions accepted
        """
        self.path_resolver = path_resolver or PathResolver()
        self.keep_vba = keep_vba
        self.allowed_extensions = allowed_extensions or list(DEFAULT_ALLOWED_EXTENSIONS)
        self.update_log: List[Dict[str, Any]] = []

    @classmethod
    def from_config(cls, config_manager: Optional[ConfigManager] = None) -> "ExcelUpdater":
        """Build an updater from application configuration."""
        config_manager = config_manager or ConfigManager()
        app_config = config_manager.get_app_config()
        return cls(
            path_resolver=PathResolver.from_config(config_manager),
            keep_vba=app_config["keep_vba"],
            allowed_extensions=app_config["allowed_extensions"],
        )

    def apply(
        self,
        destination: str,
        updates: Mapping[str, Any],
        template: Optional[str] = None,
        base_directory: Optional[str] = None,
    ) -> UpdateResult:
        """
        Apply cell updates and save the workbook in place.

        Args:
            destination: Output workbook path, absolute or relative
            updates: Mapping of cell address (e.g. "B2") to value
            template: Optional template to copy over the destination first
            base_directory: Base for a relative destination

        Returns:
            UpdateResult with the number of cells written

        Raises:
            TemplateNotFoundError: template matches no file or resource
            NoSheetError: workbook has no worksheets
            CellUpdateError: a single update failed; the batch is aborted
            WorkbookFormatError: destination is not a readable workbook
            OSError: filesystem failure
        """
        self.update_log = []

        if not validate_file_extension(destination, self.allowed_extensions):
            raise ValidationError(
                f"Unsupported destination file type: {destination}. "
                f"Allowed: {', '.join(self.allowed_extensions)}"
            )

        location = self.path_resolver.resolve(template, destination, base_directory)
        destination_path = location.destination_path
        self._log_info(f"Starting Excel update for file: {destination_path}")

        copied = False
        if template:
            self._materialize_template(location, template)
            copied = True

        workbook = self._open_workbook(destination_path)
        try:
            sheet = self._first_sheet(workbook, destination_path)
            self._log_info(f"Working with sheet: {sheet.title}")

            applied_count = self._apply_updates(sheet, updates)

            self._save_workbook(workbook, destination_path)
            self._log_info(
                f"Successfully updated {applied_count} cells in file: {destination_path}"
            )
        finally:
            workbook.close()

        return UpdateResult(
            applied_count=applied_count,
            destination_path=destination_path,
            destination_directory_created=location.destination_directory_created,
            copied_from_template=copied,
        )

    def _materialize_template(self, location: ResolvedLocation, template: str) -> None:
        """Copy template bytes over the destination, always closing the source."""
        try:
            source_name = getattr(location.source_stream, "name", None)
            if (
                isinstance(source_name, str)
                and os.path.exists(location.destination_path)
                and os.path.samefile(source_name, location.destination_path)
            ):
                # Opening the destination for writing would truncate the source
                self._log_info(f"Template '{template}' is the destination itself, copy skipped")
                return
            written = copy_stream_to_file(location.source_stream, location.destination_path)
        finally:
            location.close()
        self._log_info(
            f"Copied template '{template}' to {location.destination_path} ({written} bytes)"
        )

    def _open_workbook(self, file_path: str) -> Workbook:
        keep_vba = self.keep_vba
        if keep_vba is None:
            keep_vba = file_path.lower().endswith(".xlsm")

        try:
            return load_workbook(file_path, keep_vba=keep_vba)
        except (InvalidFileException, BadZipFile, KeyError) as e:
            self._log_error(f"Cannot read workbook {file_path}: {e}")
            raise WorkbookFormatError(
                f"Cannot read workbook {file_path}: {e}", error_code="BAD_WORKBOOK"
            ) from e

    def _save_workbook(self, workbook: Workbook, file_path: str) -> None:
        """Save next to the destination, then swap it in with os.replace.

        A failed save leaves the destination as it was.
        """
        directory = os.path.dirname(file_path) or "."
        suffix = os.path.splitext(file_path)[1]
        fd, temp_path = tempfile.mkstemp(prefix=".excel_update_", suffix=suffix, dir=directory)
        os.close(fd)
        try:
            workbook.save(temp_path)
            if os.path.exists(file_path):
                shutil.copymode(file_path, temp_path)
            os.replace(temp_path, file_path)
        except Exception as e:
            self._log_error(f"Failed to save workbook {file_path}: {e}")
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def _first_sheet(self, workbook: Workbook, file_path: str) -> Worksheet:
        if not workbook.worksheets:
            self._log_error(f"No sheets found in the Excel file: {file_path}")
            raise NoSheetError(file_path)
        return workbook.worksheets[0]

    def _apply_updates(self, sheet: Worksheet, updates: Mapping[str, Any]) -> int:
        """Write every update in order, stopping at the first failure."""
        applied_count = 0
        for cell_address, value in updates.items():
            try:
                self._update_cell(sheet, cell_address, value)
            except Exception as e:
                self._log_error(f"Failed to update cell {cell_address}: {e}", cell=str(cell_address))
                raise CellUpdateError(cell_address, e) from e
            applied_count += 1
        return applied_count

    def _update_cell(self, sheet: Worksheet, cell_address: str, value: Any) -> None:
        """Update single cell, creating it if absent."""
        address = parse_cell_address(cell_address)
        if address.row >= MAX_ROWS or address.column >= MAX_COLUMNS:
            raise ValueError(
                f"Cell {address} is outside the worksheet limits "
                f"({MAX_ROWS} rows, {MAX_COLUMNS} columns)"
            )
        row, column = address.as_openpyxl()
        cell = sheet.cell(row=row, column=column)
        original_value = cell.value

        content = coerce_value(value)
        apply_content(cell, content)

        self._log_success(
            f"Updated cell {cell_address} with {content.kind.value}: {content.cell_value!r}",
            cell=address.to_string(),
            original_value=original_value,
            new_value=content.cell_value,
        )

    def _log_info(self, message: str) -> None:
        """Log info message."""
        self.update_log.append(
            {
                "timestamp": datetime.now().isoformat(),
                "operation": "INFO",
                "status": "INFO",
                "details": message,
            }
        )
        logger.info(message)

    def _log_success(
        self,
        message: str,
        cell: str = "",
        original_value: Any = "",
        new_value: Any = "",
    ) -> None:
        """Log a cell update; per-cell messages go out at debug level."""
        self.update_log.append(
            {
                "timestamp": datetime.now().isoformat(),
                "operation": "UPDATE",
                "cell": cell,
                "status": "SUCCESS",
                "details": message,
                "original_value": str(original_value) if original_value is not None else "",
                "new_value": str(new_value) if new_value is not None else "",
            }
        )
        logger.debug(message)

    def _log_error(self, message: str, cell: str = "") -> None:
        """Log error message."""
        self.update_log.append(
            {
                "timestamp": datetime.now().isoformat(),
                "operation": "ERROR",
                "cell": cell,
                "status": "ERROR",
                "details": message,
            }
        )
        logger.error(message)


def update_excel_cells(
    file_path: str,
    cell_updates: Mapping[str, Any],
    template: Optional[str] = None,
    base_directory: Optional[str] = None,
) -> int:
    """Update cells of a workbook and return the number of cells written."""
    result = ExcelUpdater().apply(
        file_path, cell_updates, template=template, base_directory=base_directory
    )
    return result.applied_count
