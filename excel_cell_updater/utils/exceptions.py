"""Custom exceptions for Excel Cell Updater."""

from typing import Optional, Sequence


class ExcelCellUpdaterError(Exception):
    """Base exception for Excel Cell Updater operations."""

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class FileProcessingError(ExcelCellUpdaterError):
    """Exception raised for file processing errors."""

    pass


class ExcelProcessingError(FileProcessingError):
    """Exception raised for Excel file processing errors."""

    pass


class ValidationError(ExcelCellUpdaterError):
    """Exception raised for validation errors."""

    pass


class ConfigurationError(ExcelCellUpdaterError):
    """Exception raised for configuration-related errors."""

    pass


class InvalidAddressError(ValidationError):
    """Exception raised when a cell address cannot be parsed."""

    def __init__(self, address: object, reason: str = "") -> None:
        message = f"Invalid cell address: {address!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, error_code="INVALID_ADDRESS")
        self.address = address


class TemplateNotFoundError(FileProcessingError):
    """Exception raised when a template matches neither a file nor a resource."""

    def __init__(self, template_ref: str, attempted: Sequence[str]) -> None:
        self.template_ref = template_ref
        self.attempted = list(attempted)
        super().__init__(
            f"Template not found: {template_ref!r} "
            f"(tried: {', '.join(self.attempted)})",
            error_code="TEMPLATE_NOT_FOUND",
        )


class NoSheetError(ExcelProcessingError):
    """Exception raised when a workbook has no worksheets."""

    def __init__(self, file_path: str) -> None:
        super().__init__(
            f"No sheets found in the Excel file: {file_path}",
            error_code="NO_SHEET",
        )
        self.file_path = file_path


class WorkbookFormatError(ExcelProcessingError):
    """Exception raised when a file cannot be read as a workbook."""

    pass


class CellUpdateError(ExcelProcessingError):
    """Exception raised when a single cell update fails, aborting the batch."""

    def __init__(self, address: object, cause: BaseException) -> None:
        super().__init__(
            f"Failed to update cell {address}: {cause}",
            error_code="CELL_UPDATE_FAILED",
        )
        self.address = address
        self.cause = cause
