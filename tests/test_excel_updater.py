"""Functional tests for ExcelUpdater module."""

import os
import shutil
import tempfile
from unittest import TestCase, mock

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import IllegalCharacterError

from excel_cell_updater import excel_updater
from excel_cell_updater.excel_updater import ExcelUpdater, UpdateResult, update_excel_cells
from excel_cell_updater.path_resolver import PathResolver
from excel_cell_updater.utils.exceptions import (
    CellUpdateError,
    InvalidAddressError,
    NoSheetError,
    TemplateNotFoundError,
    ValidationError,
    WorkbookFormatError,
)


def read_bytes(path):
    with open(path, "rb") as f:
        return f.read()


class TestExcelUpdater(TestCase):
    """Test ExcelUpdater functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.file_path = os.path.join(self.temp_dir, "book.xlsx")

        # Two-row sheet, second sheet must stay untouched
        wb = Workbook()
        ws = wb.active
        ws.title = "Sheet1"
        ws["A1"] = "Header"
        ws["A2"] = "Row two"
        other = wb.create_sheet("Other")
        other["A1"] = "keep me"
        wb.save(self.file_path)
        wb.close()

        self.template_path = os.path.join(self.temp_dir, "template.xlsx")
        wb = Workbook()
        wb.active.title = "Template"
        wb.active["C3"] = "from template"
        wb.save(self.template_path)
        wb.close()

        self.updater = ExcelUpdater()

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _read_cells(self, path, *addresses):
        wb = load_workbook(path)
        try:
            ws = wb.worksheets[0]
            return [ws[address].value for address in addresses]
        finally:
            wb.close()

    def test_updates_are_written(self):
        """Text and number updates land in the saved file."""
        result = self.updater.apply(self.file_path, {"A1": "X", "B2": 10})

        self.assertIsInstance(result, UpdateResult)
        self.assertEqual(result.applied_count, 2)
        self.assertIsNone(result.first_failure)
        self.assertEqual(result.destination_path, self.file_path)

        a1, b2, a2 = self._read_cells(self.file_path, "A1", "B2", "A2")
        self.assertEqual(a1, "X")
        self.assertEqual(b2, 10.0)
        self.assertEqual(a2, "Row two")

    def test_all_value_kinds(self):
        self.updater.apply(
            self.file_path,
            {"A1": None, "B1": "text", "C1": 1.5, "D1": True, "E1": [1, 2], "F1": "=1+1"},
        )

        values = self._read_cells(self.file_path, "A1", "B1", "C1", "D1", "E1", "F1")
        self.assertEqual(values, [None, "text", 1.5, True, "[1, 2]", "=1+1"])

    def test_only_first_sheet_is_touched(self):
        self.updater.apply(self.file_path, {"A1": "changed"})

        wb = load_workbook(self.file_path)
        try:
            self.assertEqual(wb.sheetnames, ["Sheet1", "Other"])
            self.assertEqual(wb["Other"]["A1"].value, "keep me")
            self.assertIsNone(wb["Other"]["B1"].value)
        finally:
            wb.close()

    def test_rows_and_cells_are_created(self):
        self.updater.apply(self.file_path, {"AA100": "far away"})

        (value,) = self._read_cells(self.file_path, "AA100")
        self.assertEqual(value, "far away")

    def test_invalid_address_aborts_without_saving(self):
        """A bad address fails the batch and leaves the file untouched."""
        before = read_bytes(self.file_path)

        with self.assertRaises(CellUpdateError) as ctx:
            self.updater.apply(self.file_path, {"A1": "X", "ZZ": "bad", "B1": "never"})

        self.assertEqual(ctx.exception.address, "ZZ")
        self.assertIsInstance(ctx.exception.cause, InvalidAddressError)
        self.assertIs(ctx.exception.__cause__, ctx.exception.cause)
        self.assertIn("ZZ", str(ctx.exception))
        self.assertEqual(read_bytes(self.file_path), before)

        (a1,) = self._read_cells(self.file_path, "A1")
        self.assertEqual(a1, "Header")

    def test_write_failure_stops_remaining_updates(self):
        with mock.patch.object(
            self.updater, "_update_cell", wraps=self.updater._update_cell
        ) as update_cell:
            with self.assertRaises(CellUpdateError) as ctx:
                self.updater.apply(self.file_path, {"A1": "ok", "B1": "bad\x01char", "C1": "skipped"})

        self.assertEqual(ctx.exception.address, "B1")
        self.assertIsInstance(ctx.exception.cause, IllegalCharacterError)
        self.assertEqual(update_cell.call_count, 2)
        self.assertEqual(self._read_cells(self.file_path, "A1", "C1"), ["Header", None])

    def test_address_beyond_sheet_limits_aborts_without_saving(self):
        before = read_bytes(self.file_path)

        for address in ("AAAA1", "XFE1", "A1048577"):
            with self.assertRaises(CellUpdateError) as ctx:
                self.updater.apply(self.file_path, {"A1": "X", address: "far"})

            self.assertEqual(ctx.exception.address, address)
            self.assertIsInstance(ctx.exception.cause, ValueError)
            self.assertEqual(read_bytes(self.file_path), before)

    def test_last_cell_of_sheet_is_writable(self):
        self.updater.apply(self.file_path, {"XFD1048576": "corner"})

        self.assertEqual(self._read_cells(self.file_path, "XFD1048576"), ["corner"])

    def test_failed_save_leaves_destination_untouched(self):
        before = read_bytes(self.file_path)

        def broken_save(workbook, path):
            with open(path, "wb") as f:
                f.write(b"partial")
            raise OSError("disk full")

        with mock.patch("openpyxl.workbook.workbook.Workbook.save", autospec=True, side_effect=broken_save):
            with self.assertRaises(OSError):
                self.updater.apply(self.file_path, {"A1": "X"})

        self.assertEqual(read_bytes(self.file_path), before)
        self.assertEqual(sorted(os.listdir(self.temp_dir)), ["book.xlsx", "template.xlsx"])

    def test_save_keeps_destination_permissions(self):
        os.chmod(self.file_path, 0o640)

        self.updater.apply(self.file_path, {"A1": "X"})

        self.assertEqual(os.stat(self.file_path).st_mode & 0o777, 0o640)

    def test_failure_after_template_copy_leaves_pristine_template(self):
        destination = os.path.join(self.temp_dir, "out", "result.xlsx")

        with self.assertRaises(CellUpdateError):
            self.updater.apply(destination, {"A1": "X", "1A": "bad"}, template=self.template_path)

        self.assertEqual(read_bytes(destination), read_bytes(self.template_path))

    def test_template_is_copied_then_updated(self):
        destination = os.path.join(self.temp_dir, "nested", "dir", "result.xlsx")

        result = self.updater.apply(destination, {"A1": "new"}, template=self.template_path)

        self.assertTrue(result.copied_from_template)
        self.assertTrue(result.destination_directory_created)
        self.assertEqual(self._read_cells(destination, "A1", "C3"), ["new", "from template"])
        # Template itself is left alone
        self.assertEqual(self._read_cells(self.template_path, "A1"), [None])

    def test_template_overwrites_existing_destination(self):
        self.updater.apply(self.file_path, {"B1": "x"}, template=self.template_path)

        wb = load_workbook(self.file_path)
        try:
            self.assertEqual(wb.sheetnames, ["Template"])
            self.assertIsNone(wb.active["A2"].value)
        finally:
            wb.close()

    def test_template_equal_to_destination(self):
        result = self.updater.apply(self.template_path, {"A1": "self"}, template=self.template_path)

        self.assertEqual(result.applied_count, 1)
        self.assertEqual(self._read_cells(self.template_path, "A1", "C3"), ["self", "from template"])

    def test_missing_template(self):
        destination = os.path.join(self.temp_dir, "result.xlsx")

        with self.assertRaises(TemplateNotFoundError):
            self.updater.apply(destination, {"A1": "X"}, template=os.path.join(self.temp_dir, "none.xlsx"))

        self.assertFalse(os.path.exists(destination))

    def test_source_stream_closed_when_copy_fails(self):
        destination = os.path.join(self.temp_dir, "result.xlsx")
        location = PathResolver().resolve(self.template_path, destination)
        stream = location.source_stream

        with mock.patch.object(PathResolver, "resolve", return_value=location):
            with mock.patch.object(
                excel_updater, "copy_stream_to_file", side_effect=OSError("disk full")
            ):
                with self.assertRaises(OSError):
                    self.updater.apply(destination, {"A1": "X"}, template=self.template_path)

        self.assertTrue(stream.closed)

    def test_missing_destination_without_template(self):
        with self.assertRaises(FileNotFoundError):
            self.updater.apply(os.path.join(self.temp_dir, "absent.xlsx"), {"A1": "X"})

    def test_unreadable_workbook(self):
        broken = os.path.join(self.temp_dir, "broken.xlsx")
        with open(broken, "wb") as f:
            f.write(b"this is not a zip archive")

        with self.assertRaises(WorkbookFormatError):
            self.updater.apply(broken, {"A1": "X"})

    def test_unsupported_extension(self):
        csv_path = os.path.join(self.temp_dir, "data.csv")

        with self.assertRaises(ValidationError):
            self.updater.apply(csv_path, {"A1": "X"})

        self.assertFalse(os.path.exists(csv_path))

    def test_no_sheets(self):
        empty_workbook = mock.MagicMock()
        empty_workbook.worksheets = []

        with mock.patch.object(excel_updater, "load_workbook", return_value=empty_workbook):
            with self.assertRaises(NoSheetError):
                self.updater.apply(self.file_path, {"A1": "X"})

        empty_workbook.close.assert_called_once()
        empty_workbook.save.assert_not_called()

    def test_workbook_closed_on_failure(self):
        opened = []
        real_load_workbook = excel_updater.load_workbook

        def tracking_load(*args, **kwargs):
            wb = real_load_workbook(*args, **kwargs)
            wb.close = mock.Mock(wraps=wb.close)
            opened.append(wb)
            return wb

        with mock.patch.object(excel_updater, "load_workbook", side_effect=tracking_load):
            with self.assertRaises(CellUpdateError):
                self.updater.apply(self.file_path, {"A0": "bad"})

        self.assertEqual(len(opened), 1)
        opened[0].close.assert_called_once()

    def test_keep_vba_for_macro_workbooks(self):
        workbook = mock.MagicMock()
        workbook.worksheets = [mock.MagicMock(title="Sheet1")]
        xlsm_path = os.path.join(self.temp_dir, "macro.xlsm")

        with mock.patch.object(excel_updater, "load_workbook", return_value=workbook) as loader:
            ExcelUpdater().apply(xlsm_path, {"A1": 1})
            ExcelUpdater().apply(self.file_path, {"A1": 1})
            ExcelUpdater(keep_vba=True).apply(self.file_path, {"A1": 1})

        self.assertEqual(
            [c.kwargs["keep_vba"] for c in loader.call_args_list], [True, False, True]
        )
        self.assertEqual(workbook.save.call_count, 3)
        saved_to = workbook.save.call_args[0][0]
        self.assertEqual(os.path.dirname(saved_to), self.temp_dir)
        self.assertFalse(os.path.exists(saved_to))

    def test_reapplying_same_batch_is_idempotent(self):
        self.updater.apply(self.file_path, {"A1": "X"})
        first = self._read_cells(self.file_path, "A1")
        self.updater.apply(self.file_path, {"A1": "X"})

        self.assertEqual(self._read_cells(self.file_path, "A1"), first)
        self.assertEqual(first, ["X"])

    def test_serialized_runs_on_same_file(self):
        """Callers serializing runs per file see every batch applied in order."""
        self.updater.apply(self.file_path, {"A1": "first", "B1": 1})
        ExcelUpdater().apply(self.file_path, {"B1": 2, "C1": True})

        self.assertEqual(self._read_cells(self.file_path, "A1", "B1", "C1"), ["first", 2, True])

    def test_relative_destination_uses_base_directory(self):
        updater = ExcelUpdater(path_resolver=PathResolver(base_directory=self.temp_dir))

        result = updater.apply("reports/out.xlsx", {"A1": "rel"}, template=self.template_path)

        self.assertEqual(result.destination_path, os.path.join(self.temp_dir, "reports", "out.xlsx"))
        self.assertEqual(self._read_cells(result.destination_path, "A1"), ["rel"])

    def test_empty_batch_still_saves_template_copy(self):
        destination = os.path.join(self.temp_dir, "copy.xlsx")

        result = self.updater.apply(destination, {}, template=self.template_path)

        self.assertEqual(result.applied_count, 0)
        self.assertEqual(self._read_cells(destination, "C3"), ["from template"])

    def test_update_log_records_each_cell(self):
        self.updater.apply(self.file_path, {"A1": "X", "B2": 5})

        cells = [e["cell"] for e in self.updater.update_log if e["operation"] == "UPDATE"]
        self.assertEqual(cells, ["A1", "B2"])

        update = [e for e in self.updater.update_log if e.get("cell") == "A1"][0]
        self.assertEqual(update["original_value"], "Header")
        self.assertEqual(update["new_value"], "X")

    def test_update_excel_cells_returns_count(self):
        count = update_excel_cells(self.file_path, {"A1": "one", "A2": "two", "A3": 3})

        self.assertEqual(count, 3)
        self.assertEqual(self._read_cells(self.file_path, "A3"), [3])
