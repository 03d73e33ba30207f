"""Read-only, 1-based view of the first worksheet of a workbook."""

import logging
import zipfile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from utils.import_errors import InvalidWorkbookError

logger = logging.getLogger(__name__)


class CellGrid:
    """A sheet as a grid of cell values. Blank cells read as ``None``."""

    def __init__(self, rows, max_row=None, max_column=None):
        self._rows = [tuple(r) for r in rows]
        self.max_row = max(max_row or 0, len(self._rows))
        self.max_column = max([max_column or 0] + [len(r) for r in self._rows])

    @classmethod
    def from_rows(cls, rows):
        return cls(rows)

    @classmethod
    def from_worksheet(cls, ws):
        rows = list(ws.iter_rows(values_only=True))
        # The declared used-range can be missing on files written by other tools
        return cls(rows, max_row=ws.max_row, max_column=ws.max_column)

    @classmethod
    def from_file(cls, path):
        """Load the first sheet of the ``.xlsx`` file at ``path``."""
        try:
            wb = load_workbook(path, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
            logger.error(f"[EXCEL IMPORT] Failed to load workbook {path}: {e}")
            raise InvalidWorkbookError(f"Invalid Excel file: {e}") from e
        try:
            if not wb.worksheets:
                raise InvalidWorkbookError("Workbook has no sheets")
            return cls.from_worksheet(wb.worksheets[0])
        finally:
            wb.close()

    def cell_at(self, row, col):
        if row < 1 or col < 1 or row > len(self._rows):
            return None
        values = self._rows[row - 1]
        if col > len(values):
            return None
        return values[col - 1]

    def row_values(self, row):
        """All cells of ``row`` from column 1 to ``max_column``."""
        return [self.cell_at(row, col) for col in range(1, self.max_column + 1)]
