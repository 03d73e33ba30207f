import pytest

from utils.cell_grid import CellGrid
from utils.import_errors import InvalidWorkbookError


def test_cell_at_is_one_based_and_blank_outside_the_sheet():
    grid = CellGrid.from_rows([("a", "b"), ("c",)])

    assert grid.cell_at(1, 1) == "a"
    assert grid.cell_at(1, 2) == "b"
    assert grid.cell_at(2, 2) is None
    assert grid.cell_at(3, 1) is None
    assert grid.cell_at(0, 1) is None
    assert grid.max_row == 2
    assert grid.max_column == 2


def test_row_values_pads_to_max_column():
    grid = CellGrid.from_rows([("a", "b", "c"), ("d",)])
    assert grid.row_values(2) == ["d", None, None]


def test_from_file_reads_first_sheet(make_workbook):
    path = make_workbook(metadata=[(None, "Mock JEE 1")], rows=[["101", "Asha"]])
    grid = CellGrid.from_file(path)

    assert grid.cell_at(1, 9) == "Mock JEE 1"
    assert grid.cell_at(8, 1) == "StuID"
    assert grid.cell_at(9, 2) == "Asha"


def test_from_file_rejects_non_workbook(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip file")

    with pytest.raises(InvalidWorkbookError) as exc:
        CellGrid.from_file(path)
    assert exc.value.status_code == 400
