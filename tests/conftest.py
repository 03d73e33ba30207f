import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TOPIC_STATUS_REFRESH"] = "sync"

import pytest
from openpyxl import Workbook

from app import app as flask_app
from models.student_model import db
from utils.excel_import import CANONICAL_COLUMNS


@pytest.fixture
def app(tmp_path):
    flask_app.config["TESTING"] = True
    flask_app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    flask_app.config["TOPIC_STATUS_REFRESH"] = "sync"
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def result_row(roll_number, name, batch="JEE-A", score=120, rank=1, extra=(), subjects=None):
    """A full canonical data row.

    ``subjects`` maps ``physics``/``chemistry``/``maths`` to ``(right, wrong, unattempted)``;
    each subject defaults to ``(10, 2, 18)`` and scores a third of ``score``. Totals are the sums.
    """
    subjects = subjects or {}
    values = []
    totals = [0, 0, 0]
    for key in ("physics", "chemistry", "maths"):
        right, wrong, unattempted = subjects.get(key, (10, 2, 18))
        values.extend([right, wrong, unattempted, score / 3])
        totals = [totals[0] + right, totals[1] + wrong, totals[2] + unattempted]
    return [
        roll_number, name, batch,
        *values,
        *totals, score, round(score / 3, 2), rank,
        *extra,
    ]


def sheet_rows(metadata=None, header=None, rows=(), header_row=8):
    """Rows of a sheet: metadata in H/I 1-6, header on ``header_row``, data below it."""
    grid = [[None] * 9 for _ in range(header_row - 1)]
    for row_index, (label, value) in enumerate(metadata or []):
        grid[row_index][7] = label
        grid[row_index][8] = value
    grid.append(list(header if header is not None else CANONICAL_COLUMNS))
    grid.extend(list(r) for r in rows)
    return grid


@pytest.fixture
def make_workbook(tmp_path):
    """Write an ``.xlsx`` built by ``sheet_rows`` and return its path."""
    counter = {"n": 0}

    def build(**kwargs):
        counter["n"] += 1
        wb = Workbook()
        ws = wb.active
        for row in sheet_rows(**kwargs):
            ws.append(row)
        path = tmp_path / f"results-{counter['n']}.xlsx"
        wb.save(path)
        return path

    return build
