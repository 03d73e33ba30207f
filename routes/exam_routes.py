"""Tests (exams) blueprint: CRUD, spreadsheet upload, per-test results and Excel export.

Endpoints (all JSON unless noted):
- /api/tests (GET, POST), /api/tests/<id> (GET, PUT, DELETE)
- /api/tests/batch-delete (POST)
- /api/tests/upload (POST, multipart ``excel_file`` + optional ``test_id``)
- /api/tests/<id>/results (GET, paginated by rank)
- /api/tests/<id>/results/export (GET, .xlsx in the import layout)
"""

from flask import Blueprint, request, jsonify, Response, current_app
from werkzeug.utils import secure_filename
from datetime import datetime
import io
import logging
import os
import uuid
import xlsxwriter

from models.student_model import db, Student
from models.exam_model import Exam, ExamResult, DEFAULT_MAX_MARKS
from utils.excel_import import (
    CANONICAL_COLUMNS,
    DEFAULT_HEADER_ROW,
    SUBJECT_COLUMN_PREFIXES,
    import_results_workbook,
)
from utils.topic_status import schedule_topic_status_refresh

logger = logging.getLogger(__name__)

exam_routes = Blueprint("exam_routes", __name__, url_prefix="/api/tests")

ALLOWED_UPLOAD_EXTENSIONS = (".xlsx",)


def _pagination_args(default_limit):
    try:
        page = max(1, int(request.args.get("page", 1)))
    except ValueError:
        page = 1
    try:
        limit = max(1, int(request.args.get("limit", default_limit)))
    except ValueError:
        limit = default_limit
    return page, limit


def _pagination(page, limit, total):
    return {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit}


def _parse_date(value):
    return datetime.strptime(value, "%Y-%m-%d").date()


@exam_routes.route("", methods=["GET"])
def list_exams():
    page, limit = _pagination_args(18)
    query = Exam.query.order_by(Exam.date.desc(), Exam.id.desc())
    total = query.count()
    exams = query.offset((page - 1) * limit).limit(limit).all()
    return jsonify({"tests": [e.to_dict() for e in exams], "pagination": _pagination(page, limit, total)})


@exam_routes.route("/<int:exam_id>", methods=["GET"])
def get_exam(exam_id):
    exam = db.get_or_404(Exam, exam_id, description="Test not found")
    return jsonify(exam.to_dict())


@exam_routes.route("", methods=["POST"])
def create_exam():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name or not data.get("date"):
        return jsonify({"success": False, "message": "Test name and date are required"}), 400
    try:
        exam_date = _parse_date(data["date"])
        max_marks = int(data.get("max_marks") or DEFAULT_MAX_MARKS)
    except ValueError:
        return jsonify({"success": False, "message": "Invalid date (YYYY-MM-DD) or max marks"}), 400

    exam = Exam(name=name, date=exam_date, max_marks=max_marks)
    db.session.add(exam)
    db.session.commit()
    logger.info(f"[TESTS] Created test {exam.id} {exam.name}")
    return jsonify(exam.to_dict()), 201


@exam_routes.route("/<int:exam_id>", methods=["PUT"])
def update_exam(exam_id):
    exam = db.get_or_404(Exam, exam_id, description="Test not found")
    data = request.get_json(silent=True) or {}
    try:
        if data.get("name"):
            exam.name = data["name"].strip()
        if data.get("date"):
            exam.date = _parse_date(data["date"])
        if data.get("max_marks") is not None:
            exam.max_marks = int(data["max_marks"])
    except ValueError:
        return jsonify({"success": False, "message": "Invalid date (YYYY-MM-DD) or max marks"}), 400
    db.session.commit()
    return jsonify(exam.to_dict())


def _delete_exams(exams):
    """Delete exams with their results; refresh topic status of every affected student."""
    exam_ids = [e.id for e in exams]
    student_ids = [
        sid for (sid,) in
        db.session.query(ExamResult.student_id).filter(ExamResult.exam_id.in_(exam_ids)).distinct()
    ] if exam_ids else []
    for exam in exams:
        db.session.delete(exam)
    db.session.commit()
    schedule_topic_status_refresh(student_ids)
    return len(exam_ids)


@exam_routes.route("/<int:exam_id>", methods=["DELETE"])
def delete_exam(exam_id):
    exam = db.get_or_404(Exam, exam_id, description="Test not found")
    _delete_exams([exam])
    return jsonify({"success": True, "message": "Test deleted successfully"})


@exam_routes.route("/batch-delete", methods=["POST"])
def batch_delete_exams():
    data = request.get_json(silent=True) or {}
    test_ids = data.get("test_ids")
    if not isinstance(test_ids, list) or not test_ids:
        return jsonify({"success": False, "message": "test_ids array is required"}), 400
    exams = Exam.query.filter(Exam.id.in_(test_ids)).all()
    deleted = _delete_exams(exams)
    return jsonify({
        "success": True,
        "message": f"{deleted} test(s) deleted successfully",
        "deleted_count": deleted,
    })


@exam_routes.route("", methods=["DELETE"])
def delete_all_exams():
    deleted = _delete_exams(Exam.query.all())
    return jsonify({
        "success": True,
        "message": f"All {deleted} test(s) deleted successfully",
        "deleted_count": deleted,
    })


@exam_routes.route("/upload", methods=["POST"])
def upload_results():
    """Import an exam-results workbook. Test info comes from I1-I6 unless ``test_id`` is posted."""
    upload = request.files.get("excel_file")
    if upload is None or not upload.filename:
        return jsonify({"success": False, "message": "No file uploaded"}), 400

    filename = secure_filename(upload.filename)
    if not filename.lower().endswith(ALLOWED_UPLOAD_EXTENSIONS):
        return jsonify({"success": False, "message": "Only Excel files (.xlsx) are allowed"}), 400

    exam_id = request.form.get("test_id")
    try:
        exam_id = int(exam_id) if exam_id else None
    except ValueError:
        return jsonify({"success": False, "message": "Invalid test_id"}), 400

    upload_dir = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(upload_dir, exist_ok=True)
    path = os.path.join(upload_dir, f"test-{uuid.uuid4().hex}-{filename}")
    upload.save(path)

    try:
        summary = import_results_workbook(path, exam_id=exam_id)
    finally:
        # The upload is only staged for the import
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"[TESTS] Could not remove staged upload {path}: {e}")

    results = summary.to_dict()
    return jsonify({
        "success": True,
        "message": "Excel file processed successfully",
        "results": results,
        "test": results["test"],
    })


@exam_routes.route("/<int:exam_id>/results", methods=["GET"])
def exam_results(exam_id):
    db.get_or_404(Exam, exam_id, description="Test not found")
    page, limit = _pagination_args(50)
    query = (
        db.session.query(ExamResult, Student)
        .join(Student, Student.id == ExamResult.student_id)
        .filter(ExamResult.exam_id == exam_id)
        .order_by(ExamResult.rank.asc(), Student.roll_number.asc())
    )
    total = query.count()
    rows = query.offset((page - 1) * limit).limit(limit).all()

    results = []
    for result, student in rows:
        item = result.to_dict()
        item["student"] = {"id": student.id, "roll_number": student.roll_number, "name": student.name, "batch": student.batch}
        results.append(item)
    return jsonify({"results": results, "pagination": _pagination(page, limit, total)})


@exam_routes.route("/<int:exam_id>/results/export", methods=["GET"])
def export_exam_results(exam_id):
    """Download a test's results as .xlsx in the same layout the upload accepts."""
    exam = db.get_or_404(Exam, exam_id, description="Test not found")
    rows = (
        db.session.query(ExamResult, Student)
        .join(Student, Student.id == ExamResult.student_id)
        .filter(ExamResult.exam_id == exam_id)
        .order_by(ExamResult.rank.asc(), Student.roll_number.asc())
        .all()
    )

    output = io.BytesIO()
    workbook = xlsxwriter.Workbook(output, {'in_memory': True})
    worksheet = workbook.add_worksheet("Results")
    bold = workbook.add_format({'bold': True})

    # Metadata block in I1-I3
    worksheet.write(0, 8, f"Test Name: {exam.name}")
    worksheet.write(1, 8, f"Date: {exam.date.isoformat()}")
    worksheet.write(2, 8, f"Max Marks: {exam.max_marks}")

    header_index = DEFAULT_HEADER_ROW - 1
    for col, name in enumerate(CANONICAL_COLUMNS):
        worksheet.write(header_index, col, name, bold)

    row = header_index + 1
    for result, student in rows:
        values = [student.roll_number, student.name, student.batch]
        for subject in SUBJECT_COLUMN_PREFIXES:
            scores = result.subject_dict(subject)
            values.extend([scores["right"], scores["wrong"], scores["unattempted"], scores["score"]])
        values.extend([
            result.total_correct, result.total_wrong, result.total_unattempted,
            result.total_score, result.percentage, result.rank,
        ])
        for col, value in enumerate(values):
            worksheet.write(row, col, value)
        row += 1

    workbook.close()
    output.seek(0)
    filename = secure_filename(f"{exam.name}_{exam.date.isoformat()}_results.xlsx") or "results.xlsx"
    return Response(output.getvalue(),
                    mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                    headers={"Content-Disposition": f"attachment;filename={filename}"})
