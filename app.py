import os
import logging
from flask import Flask, jsonify, request
from models.student_model import db
from models import exam_model, syllabus_model, topic_status_model, visit_model   # ✅ Import models so their tables are registered
from routes.exam_routes import exam_routes
from routes.student_routes import student_routes
from routes.result_routes import result_routes
from routes.syllabus_routes import syllabus_routes
from routes.topic_status_routes import topic_status_routes
from routes.visit_routes import visit_routes
from utils.import_errors import ExcelImportError
from dotenv import load_dotenv   # ✅ Import dotenv
from sqlalchemy import text
from sqlalchemy.exc import InternalError
from werkzeug.exceptions import MethodNotAllowed, NotFound, RequestEntityTooLarge

# ✅ Load environment variables from .env file
load_dotenv()

app = Flask(__name__)

# ✅ Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# ✅ Secret key from environment
app.secret_key = os.getenv("SECRET_KEY", "default_secret")

# ✅ Database configuration from environment
database_url = os.getenv("DATABASE_URL", "sqlite:///exam_tracker.db")
app.config["SQLALCHEMY_DATABASE_URI"] = database_url
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = (
    os.getenv("SQLALCHEMY_TRACK_MODIFICATIONS", "False") == "True"
)

# Pool sizing only applies to server databases; SQLite uses its own pools
if not database_url.startswith("sqlite"):
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_pre_ping": True,  # ✅ Prevent "SSL connection has been closed unexpectedly"
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 1800
    }

# ✅ Upload and import settings
app.config["UPLOAD_FOLDER"] = os.getenv("UPLOAD_FOLDER", "uploads")
app.config["MAX_CONTENT_LENGTH"] = int(os.getenv("MAX_UPLOAD_MB", "10")) * 1024 * 1024
app.config["TOPIC_STATUS_REFRESH"] = os.getenv("TOPIC_STATUS_REFRESH", "detached").lower()

# ✅ Initialize DB
db.init_app(app)

# ✅ Register Blueprints
app.register_blueprint(exam_routes)
app.register_blueprint(student_routes)
app.register_blueprint(result_routes)
app.register_blueprint(syllabus_routes)
app.register_blueprint(topic_status_routes)
app.register_blueprint(visit_routes)


@app.errorhandler(ExcelImportError)
def handle_import_error(error):
    logger.warning(f"[EXCEL IMPORT] Import rejected: {error.message}")
    return jsonify(error.to_dict()), error.status_code


@app.errorhandler(InternalError)
def handle_db_error(error):
    """Catch database transaction errors and rollback."""
    logger.error(f"[DB TRANSACTION ERROR] Transaction aborted, rolling back: {str(error)}")
    try:
        db.session.rollback()
    except Exception as rollback_error:
        logger.error(f"[DB ROLLBACK ERROR] Failed to rollback: {str(rollback_error)}")
    return jsonify({"success": False, "message": "Database error, please retry"}), 500


@app.errorhandler(NotFound)
def handle_not_found(error):
    return jsonify({"success": False, "message": error.description}), 404


@app.errorhandler(RequestEntityTooLarge)
def handle_too_large(error):
    limit_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
    return jsonify({"success": False, "message": f"File too large (max {limit_mb} MB)"}), 413


@app.errorhandler(MethodNotAllowed)
def handle_method_not_allowed(error):
    logger.warning(f"MethodNotAllowed: {request.method} {request.path} - {error}")
    return jsonify({"success": False, "message": "Method Not Allowed"}), 405


@app.route("/")
def index():
    return jsonify({"success": True, "message": "Exam tracker API", "endpoints": [
        "/api/tests", "/api/students", "/api/results", "/api/syllabus", "/api/topic-status", "/api/visits", "/health",
    ]})


# ✅ Health check route for DB connection
@app.route("/health")
def health():
    try:
        with db.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return jsonify({"success": True, "message": "Database connection OK"})
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")
        return jsonify({"success": False, "message": f"Database connection failed: {str(e)}"}), 503


# ✅ Tables normally come from alembic; AUTO_CREATE_TABLES is for quick local runs
if os.getenv("AUTO_CREATE_TABLES", "False") == "True":
    with app.app_context():
        db.create_all()
        logger.info("Database tables created successfully")

# ✅ Entry point for local testing
if __name__ == "__main__":
    logger.info("Starting Flask app locally...")
    app.run(debug=True)
