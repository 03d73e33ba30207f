from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parents[1]


def alembic_config(url):
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.attributes["database_url"] = url
    cfg.attributes["configure_logger"] = False
    return cfg


def test_upgrade_creates_all_tables_and_downgrade_drops_them(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = alembic_config(url)

    command.upgrade(cfg, "head")
    engine = create_engine(url)
    tables = set(inspect(engine).get_table_names())
    assert {
        "students", "exams", "exam_results", "syllabus", "syllabus_state", "student_topic_status", "visits",
    } <= tables
    result_columns = {c["name"] for c in inspect(engine).get_columns("exam_results")}
    assert {"chemistry_negative_questions", "maths_unattempted_questions", "rank"} <= result_columns
    visit_indexes = {i["name"] for i in inspect(engine).get_indexes("visits")}
    assert "ix_visits_reminders" in visit_indexes
    engine.dispose()

    command.downgrade(cfg, "base")
    engine = create_engine(url)
    tables = inspect(engine).get_table_names()
    assert "students" not in tables
    assert "visits" not in tables
    engine.dispose()
