from datetime import date

from models.visit_model import Visit


def make_student(client, roll="301"):
    return client.post("/api/students", json={"roll_number": roll, "name": "Kiran", "batch": "JEE-B"}).get_json()["id"]


def test_create_visit_defaults_and_student_details(client):
    student_id = make_student(client)

    response = client.post("/api/visits", json={"student_id": student_id, "assignment": "  Revise optics  "})

    assert response.status_code == 201
    visit = response.get_json()
    assert visit["visit_date"] == date.today().isoformat()
    assert visit["visit_time"] == "10:00"
    assert visit["assignment"] == "Revise optics"
    assert visit["remarks"] == ""
    assert visit["notified_24h"] is False and visit["notified_6h"] is False

    detail = client.get(f"/api/visits/{visit['id']}").get_json()
    assert detail["student"] == {"id": student_id, "roll_number": "301", "name": "Kiran", "batch": "JEE-B"}


def test_create_visit_validation(client):
    student_id = make_student(client)

    missing = client.post("/api/visits", json={"visit_date": "2024-05-02"})
    assert missing.status_code == 400
    assert missing.get_json()["message"] == "student_id is required"

    assert client.post("/api/visits", json={"student_id": 999}).get_json()["message"] == "Student not found"

    bad_date = client.post("/api/visits", json={"student_id": student_id, "visit_date": "02/05/2024"})
    assert bad_date.status_code == 400
    assert bad_date.get_json()["message"] == "Visit date must be YYYY-MM-DD"

    bad_time = client.post("/api/visits", json={"student_id": student_id, "visit_time": "25:00"})
    assert bad_time.status_code == 400
    assert bad_time.get_json()["message"] == "Visit time must be HH:MM"

    assert Visit.query.count() == 0


def test_student_visits_are_listed_newest_first(client):
    student_id = make_student(client)
    for visit_date, visit_time in (("2024-05-02", "09:30"), ("2024-06-10", "11:00"), ("2024-06-10", "16:45")):
        client.post("/api/visits", json={"student_id": student_id, "visit_date": visit_date, "visit_time": visit_time})

    visits = client.get(f"/api/visits/student/{student_id}").get_json()

    assert [(v["visit_date"], v["visit_time"]) for v in visits] == [
        ("2024-06-10", "16:45"), ("2024-06-10", "11:00"), ("2024-05-02", "09:30"),
    ]
    assert client.get("/api/visits/student/999").get_json() == []


def test_update_and_delete_visit(client):
    student_id = make_student(client)
    visit_id = client.post("/api/visits", json={"student_id": student_id, "visit_date": "2024-05-02"}).get_json()["id"]

    updated = client.put(f"/api/visits/{visit_id}", json={"visit_time": "14:15", "remarks": "Parent attended"})
    assert updated.get_json()["visit_time"] == "14:15"
    assert updated.get_json()["remarks"] == "Parent attended"
    assert updated.get_json()["visit_date"] == "2024-05-02"

    rejected = client.put(f"/api/visits/{visit_id}", json={"remarks": "changed", "visit_time": "7pm"})
    assert rejected.status_code == 400
    assert client.get(f"/api/visits/{visit_id}").get_json()["remarks"] == "Parent attended"

    deleted = client.delete(f"/api/visits/{visit_id}")
    assert deleted.get_json() == {"success": True, "message": "Visit deleted successfully"}
    missing = client.get(f"/api/visits/{visit_id}")
    assert missing.status_code == 404
    assert missing.get_json()["message"] == "Visit not found"
    assert client.put(f"/api/visits/{visit_id}", json={}).status_code == 404
