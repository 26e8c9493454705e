import pytest

from conftest import add_students, student_rows
from roster.errors import DuplicateKey, SystemFailure, ValidationFailed
from roster.extensions import db
from roster.forms import StudentForm
from roster.models import Student
from roster.students import create_student

VALID = {
    "student_no": "STU-001",
    "fullname": "Ada O'Neil-Smith",
    "email": "ada@example.com",
    "course": "Information Security",
    "course_description": "Labs and lectures",
}


def test_empty_listing(logged_in):
    resp = logged_in.get("/students/")
    assert resp.status_code == 200
    assert b"No Students Yet" in resp.data


def test_listing_shows_rows_newest_first(app, logged_in):
    add_students(app, 3)
    body = logged_in.get("/students/").get_data(as_text=True)
    assert body.index("S3") < body.index("S2") < body.index("S1")
    assert "s1@example.com" in body


def test_listing_escapes_markup(app, logged_in):
    with app.app_context():
        db.session.add(Student(
            student_no="X1", fullname="<script>alert(1)</script>",
            email="x@example.com", course="<b>course</b>",
        ))
        db.session.commit()

    body = logged_in.get("/students/").get_data(as_text=True)
    assert "<script>alert(1)</script>" not in body
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in body
    assert "<b>course</b>" not in body


def test_listing_truncates_long_descriptions(app, logged_in):
    with app.app_context():
        db.session.add(Student(student_no="L1", fullname="Long Desc", email="l@example.com",
                               course="C", course_description="d" * 40))
        db.session.commit()
    body = logged_in.get("/students/").get_data(as_text=True)
    assert "d" * 30 + "..." in body
    assert "d" * 31 not in body


def test_listing_query_failure_is_explicit(monkeypatch, logged_in):
    def boom():
        raise SystemFailure("Failed to load students. Please try again later.")

    monkeypatch.setattr("roster.blueprints.students.routes.list_students", boom)
    resp = logged_in.get("/students/")
    assert resp.status_code == 200
    assert b"Failed to load students" in resp.data
    assert b"No Students Yet" not in resp.data


def test_create_form_renders(logged_in):
    resp = logged_in.get("/students/new")
    assert resp.status_code == 200
    assert b'name="student_no"' in resp.data


def test_create_valid_student(app, logged_in):
    resp = logged_in.post("/students/new", data=VALID)
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/students/")

    with app.app_context():
        s = Student.query.one()
        assert s.student_no == "STU-001"
        assert s.course_description == "Labs and lectures"
        assert s.created_at is not None

    page = logged_in.get("/students/").get_data(as_text=True)
    assert "Student added successfully!" in page
    assert "O&#39;Neil-Smith" in page


def test_create_with_empty_required_field(app, logged_in):
    data = dict(VALID, fullname="   ")
    resp = logged_in.post("/students/new", data=data)
    assert resp.status_code == 200
    assert b"Full Name is required." in resp.data
    assert b'value="STU-001"' in resp.data
    assert student_rows(app) == []


def test_create_reports_all_violations(app, logged_in):
    data = {
        "student_no": "bad id!",
        "fullname": "R2D2",
        "email": "not-an-email",
        "course": "",
        "course_description": "x" * 256,
    }
    body = logged_in.post("/students/new", data=data).get_data(as_text=True)
    for message in (
        "Student ID can only contain letters, numbers, hyphens, and underscores.",
        "Full Name can only contain letters, spaces, hyphens, and apostrophes.",
        "Invalid email format.",
        "Course is required.",
        "Course description exceeds maximum length.",
    ):
        assert message in body
    assert student_rows(app) == []


def test_create_duplicate_student_no(app, logged_in):
    logged_in.post("/students/new", data=VALID)
    resp = logged_in.post("/students/new", data=dict(VALID, email="other@example.com"))
    assert resp.status_code == 200
    assert b"This Student ID already exists in the system." in resp.data
    assert len(student_rows(app)) == 1


def test_duplicate_is_not_a_system_failure(app):
    with app.test_request_context():
        create_student(StudentForm(**VALID))
        with pytest.raises(DuplicateKey):
            create_student(StudentForm(**VALID))


def test_service_validates_before_touching_database(app, monkeypatch):
    with app.test_request_context():
        monkeypatch.setattr(db.session, "add", lambda obj: pytest.fail("database touched"))
        with pytest.raises(ValidationFailed) as info:
            create_student(StudentForm())
        assert len(info.value.errors) == 4


def test_optional_description_stored_as_null(app):
    with app.test_request_context():
        student = create_student(StudentForm(**dict(VALID, course_description="")))
        assert student.course_description is None


def test_home_redirects_to_listing(logged_in):
    resp = logged_in.get("/")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/students/")
