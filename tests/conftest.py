import pytest

from config import TestingConfig
from roster import create_app
from roster.backups import EXECUTOR_KEY
from roster.errors import BackupFailed
from roster.extensions import db
from roster.models import Student, User

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "S3cret!pass"


class FakeExecutor:
    """Stands in for mysqldump; writes a tiny dump unless told otherwise."""

    def __init__(self):
        self.calls = []
        self.fail = False
        self.write = True

    def dump(self, target):
        self.calls.append(target)
        if self.fail:
            raise BackupFailed()
        if self.write:
            target.write_text("-- dump\n")
        return target


@pytest.fixture
def app(tmp_path):
    class Cfg(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{(tmp_path / 'test.db').as_posix()}"
        ERROR_LOG_FILE = str(tmp_path / "logs" / "error.log")
        BACKUP_DIR = str(tmp_path / "backups")

    app = create_app(Cfg)
    app.extensions[EXECUTOR_KEY] = FakeExecutor()
    with app.app_context():
        db.create_all()
        admin = User(username=ADMIN_USERNAME)
        admin.set_password(ADMIN_PASSWORD)
        db.session.add(admin)
        db.session.commit()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def executor(app):
    return app.extensions[EXECUTOR_KEY]


def login(client, username=ADMIN_USERNAME, password=ADMIN_PASSWORD):
    return client.post("/auth/login", data={"username": username, "password": password})


@pytest.fixture
def logged_in(client):
    resp = login(client)
    assert resp.status_code == 302
    return client


def add_students(app, count, prefix="S"):
    with app.app_context():
        for i in range(1, count + 1):
            db.session.add(Student(
                student_no=f"{prefix}{i}",
                fullname=f"Student {chr(64 + i)}",
                email=f"s{i}@example.com",
                course="Information Security",
            ))
        db.session.commit()


def student_rows(app):
    with app.app_context():
        return [(s.id, s.student_no) for s in Student.query.order_by(Student.id).all()]


def read_log(app):
    with open(app.config["ERROR_LOG_FILE"], encoding="utf-8") as fh:
        return fh.read()
