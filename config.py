import os
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.engine import URL

BASE_DIR = Path(__file__).resolve().parent

# Load environment file (defaults to .env, can override with DOTENV_PATH)
load_dotenv(os.getenv("DOTENV_PATH", BASE_DIR / ".env"))


def database_uri():
    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")
    if os.getenv("DB_HOST"):
        return URL.create(
            "mysql+pymysql",
            username=os.getenv("DB_USER", "root"),
            password=os.getenv("DB_PASSWORD") or None,
            host=os.getenv("DB_HOST"),
            port=int(os.getenv("DB_PORT", "3306")),
            database=os.getenv("DB_NAME", "roster"),
            query={"charset": "utf8mb4"},
        ).render_as_string(hide_password=False)
    return f"sqlite:///{(BASE_DIR / 'roster.db').as_posix()}"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Sessions
    SESSION_TIMEOUT = int(os.getenv("SESSION_TIMEOUT", "1800"))  # seconds
    SESSION_COOKIE_NAME = "ROSTER_SESSION"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "False") == "True"

    # pbkdf2 iteration count is the cost factor
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:600000")

    ERROR_LOG_FILE = os.getenv("ERROR_LOG_FILE", str(BASE_DIR / "logs" / "error.log"))

    BACKUP_DIR = os.getenv("BACKUP_DIR", str(BASE_DIR / "backups"))
    MYSQLDUMP_BIN = os.getenv("MYSQLDUMP_BIN", "mysqldump")
    BACKUP_TIMEOUT = 300

    MAX_USERNAME_LENGTH = 100
    MAX_PASSWORD_LENGTH = 255
    MAX_STUDENT_NO_LENGTH = 50
    MAX_FULLNAME_LENGTH = 100
    MAX_EMAIL_LENGTH = 100
    MAX_COURSE_LENGTH = 100
    MAX_DESCRIPTION_LENGTH = 255


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WTF_CSRF_ENABLED = False
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
