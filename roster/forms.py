"""Fixed-shape records for the request payloads, validated at the boundary."""
import re
from dataclasses import dataclass

from flask import current_app

STUDENT_NO_RE = re.compile(r"[A-Za-z0-9_-]+")
FULLNAME_RE = re.compile(r"(?:[^\W\d_]|[ '-])+")
EMAIL_RE = re.compile(
    r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,63}"
)


def _field(form, name):
    return (form.get(name) or "").strip()


def validate_email(email):
    """Return True if ``email`` has the shape local@domain.tld."""
    return bool(EMAIL_RE.fullmatch(email))


@dataclass
class LoginForm:
    username: str = ""
    password: str = ""

    @classmethod
    def from_form(cls, form):
        return cls(username=_field(form, "username"), password=_field(form, "password"))

    def validate(self):
        """Return a log-only reason the credentials are malformed, or None."""
        cfg = current_app.config
        if not self.username or not self.password:
            return "missing username or password"
        if len(self.username) > cfg["MAX_USERNAME_LENGTH"]:
            return "username too long"
        if len(self.password) > cfg["MAX_PASSWORD_LENGTH"]:
            return "password too long"
        return None


@dataclass
class StudentForm:
    student_no: str = ""
    fullname: str = ""
    email: str = ""
    course: str = ""
    course_description: str = ""

    @classmethod
    def from_form(cls, form):
        return cls(
            student_no=_field(form, "student_no"),
            fullname=_field(form, "fullname"),
            email=_field(form, "email"),
            course=_field(form, "course"),
            course_description=_field(form, "course_description"),
        )

    def validate(self):
        """Collect every violation, at most one per field, in form order."""
        cfg = current_app.config
        errors = []

        if not self.student_no:
            errors.append("Student ID is required.")
        elif len(self.student_no) > cfg["MAX_STUDENT_NO_LENGTH"]:
            errors.append("Student ID exceeds maximum length.")
        elif not STUDENT_NO_RE.fullmatch(self.student_no):
            errors.append("Student ID can only contain letters, numbers, hyphens, and underscores.")

        if not self.fullname:
            errors.append("Full Name is required.")
        elif len(self.fullname) > cfg["MAX_FULLNAME_LENGTH"]:
            errors.append("Full Name exceeds maximum length.")
        elif not FULLNAME_RE.fullmatch(self.fullname):
            errors.append("Full Name can only contain letters, spaces, hyphens, and apostrophes.")

        if not self.email:
            errors.append("Email is required.")
        elif len(self.email) > cfg["MAX_EMAIL_LENGTH"]:
            errors.append("Email exceeds maximum length.")
        elif not validate_email(self.email):
            errors.append("Invalid email format.")

        if not self.course:
            errors.append("Course is required.")
        elif len(self.course) > cfg["MAX_COURSE_LENGTH"]:
            errors.append("Course name exceeds maximum length.")

        if len(self.course_description) > cfg["MAX_DESCRIPTION_LENGTH"]:
            errors.append("Course description exceeds maximum length.")

        return errors
