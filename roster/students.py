import logging

from sqlalchemy import Integer
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import DuplicateKey, InvalidInput, NotFound, SystemFailure, ValidationFailed
from .extensions import db
from .gateway import execute_query, reset_identity
from .models import Student

logger = logging.getLogger(__name__)

MAX_STUDENT_ID = 2 ** 63 - 1


def list_students():
    try:
        return (Student.query
                .order_by(Student.created_at.desc(), Student.id.desc())
                .all())
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Dashboard: Query failed - %s", exc)
        raise SystemFailure("Failed to load students. Please try again later.") from exc


def create_student(form):
    errors = form.validate()
    if errors:
        raise ValidationFailed(errors)

    student = Student(
        student_no=form.student_no,
        fullname=form.fullname,
        email=form.email,
        course=form.course,
        course_description=form.course_description or None,
    )
    db.session.add(student)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if Student.query.filter_by(student_no=form.student_no).first() is not None:
            logger.info("Add Student: Duplicate Student ID - %s", form.student_no)
            raise DuplicateKey() from exc
        logger.error("Add Student: Execution failed - %s", exc)
        raise SystemFailure("Failed to add student. Please try again.") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Add Student: Execution failed - %s", exc)
        raise SystemFailure("Failed to add student. Please try again.") from exc

    logger.info("Add Student: New student added - Student ID: %s", student.student_no)
    return student


def parse_student_id(raw):
    if raw is None:
        logger.warning("Delete Student: ID parameter missing")
        raise InvalidInput("Invalid request")
    value = raw.strip()
    if not (value.isascii() and value.isdigit()) or not 0 < int(value) <= MAX_STUDENT_ID:
        logger.warning("Delete Student: Invalid ID format - %r", raw[:50])
        raise InvalidInput("Invalid student ID")
    return int(value)


def compact_ids():
    """Renumber students to 1..n in current id order. Caller commits."""
    ids = execute_query("SELECT id FROM students ORDER BY id ASC").scalars().all()
    for new_id, old_id in enumerate(ids, start=1):
        # new_id <= old_id and ids ascend, so the target slot is always free
        if new_id != old_id:
            execute_query(
                "UPDATE students SET id = :new_id WHERE id = :old_id",
                {"new_id": new_id, "old_id": old_id},
                types={"new_id": Integer, "old_id": Integer},
            )
    return len(ids)


def delete_student(student_id):
    """Delete one student and close the gap it leaves in the id sequence.

    The delete and the renumbering commit together; the identity counter is
    reset afterwards since MySQL cannot run that DDL inside the transaction.
    """
    try:
        student = db.session.get(Student, student_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Delete Student: Verify failed - %s", exc)
        raise SystemFailure() from exc
    if student is None:
        logger.warning("Delete Student: Attempted to delete non-existent student ID: %s", student_id)
        raise NotFound("Student not found")

    try:
        db.session.delete(student)
        db.session.flush()
        remaining = compact_ids()
        db.session.commit()
    except (SQLAlchemyError, SystemFailure) as exc:
        db.session.rollback()
        logger.error("Delete Student: Delete failed for ID %s - %s", student_id, exc)
        raise SystemFailure("Failed to delete student") from exc
    logger.info("Delete Student: Student deleted successfully - ID: %s", student_id)

    try:
        reset_identity(Student.__tablename__)
    except SystemFailure:
        db.session.rollback()
        logger.error("Reindex: Failed to reset identity counter for %s", Student.__tablename__)
    return remaining
