from flask import flash, g, redirect, render_template, request, url_for
from flask_login import login_required

from ...errors import DuplicateKey, InvalidInput, NotFound, SystemFailure, ValidationFailed
from ...forms import StudentForm
from ...guard import session_guard
from ...students import create_student, delete_student, list_students, parse_student_id
from . import bp


@bp.get("/")
@login_required
@session_guard
def index():
    items, load_error = [], False
    try:
        items = list_students()
    except SystemFailure:
        load_error = True
    return render_template("students.html", items=items, load_error=load_error,
                           admin=g.admin)


@bp.route("/new", methods=["GET", "POST"])
@login_required
@session_guard
def create():
    form = StudentForm()
    errors = []
    if request.method == "POST":
        form = StudentForm.from_form(request.form)
        try:
            create_student(form)
        except ValidationFailed as exc:
            errors = exc.errors
        except (DuplicateKey, SystemFailure) as exc:
            errors = [exc.message]
        else:
            flash("Student added successfully!", "success")
            return redirect(url_for("students.index"))
    return render_template("add_student.html", form=form, errors=errors, admin=g.admin)


@bp.get("/delete")
@login_required
@session_guard
def delete():
    try:
        delete_student(parse_student_id(request.args.get("id")))
    except (InvalidInput, NotFound, SystemFailure) as exc:
        flash(exc.message, "error")
    else:
        flash("Student deleted successfully", "success")
    return redirect(url_for("students.index"))
