import logging

from flask import g, redirect, render_template, request, send_file, url_for
from flask_login import login_required

from ...backups import create_backup, delete_backup, list_backups, resolve_backup
from ...errors import InvalidInput, NotFound, SystemFailure
from ...guard import session_guard
from . import bp

logger = logging.getLogger(__name__)

STATUSES = ("success", "error", "deleted")


def back(status, msg):
    return redirect(url_for("backup.index", backup=status, msg=msg))


@bp.get("/")
@login_required
@session_guard
def index():
    status = request.args.get("backup")
    if status not in STATUSES:
        status = None
    return render_template("backups.html", files=list_backups(), status=status,
                           msg=request.args.get("msg", "") if status else "",
                           admin=g.admin)


@bp.post("/")
@login_required
@session_guard
def create():
    try:
        name = create_backup()
    except SystemFailure as exc:
        return back("error", exc.message)
    return back("success", f"Database backup created successfully: {name}")


@bp.get("/download")
@login_required
@session_guard
def download():
    name = request.args.get("file", "")
    try:
        path = resolve_backup(name)
    except (InvalidInput, NotFound):
        return back("error", "Invalid file")
    logger.info("Backup: Downloaded backup file: %s (by %s)", path.name, g.admin.user)
    return send_file(path, mimetype="application/sql", as_attachment=True,
                     download_name=path.name)


@bp.get("/delete")
@login_required
@session_guard
def delete():
    try:
        name = delete_backup(request.args.get("file", ""))
    except (InvalidInput, NotFound):
        return back("error", "Invalid file")
    except SystemFailure as exc:
        return back("error", exc.message)
    return back("deleted", f"Backup {name} deleted successfully")
