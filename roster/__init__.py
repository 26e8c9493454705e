import logging

from flask import Flask, flash, redirect, render_template, request, session, url_for
from flask_wtf.csrf import CSRFError
from sqlalchemy.exc import SQLAlchemyError

from .errors import SystemFailure
from .extensions import csrf, db, login_manager, migrate
from .logs import init_error_log

logger = logging.getLogger(__name__)


def register_filters(app):
    from .backups import format_bytes

    @app.template_filter("format_bytes")
    def format_bytes_filter(n):
        return format_bytes(n)

    @app.template_filter("truncate_text")
    def truncate_text(s, length=30):
        s = s or ""
        return s if len(s) <= length else s[:length] + "..."


def register_error_handlers(app):
    @app.errorhandler(SQLAlchemyError)
    def database_error(exc):
        db.session.rollback()
        logger.exception("Database error: %s", exc)
        return render_template("error.html"), 500

    @app.errorhandler(SystemFailure)
    def system_failure(exc):
        logger.error("Unhandled system failure: %s", exc.__cause__ or exc)
        return render_template("error.html"), 500

    @app.errorhandler(CSRFError)
    def csrf_error(exc):
        logger.warning("CSRF check failed on %s: %s", request.path, exc.description)
        if session.get("user"):
            flash("Form token expired or invalid. Please retry your last action.", "error")
            return redirect(request.path)
        flash("Your session has expired. Please log in again.", "error")
        return redirect(url_for("auth.login"))


def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)

    init_error_log(app)
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message_category = "info"

    from . import models
    from .models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    from .blueprints.auth import bp as auth_bp
    from .blueprints.students import bp as students_bp
    from .blueprints.backup import bp as backup_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(students_bp, url_prefix="/students")
    app.register_blueprint(backup_bp, url_prefix="/backups")
    register_filters(app)
    register_error_handlers(app)

    from .commands import register_commands
    register_commands(app)

    @app.get("/")
    def home():
        return redirect(url_for("students.index"))

    return app
