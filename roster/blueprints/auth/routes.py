import logging
import secrets

from flask import current_app, redirect, render_template, request, session, url_for
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from ...errors import SystemFailure, Unauthenticated
from ...extensions import db
from ...forms import LoginForm
from ...guard import SessionState, end_session, start_session
from ...models.user import User
from . import bp

logger = logging.getLogger(__name__)

LOGIN_FAILED = "Invalid username or password."

_dummy_hashes = {}


def _burn_password_check(password):
    """Spend the cost of a real hash check when the user does not exist."""
    method = current_app.config["PASSWORD_HASH_METHOD"]
    if method not in _dummy_hashes:
        _dummy_hashes[method] = generate_password_hash(secrets.token_hex(16), method=method)
    check_password_hash(_dummy_hashes[method], password)


def authenticate(form):
    reason = form.validate()
    if reason:
        logger.info("Login: Rejected input for user %r - %s", form.username[:100], reason)
        raise Unauthenticated(LOGIN_FAILED)
    try:
        user = User.query.filter_by(username=form.username).one_or_none()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Login: Lookup failed - %s", exc)
        raise SystemFailure() from exc
    if user is None:
        _burn_password_check(form.password)
        logger.info("Login: Failed login for unknown user %r", form.username)
        raise Unauthenticated(LOGIN_FAILED)
    if not user.check_password(form.password):
        logger.info("Login: Failed login for user %r - wrong password", form.username)
        raise Unauthenticated(LOGIN_FAILED)
    return user


@bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated and SessionState.from_session(session):
        return redirect(url_for("students.index"))

    form = LoginForm()
    error = None
    if request.method == "POST":
        form = LoginForm.from_form(request.form)
        try:
            user = authenticate(form)
        except (Unauthenticated, SystemFailure) as exc:
            error = exc.message
        else:
            start_session(user)
            logger.info("Login: Successful login for user: %s", user.username)
            return redirect(url_for("students.index"))

    return render_template("login.html", username=form.username, error=error,
                           expired=request.args.get("expired") == "1",
                           logged_out=request.args.get("logout") == "success")


@bp.get("/logout")
def logout():
    if session.get("user"):
        logger.info("Logout: User logged out - %s", session["user"])
    end_session()
    return redirect(url_for("auth.login", logout="success"))
