"""Session lifecycle for administrators.

The session payload is a :class:`SessionState`. ``start_session`` builds it
at login, ``session_guard`` checks and refreshes it on every protected view,
and ``end_session`` tears it down at logout or expiry.
"""
import logging
import secrets
import time
from dataclasses import asdict, dataclass
from functools import wraps

from flask import current_app, g, redirect, session, url_for
from flask_login import current_user, login_user, logout_user

from .errors import SessionExpired, Unauthenticated
from .extensions import login_manager

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    sid: str
    user: str
    user_id: int
    initialized: bool
    login_time: float

    @classmethod
    def from_session(cls, data):
        if data.get("initialized") is not True or not data.get("user"):
            return None
        try:
            return cls(
                sid=data["sid"],
                user=data["user"],
                user_id=int(data["user_id"]),
                initialized=True,
                login_time=float(data["login_time"]),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def save(self, data):
        data.update(asdict(self))


def start_session(user):
    # nothing from the pre-login session survives
    session.clear()
    state = SessionState(
        sid=secrets.token_urlsafe(32),
        user=user.username,
        user_id=user.id,
        initialized=True,
        login_time=time.time(),
    )
    state.save(session)
    login_user(user)
    return state


def end_session():
    logout_user()
    session.clear()


def check_session():
    state = SessionState.from_session(session)
    if state is None or not current_user.is_authenticated or state.user_id != current_user.id:
        raise Unauthenticated()
    if time.time() - state.login_time > current_app.config["SESSION_TIMEOUT"]:
        raise SessionExpired()
    state.login_time = time.time()
    session["login_time"] = state.login_time
    return state


def session_guard(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            g.admin = check_session()
        except SessionExpired:
            logger.info("Session expired for user: %s", session.get("user"))
            end_session()
            return redirect(url_for("auth.login", expired=1))
        except Unauthenticated:
            end_session()
            return login_manager.unauthorized()
        return view(*args, **kwargs)
    return wrapper
