from flask import Blueprint

bp = Blueprint("backup", __name__)

from . import routes  # noqa: E402,F401
