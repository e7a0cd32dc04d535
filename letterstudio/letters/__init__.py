from flask import Blueprint

bp = Blueprint("letters", __name__, url_prefix="/api/letter")

from . import routes  # noqa: E402,F401
