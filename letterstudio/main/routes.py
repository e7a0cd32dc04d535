from flask import current_app, jsonify
from flask_wtf.csrf import generate_csrf

from ..services.generation import available_backends
from . import bp


@bp.route("/health")
def health():
    return jsonify({"status": "ok"})


@bp.route("/check-availability")
def check_availability():
    backends = available_backends()
    default_backend = (current_app.config.get("GENERATION_BACKEND") or "").strip().lower()
    return jsonify(
        {
            "success": True,
            "default": default_backend,
            "available": backends.get(default_backend, False),
            "backends": backends,
        }
    )


@bp.route("/csrf-token")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})
