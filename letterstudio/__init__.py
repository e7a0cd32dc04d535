from __future__ import annotations

import logging
from pathlib import Path

from flask import Flask
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

from .config import Config  # noqa: E402  (reads the environment loaded above)
from .extensions import csrf, db, migrate  # noqa: E402
from .db_utils import ensure_database_schema  # noqa: E402


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    app.logger.setLevel(logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper()))

    register_extensions(app)
    register_blueprints(app)

    with app.app_context():
        ensure_database_schema()

    return app


def register_extensions(app: Flask) -> None:
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)


def register_blueprints(app: Flask) -> None:
    from .letters import bp as letters_bp
    from .main import bp as main_bp
    from .profile import bp as profile_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(letters_bp)
    app.register_blueprint(profile_bp)
