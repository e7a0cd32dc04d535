"""Prepare a local Letter Studio checkout: write AI model settings to .env and create the database."""
from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values, set_key

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from letterstudio import create_app, db

DEFAULT_ENV_PATH = REPO_ROOT / ".env"

# Command-line option -> environment variable read by letterstudio.config.
SETTING_OPTIONS = {
    "secret_key": "SECRET_KEY",
    "database_url": "DATABASE_URL",
    "generation_backend": "GENERATION_BACKEND",
    "claude_api_key": "CLAUDE_API_KEY",
    "deepseek_api_key": "DEEPSEEK_API_KEY",
    "openai_api_key": "OPENAI_API_KEY",
    "model_path": "TEXT_GENERATOR_MODEL_PATH",
}


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Store Letter Studio settings in .env and create the letter database."
    )
    parser.add_argument("--flask-app", default="wsgi.py", help="FLASK_APP entry point (default: wsgi.py)")
    parser.add_argument("--secret-key", help="Key used to sign the workspace session cookie.")
    parser.add_argument("--database-url", help="SQLAlchemy URL; defaults to instance/letter_studio.db.")
    parser.add_argument(
        "--generation-backend",
        choices=("claude", "deepseek", "openai", "local"),
        help="AI model used when a request does not pick one.",
    )
    parser.add_argument("--claude-api-key", help="Anthropic key for the claude model.")
    parser.add_argument("--deepseek-api-key", help="DeepSeek key for the deepseek model.")
    parser.add_argument("--openai-api-key", help="OpenAI key for the openai model.")
    parser.add_argument("--model-path", help="Hugging Face model directory for the local model.")
    parser.add_argument("--env-path", type=Path, default=DEFAULT_ENV_PATH, help="The .env file to update.")
    parser.add_argument("--skip-db", action="store_true", help="Leave the database untouched.")
    return parser.parse_args(argv)


def collect_settings(args: argparse.Namespace) -> Dict[str, str]:
    """Return the settings given on the command line; omitted options keep their .env value."""

    settings = {"FLASK_APP": args.flask_app}
    for option, variable in SETTING_OPTIONS.items():
        value = getattr(args, option, None)
        if value:
            settings[variable] = value
    return settings


def save_settings(env_path: Path, settings: Dict[str, str]) -> Dict[str, str]:
    if env_path.exists():
        shutil.copy(env_path, env_path.with_name(env_path.name + ".bak"))
    else:
        env_path.touch()
    for variable, value in settings.items():
        set_key(str(env_path), variable, value, quote_mode="never")
    return {key: value or "" for key, value in dotenv_values(env_path).items()}


def masked(variable: str, value: str) -> str:
    if variable.endswith("_API_KEY") and value:
        return value[:4] + "..."
    return value


def create_database() -> None:
    app = create_app()
    with app.app_context():
        db.create_all()
        print(f"Letter database ready at {app.config['SQLALCHEMY_DATABASE_URI']}.")


def main(argv: Optional[list] = None) -> None:
    args = parse_args(argv)
    stored = save_settings(args.env_path, collect_settings(args))
    print(f"Settings saved to {args.env_path}:")
    for variable in sorted(stored):
        print(f"  {variable}={masked(variable, stored[variable])}")

    if args.skip_db:
        print("Skipping database creation.")
    else:
        create_database()


if __name__ == "__main__":
    main()
