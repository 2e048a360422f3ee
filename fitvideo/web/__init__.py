from __future__ import annotations

import argparse
import logging
import threading
from pathlib import Path

from flask import Flask
from flask_wtf.csrf import CSRFProtect

from fitvideo.config import Config
from fitvideo.parser import load_activity
from fitvideo.pipeline import build_workout

csrf = CSRFProtect()


def create_app(fit_path: Path, config: Config | None = None) -> Flask:
    """Preview server for one activity."""
    if config is None:
        config = Config.from_env()

    activity = load_activity(fit_path)

    app = Flask(__name__)
    app.secret_key = config.secret_key
    app.config["config"] = config
    app.config["fit_path"] = fit_path
    app.config["workout"] = build_workout(activity, config)
    app.config["workout_lock"] = threading.Lock()

    csrf.init_app(app)

    from fitvideo.web.routes import bp
    app.register_blueprint(bp)

    return app


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ap = argparse.ArgumentParser(prog="fit-preview", description="Preview the overlay in a browser")
    ap.add_argument("input", type=Path, help="FIT file")
    ap.add_argument("--env-file", type=Path, help="read settings from this .env file")
    args = ap.parse_args(argv)

    config = Config.from_env(args.env_file)
    app = create_app(args.input.resolve(), config)
    app.run(host="127.0.0.1", port=config.flask_port, debug=config.flask_debug)


if __name__ == "__main__":
    main()
