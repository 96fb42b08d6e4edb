import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from pagecopy import __version__
from pagecopy.agents.copy_orchestrator import get_blueprint
from pagecopy.config import Settings


def create_app(settings: Optional[Settings] = None) -> Flask:
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("PAGECOPY_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    if settings is not None:
        app.config["PAGECOPY_SETTINGS"] = settings
    app.register_blueprint(get_blueprint())

    @app.get("/health")
    def health():
        return jsonify({"status": "ok", "version": __version__})

    return app


DEFAULT_PORT = int(os.environ.get("FLASK_PORT", "5000"))
DEFAULT_HOST = os.environ.get("FLASK_HOST", "127.0.0.1")


if __name__ == "__main__":
    create_app().run(host=DEFAULT_HOST, port=DEFAULT_PORT, debug=True)
