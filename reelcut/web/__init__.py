"""Flask application factory for the ReelCut editing API."""

import logging
import tempfile
from pathlib import Path

from flask import Flask, jsonify

from reelcut import ffutil
from reelcut.config import Settings, load_settings

logger = logging.getLogger(__name__)


def create_app(work_dir: Path | None = None, settings: Settings | None = None) -> Flask:
    settings = settings or load_settings()
    ffutil.configure(settings)

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["WORK_DIR"] = (
        work_dir or settings.work_dir or Path(tempfile.mkdtemp(prefix="reelcut_"))
    )
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes
    Path(app.config["WORK_DIR"]).mkdir(parents=True, exist_ok=True)
    logger.info("Work directory: %s", app.config["WORK_DIR"])

    from reelcut.web.routes import bp
    from reelcut.web.timeline import timeline_bp
    app.register_blueprint(bp)
    app.register_blueprint(timeline_bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "File too large"}), 413

    return app
