"""
Web server — Flask app factory.

Serves the sync core as a JSON API plus a Server-Sent Events stream.
Page rendering lives in the dashboard front end, not here.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify

from readymix.core.config.loader import Settings
from readymix.core.errors import InvalidArgumentError
from readymix.core.use_cases.session import Session, open_session

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    session: Session | None = None,
    start_simulator: bool = False,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        settings: Loaded settings (ignored when ``session`` is given).
        session: Pre-built session (tests inject their own).
        start_simulator: Start the background simulator thread.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)

    if session is None:
        session = open_session(settings, start_simulator=start_simulator)
    app.config["SESSION"] = session

    from readymix.ui.web.routes_api import api_bp
    from readymix.ui.web.routes_events import events_bp

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(events_bp, url_prefix="/api")

    @app.errorhandler(InvalidArgumentError)
    def _invalid_argument(e: InvalidArgumentError):  # type: ignore[no-untyped-def]
        return jsonify({"error": str(e)}), 400

    running = session.simulator is not None and session.simulator.running
    logger.info("Web app created (simulator %s)", "running" if running else "idle")
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False,
) -> None:
    """Run the Flask development server."""
    logger.info("Starting web API on %s:%d", host, port)
    try:
        app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
    finally:
        app.config["SESSION"].close()
