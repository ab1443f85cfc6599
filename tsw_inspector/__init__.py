from __future__ import annotations

import atexit
import logging
from functools import partial
from typing import Any

from flask import Flask, jsonify, render_template
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .api import build_api_blueprint
from .client import TSWClient
from .config import Settings
from .exceptions import AppError, ValidationError
from .inspector import ClientFactory, Inspector
from .scheduler import PollingScheduler, RepeatingTimer, TimerFactory
from .security import assign_request_id, attach_security_headers
from .storage import SettingsStore, build_settings_store


def create_app(
    settings: Settings | None = None,
    client_factory: ClientFactory | None = None,
    settings_store: SettingsStore | None = None,
    timer_factory: TimerFactory = RepeatingTimer,
) -> Flask:
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logger = logging.getLogger(__name__)

    app = Flask(__name__, template_folder="../templates", static_folder="../static")
    app.config["MAX_CONTENT_LENGTH"] = settings.max_request_bytes

    CORS(
        app,
        resources={r"/api/*": {"origins": settings.allowed_origins}},
        supports_credentials=False,
    )

    if client_factory is None:
        client_factory = partial(
            TSWClient,
            base_url=settings.tsw_base_url,
            timeout=settings.request_timeout_seconds,
        )
    settings_store = settings_store or build_settings_store(settings)
    scheduler = PollingScheduler(settings.poll_interval_seconds, timer_factory=timer_factory)
    inspector = Inspector(client_factory, settings_store, scheduler)
    atexit.register(inspector.close)

    app.extensions["settings"] = settings
    app.extensions["inspector"] = inspector

    app.register_blueprint(build_api_blueprint(settings, inspector))

    @app.get("/")
    def index() -> Any:
        return render_template(
            "index.html",
            app_name=settings.app_name,
            base_url=settings.tsw_base_url,
        )

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(404)
    def not_found(_: Any):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"error": error.description or error.name}), error.code or 500

    @app.errorhandler(Exception)
    def unhandled_error(error: Exception):
        logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "Internal server error"}), 500

    app.before_request(assign_request_id)

    @app.after_request
    def security_headers(response):
        return attach_security_headers(response)

    logger.info(
        "App initialized | env=%s | simulation=%s | poll_interval=%ss | settings=%s",
        settings.environment,
        settings.tsw_base_url,
        settings.poll_interval_seconds,
        settings_store.name,
    )

    return app
