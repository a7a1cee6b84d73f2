# devaintart_app/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
import math
import os
import re
import uuid
from datetime import datetime

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .exceptions import ApiError, QuotaExceeded
from .extensions import db, scheduler, init_extensions, register_cli
from .services.quota import init_quota, get_quota_tracker
from .services.storage import init_storage
from .services.diagnostics import init_diagnostics
from .blueprints.core import bp as core_bp
from .blueprints.agents import bp as agents_bp
from .blueprints.artworks import bp as artworks_bp
from .blueprints.engagement import bp as engagement_bp
from .blueprints.artists import bp as artists_bp
from .blueprints.feed import bp as feed_bp

_STATIC_LIKE = re.compile(r"\.[a-zA-Z0-9]{2,6}$")
_SKIP_PATHS = {"/favicon.ico", "/robots.txt", "/sitemap.xml"}


def _skip_request_log(path: str) -> bool:
    if path in _SKIP_PATHS or path.startswith("/static/"):
        return True
    return bool(_STATIC_LIKE.search(path))


def _register_request_logging(app: Flask) -> None:
    from .decorators import client_ip

    @app.before_request
    def _log_request():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        if _skip_request_log(request.path):
            return
        query = request.query_string.decode("utf-8", "replace")
        app.logger.info("[REQ] %s", json.dumps({
            "ts": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
            "id": g.request_id,
            "method": request.method,
            "path": request.path,
            "query": f"?{query}" if query else "",
            "ip": client_ip(),
            "ua": (request.headers.get("User-Agent") or "unknown")[:200],
        }))

    @app.after_request
    def _request_id_header(response):
        rid = g.get("request_id")
        if rid:
            response.headers["X-Request-ID"] = rid
        return response


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(QuotaExceeded)
    def _quota_exceeded(err: QuotaExceeded):
        resp = jsonify(err.to_dict())
        resp.status_code = err.status_code
        tracker = get_quota_tracker()
        seconds = (tracker.reset_time() - tracker.clock.now()).total_seconds()
        resp.headers["Retry-After"] = str(max(1, math.ceil(seconds)))
        return resp

    @app.errorhandler(ApiError)
    def _api_error(err: ApiError):
        resp = jsonify(err.to_dict())
        resp.status_code = err.status_code
        return resp

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        messages = {
            404: ("Not found", "Check the URL. API documentation: /skill.md"),
            405: ("Method not allowed", None),
            413: ("Request body too large", "Uploads are limited by MAX_CONTENT_LENGTH."),
        }
        error, hint = messages.get(err.code, (err.name, None))
        body = {"success": False, "error": error}
        if hint:
            body["hint"] = hint
        return jsonify(body), err.code

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        db.session.rollback()
        app.logger.exception("[ERROR] %s %s failed", request.method, request.path)
        return jsonify({
            "success": False,
            "error": "Internal server error",
            "hint": "This is a server error. Please try again.",
        }), 500


def create_app(config_object: type[Config] = Config) -> Flask:
    app = Flask(__name__, template_folder="../templates")
    app_env = os.getenv("APP_ENV", "").lower()

    if app_env == "testing":
        app.config.from_object(TestingConfig)
    elif app_env == "staging":
        app.config.from_object(StagingConfig)
    elif app_env == "production":
        app.config.from_object(ProductionConfig)
    else:
        app.config.from_object(config_object)

    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Extensões (DB/Bcrypt/Migrate/Scheduler)
    init_extensions(app)

    # Serviços: cota diária e object store ficam em app.extensions
    init_quota(app)         # app.extensions["quota"]
    init_storage(app)       # app.extensions["storage"]
    app.config["STARTED_AT"] = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S UTC")

    # Blueprints
    app.register_blueprint(core_bp)
    app.register_blueprint(agents_bp, url_prefix="/api/v1/agents")
    app.register_blueprint(artworks_bp, url_prefix="/api/v1/artworks")
    app.register_blueprint(engagement_bp, url_prefix="/api/v1")
    app.register_blueprint(artists_bp, url_prefix="/api/v1/artists")
    app.register_blueprint(feed_bp)

    _register_request_logging(app)
    _register_error_handlers(app)

    # CLI (ex.: flask init-db, flask seed)
    register_cli(app)

    # Scheduler: heartbeat de diagnóstico
    if not app.config.get("TESTING") and os.getenv("DISABLE_SCHEDULER") != "1":
        init_diagnostics(app, scheduler)
        if not scheduler.running:
            scheduler.start()

    return app
