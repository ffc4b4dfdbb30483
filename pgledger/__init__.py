# pgledger/__init__.py
from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from .extensions import db, jwt
from .errors import register_error_handlers
from .ledger import PaymentLedgerEngine


def _configure_logging(app: Flask) -> None:
    """JSON logs to stdout."""
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    app.logger.setLevel(level)
    root = logging.getLogger()
    root.setLevel(level)

    # avoid duplicate handlers in reloaders
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt='{"ts":"%(asctime)s","level":"%(levelname)s","msg":"%(message)s","name":"%(name)s"}',
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)


def _configure_cors(app: Flask) -> None:
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ALLOWED_ORIGINS", [])}},
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        max_age=86400,
    )


def _configure_ledger(app: Flask) -> None:
    """One shared engine per app; it holds no state beyond its settings."""
    app.extensions["ledger_engine"] = PaymentLedgerEngine(
        urgency_thresholds=app.config["LEDGER_URGENCY_THRESHOLDS"],
        default_rent=app.config["LEDGER_DEFAULT_RENT"],
    )


def _register_blueprints(app: Flask) -> None:
    """Register all API blueprints under /api."""
    from .routes.auth import bp as auth_bp
    from .routes.students import bp as students_bp
    from .routes.payments import bp as payments_bp
    from .routes.reports import bp as reports_bp

    prefix = app.config["API_PREFIX"]
    for bp in (auth_bp, students_bp, payments_bp, reports_bp):
        app.register_blueprint(bp, url_prefix=prefix)
        app.logger.debug("Registered blueprint %s at %s", bp.name, prefix)


def _load_config(app: Flask, config_object: Optional[str | Any]) -> None:
    if config_object is None:
        config_object = os.getenv("CONFIG_CLASS", "pgledger.config.Config")
    if isinstance(config_object, str):
        module, _, cls = config_object.rpartition(".")
        config_object = getattr(__import__(module, fromlist=[cls]), cls)
    if isinstance(config_object, type):
        config_object = config_object()
    app.config.from_object(config_object)
    app.config.setdefault("API_PREFIX", "/api")


# --- Application Factory ------------------------------------------------------
def create_app(config_object: Optional[str | Any] = None) -> Flask:
    """
    Flask application factory.

    `config_object` may be:
      - a config class or object
      - dotted path to a config class (e.g., "pgledger.config.ProductionConfig")
      - None (then CONFIG_CLASS env or pgledger.config.Config)
    """
    app = Flask(__name__)
    _load_config(app, config_object)

    _configure_logging(app)
    _configure_cors(app)
    _configure_ledger(app)

    db.init_app(app)
    jwt.init_app(app)

    register_error_handlers(app)
    _register_blueprints(app)

    with app.app_context():
        # imported for table registration
        from . import models  # noqa: F401
        db.create_all()

    @app.get(app.config["API_PREFIX"] + "/health")
    def health():
        return jsonify(
            {
                "status": "ok",
                "time": datetime.utcnow().isoformat() + "Z",
                "service": "pgledger",
            }
        ), 200

    return app
