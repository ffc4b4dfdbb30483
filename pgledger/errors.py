# pgledger/errors.py
from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, jwt
from .ledger import InvalidRecord


def _error(code, message, status):
    return jsonify(error=code, message=message), status


def register_error_handlers(app):
    @app.errorhandler(400)
    def bad_request(e): return _error("bad_request", getattr(e, "description", "Bad Request"), 400)

    @app.errorhandler(401)
    def unauthorized(e): return _error("unauthorized", getattr(e, "description", "Unauthorized"), 401)

    @app.errorhandler(403)
    def forbidden(e): return _error("forbidden", getattr(e, "description", "Forbidden"), 403)

    @app.errorhandler(404)
    def not_found(e): return _error("not_found", f"Nothing at {request.path}", 404)

    @app.errorhandler(405)
    def method_not_allowed(e): return _error("method_not_allowed", getattr(e, "description", ""), 405)

    @app.errorhandler(409)
    def conflict(e): return _error("conflict", getattr(e, "description", "Conflict"), 409)

    @app.errorhandler(422)
    def unprocessable(e): return _error("unprocessable", getattr(e, "description", ""), 422)

    @app.errorhandler(InvalidRecord)
    def invalid_record(e):
        return jsonify(error="invalid_record", message=e.reason, payment_id=e.payment_id), 422

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        app.logger.exception("Database error: %s", e)
        return _error("server_error", "Database error", 500)

    @app.errorhandler(500)
    def server_error(e):
        app.logger.exception("Unhandled exception: %s", e)
        return _error("server_error", "Internal Server Error", 500)

    @jwt.unauthorized_loader
    def missing_token(reason): return _error("unauthorized", reason, 401)

    @jwt.invalid_token_loader
    def invalid_token(reason): return _error("unauthorized", reason, 401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload): return _error("unauthorized", "Token has expired", 401)
