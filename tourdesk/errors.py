from flask import jsonify
from sqlalchemy.exc import IntegrityError

from tourdesk.extensions import db


class AppError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message, "kind": type(self).__name__}


class ValidationError(AppError):
    """Malformed input, reported against a single field where possible."""

    status_code = 400

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field

    def to_dict(self):
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """A driver or vehicle can no longer be bound to the requested trip."""

    status_code = 409

    def __init__(self, message, resource=None, reason=None):
        super().__init__(message)
        self.resource = resource
        self.reason = reason

    def to_dict(self):
        payload = super().to_dict()
        payload["resource"] = self.resource
        payload["reason"] = self.reason
        return payload


class CapacityError(ConflictError):
    def __init__(self, message, resource=None, deficit=0):
        super().__init__(message, resource=resource, reason="capacity")
        self.deficit = deficit

    def to_dict(self):
        payload = super().to_dict()
        payload["deficit"] = self.deficit
        return payload


class InvalidStateError(AppError):
    status_code = 409


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        # A failed operation may have left row locks or pending changes behind.
        db.session.rollback()
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(_err):
        db.session.rollback()
        app.logger.warning("Database integrity error")
        return jsonify({"error": "Conflict. Resource already exists."}), 409

    @app.errorhandler(400)
    def bad_request(_err):
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(401)
    def unauthorized(_err):
        return jsonify({"error": "Unauthorized"}), 401

    @app.errorhandler(403)
    def forbidden(_err):
        return jsonify({"error": "Forbidden"}), 403

    @app.errorhandler(404)
    def not_found(_err):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(429)
    def rate_limited(_err):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def server_error(_err):
        db.session.rollback()
        app.logger.exception("Internal server error")
        return jsonify({"error": "Internal server error"}), 500
