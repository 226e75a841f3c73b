from flask import jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mittimobil.extensions import db


class AppError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """A state-machine guard rejected the operation."""

    status_code = 400


class UnexpectedError(AppError):
    status_code = 500


class InvalidInterval(ValidationError):
    def __init__(self, message="End date must be after start date."):
        super().__init__(message)


class EquipmentUnavailable(ConflictError):
    def __init__(self, message="Equipment is not available."):
        super().__init__(message)


class SelfBookingForbidden(ConflictError):
    def __init__(self, message="Cannot book your own equipment."):
        super().__init__(message)


class InvalidTransition(ConflictError):
    pass


class NotOwner(AuthorizationError):
    pass


class NotAuthorized(AuthorizationError):
    def __init__(self, message="Not authorized for this booking."):
        super().__init__(message)


class GeocodingError(AppError):
    status_code = 502


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        if err.status_code >= 500:
            app.logger.error("Request failed: %s", err.message)
        return jsonify({"error": err.message}), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(_err):
        db.session.rollback()
        app.logger.warning("Database integrity error")
        return jsonify({"error": "Conflict. Resource already exists."}), 409

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(_err):
        db.session.rollback()
        app.logger.exception("Database error")
        return jsonify({"error": "Internal server error"}), 500

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

    @app.errorhandler(405)
    def method_not_allowed(_err):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def payload_too_large(_err):
        return jsonify({"error": "Upload too large"}), 413

    @app.errorhandler(429)
    def too_many_requests(_err):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def server_error(_err):
        app.logger.exception("Internal server error")
        return jsonify({"error": "Internal server error"}), 500
