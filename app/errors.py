# ==============================================================================
# app/errors.py
# ------------------------------------------------------------------------------
# Application error taxonomy and the JSON error handlers for the API.
# ==============================================================================

import logging
from flask import jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from app import db


class AppError(Exception):
    """Base class for errors that carry a user-facing message and an HTTP status."""
    type = 'INTERNAL_SERVER_ERROR'
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    type = 'VALIDATION_ERROR'
    status_code = 400


class NotFoundError(AppError):
    type = 'NOT_FOUND'
    status_code = 404

    @classmethod
    def for_resource(cls, resource, ident):
        return cls(f"{resource} not found: {ident}")


class ConflictError(AppError):
    type = 'CONFLICT'
    status_code = 409


class DatabaseError(AppError):
    type = 'DATABASE_ERROR'
    status_code = 500


def _error_response(error_type, message, status_code, details=None):
    payload = {'error': message, 'type': error_type}
    if details:
        payload['details'] = details
    return jsonify(payload), status_code


def register_error_handlers(app):
    """Maps the taxonomy (and stray database errors) onto JSON responses."""

    @app.errorhandler(AppError)
    def handle_app_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{error.type}: {error.message}", exc_info=True)
        else:
            app.logger.warning(f"{error.type}: {error.message}")
        return _error_response(error.type, error.message, error.status_code, error.details)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        app.logger.warning(f"Integrity error: {error.orig}")
        return _error_response(ConflictError.type, 'A record with the same unique key already exists', 409)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        app.logger.error(f"Database operation failed: {error}", exc_info=True)
        return _error_response(DatabaseError.type, 'Database error', 500)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return _error_response(error.name.upper().replace(' ', '_'), error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logging.error(f"Unhandled error: {error}", exc_info=True)
        return _error_response(AppError.type, 'Internal server error', 500)
