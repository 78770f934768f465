# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured JSON problem responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from pydantic import ValidationError
from typing import Any, Dict, List, Optional, Tuple
from opentelemetry import trace
import logging

from domain.errors import DomainException, ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


ERROR_TITLES = {
    400: "Bad Request",
    401: "Authentication Required",
    403: "Insufficient Permissions",
    404: "Resource Not Found",
    405: "Method Not Allowed",
    409: "Resource Conflict",
    422: "Validation Error",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def build_error_response(
    error_type: str,
    status: int,
    detail: str,
    instance: str,
    errors: Optional[List[Dict[str, Any]]] = None,
    reason_code: Optional[str] = None
) -> Dict[str, Any]:
    """Build the JSON error body shared by every handler."""
    body = {
        "error": error_type,
        "title": ERROR_TITLES.get(status, "Error"),
        "status": status,
        "detail": detail,
        "instance": instance
    }
    if reason_code:
        body["reasonCode"] = reason_code
    if errors:
        body["errors"] = errors
    return body


class ErrorHandlerMiddleware:
    """Centralized error handling middleware."""

    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(DomainException)
        def handle_domain_exception(error: DomainException):
            return self.handle_domain_error(error)

        @self.app.errorhandler(ValidationError)
        def handle_pydantic_validation_error(error: ValidationError):
            return self.handle_domain_error(ValidationException.from_pydantic(error))

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            return self.handle_http_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_domain_error(self, error: DomainException) -> Tuple[Any, int]:
        """
        Handle domain exceptions raised by services.

        Args:
            error: Domain exception

        Returns:
            Tuple of (JSON response, status code)
        """
        with tracer.start_as_current_span("error_handler.domain_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "error.reason_code": error.reason_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Domain exception: {error.error_type}",
                extra={"extra_fields": {
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "message": error.message,
                    "path": request.path,
                    "method": request.method
                }}
            )

            errors = error.validation_errors if isinstance(error, ValidationException) else None
            body = build_error_response(
                error.error_type,
                error.status_code,
                error.message,
                request.path,
                errors=errors,
                reason_code=error.reason_code
            )
            return jsonify(body), error.status_code

    def handle_http_error(self, error: HTTPException) -> Tuple[Any, int]:
        """Handle werkzeug HTTP errors such as unknown routes or bad JSON."""
        status = error.code or 500
        detail = str(error.description) if error.description else ERROR_TITLES.get(status, "Error")
        error_type = ERROR_TITLES.get(status, "error").lower().replace(" ", "-")

        log = logger.error if status >= 500 else logger.warning
        log(
            f"HTTP error: {status}",
            extra={"extra_fields": {
                "status_code": status,
                "detail": detail,
                "path": request.path,
                "method": request.method
            }}
        )
        return jsonify(build_error_response(error_type, status, detail, request.path)), status

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """
        Handle unexpected exceptions not caught by specific handlers.
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={"extra_fields": {
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                }},
                exc_info=True
            )

            # Don't expose internal error details
            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            body = build_error_response("internal-server-error", 500, detail, request.path)
            return jsonify(body), 500
