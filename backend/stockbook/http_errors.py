# Overview: Maps service-layer exceptions onto JSON error responses.

from flask import jsonify

from .errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    StockbookError,
    ValidationError,
)

# Exceptions routes translate; anything else is logged and answered with 500
HANDLED_ERRORS = (StockbookError, ValidationError, ConflictError)


def error_response(exc: Exception):
    """
    NotFoundError 404, InsufficientStockError and ConflictError 409,
    ValidationError / InvalidStateError (and other StockbookErrors) 400.
    """
    if isinstance(exc, InsufficientStockError):
        return jsonify({"error": str(exc), "details": exc.details}), 409
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404

    body = {"error": str(exc)}
    if isinstance(exc, StockbookError) and exc.details:
        body["details"] = exc.details
    return jsonify(body), 400
