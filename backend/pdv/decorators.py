# Overview: Request decorators for API routes.

from functools import wraps
from flask import jsonify, current_app
from sqlalchemy.exc import OperationalError

from .extensions import db
from .validation import DomainError


def json_errors(action: str):
    """
    Map service errors to JSON responses.

    - DomainError        -> {"error", "details"} with the error's status code
    - OperationalError   -> 503 with "retryable": true (store busy/unavailable;
                            operations are atomic so the caller may resend)
    - anything else      -> logged with traceback, 500

    Usage:
        @sales_bp.post("")
        @json_errors("Failed to process sale")
        def create_sale_route(): ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except DomainError as e:
                return jsonify(e.to_dict()), e.status_code
            except OperationalError:
                db.session.rollback()
                current_app.logger.exception("%s: ledger store unavailable", action)
                return jsonify({"error": "Storage temporarily unavailable", "retryable": True}), 503
            except Exception:
                db.session.rollback()
                current_app.logger.exception(action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function

    return decorator
