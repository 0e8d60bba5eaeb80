# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

# backend/stockbook/routes/reports.py
"""
Read-only reports. SUPER-ADMIN, ADMIN and MANAGER only.
"""
from flask import Blueprint, request, jsonify, current_app

from ..models.auth import MANAGEMENT_ROLES
from ..services import inventory_service, reporting_service
from ..decorators import require_auth, require_role
from ..http_errors import HANDLED_ERRORS, error_response
from ..validation import parse_page_args
from .sales import parse_date_arg

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

DEFAULT_BEST_SELLERS_LIMIT = 10


@reports_bp.get("/profit-loss")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def profit_loss_route():
    """?start_date=YYYY-MM-DD&end_date=YYYY-MM-DD, both inclusive."""
    try:
        report = reporting_service.profit_loss_report(
            parse_date_arg("start_date"),
            parse_date_arg("end_date"),
        )
        return jsonify(report), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build profit/loss report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/inventory")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def inventory_report_route():
    try:
        return jsonify(inventory_service.inventory_report()), 200
    except Exception:
        current_app.logger.exception("Failed to build inventory report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/best-sellers")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def best_sellers_route():
    """?limit=10&period=daily|weekly|monthly|yearly (period optional)"""
    try:
        _, limit = parse_page_args(
            None,
            request.args.get("limit"),
            default_limit=DEFAULT_BEST_SELLERS_LIMIT,
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
        period = request.args.get("period") or None
        return jsonify({"items": reporting_service.best_sellers(limit, period)}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build best sellers report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/expected-profit")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def expected_profit_route():
    try:
        return jsonify({"expected_profit": reporting_service.expected_profit()}), 200
    except Exception:
        current_app.logger.exception("Failed to compute expected profit")
        return jsonify({"error": "Internal server error"}), 500
