# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockbook/routes/sales.py
"""
Sales routes.

- POST /record: any staff role may ring up a sale
- Listing, detail and stats: SUPER-ADMIN, ADMIN, MANAGER

A failed sale (unknown product, insufficient stock) leaves stock untouched;
the error names the failing line.
"""
from datetime import date

from flask import Blueprint, request, jsonify, current_app, g

from ..models.auth import MANAGEMENT_ROLES, ROLES
from ..services import reporting_service, sales_service
from ..validation import ValidationError, parse_page_args, parse_sale_payload
from ..decorators import require_auth, require_role
from ..http_errors import HANDLED_ERRORS, error_response

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

DEFAULT_PAGE_LIMIT = 20


def parse_date_arg(name: str) -> date | None:
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def _payment_methods_arg() -> list[str]:
    """?payment_method=cash&payment_method=card or ?payment_method=cash,card"""
    methods = []
    for raw in request.args.getlist("payment_method"):
        methods.extend(m.strip() for m in raw.split(",") if m.strip())
    return methods


@sales_bp.post("/record")
@require_auth
@require_role(*ROLES)
def record_sale_route():
    """
    Body: {"items": [{"product": id, "quantity": n}, ...],
           "payment_method": "cash|transfer|card|pos|credit",
           "customer_name"?: str, "customer_phone"?: str}
    """
    payload = request.get_json(silent=True)

    try:
        data = parse_sale_payload(payload)
        sale = sales_service.record_sale(seller_id=g.current_user.id, **data)
        return jsonify(sale.to_dict()), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def list_sales_route():
    """
    Query params: search, sort, page, limit, start_date, end_date,
    payment_method (repeatable or comma separated), customer_name
    """
    try:
        page, limit = parse_page_args(
            request.args.get("page"),
            request.args.get("limit"),
            default_limit=DEFAULT_PAGE_LIMIT,
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
        result = sales_service.list_transactions(
            search=request.args.get("search"),
            sort=request.args.get("sort"),
            page=page,
            limit=limit,
            start_date=parse_date_arg("start_date"),
            end_date=parse_date_arg("end_date"),
            payment_methods=_payment_methods_arg(),
            customer_name=request.args.get("customer_name"),
        )
        return jsonify(result), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/stats")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def sales_stats_route():
    try:
        period = request.args.get("period", "weekly")
        return jsonify(reporting_service.sales_stats(period)), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute sales stats")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:transaction_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def get_sale_route(transaction_id: int):
    try:
        sale = sales_service.get_transaction(transaction_id)
        return jsonify(sale.to_dict()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load sale %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500
