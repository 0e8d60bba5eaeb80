# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockbook/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Reads: any authenticated user
- Create / update / restock: SUPER-ADMIN, ADMIN, MANAGER
- Retire (DELETE): SUPER-ADMIN, ADMIN

Create and update accept either JSON or multipart form data; multipart
requests may carry attachments under the `files` field.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..models import Product
from ..models.auth import ADMIN_ROLES, MANAGEMENT_ROLES
from ..services import inventory_service, products_service, reporting_service
from ..services.products_service import PRODUCT_CREATE_POLICY, PRODUCT_UPDATE_POLICY
from ..validation import ValidationError, parse_page_args, validate_payload
from ..decorators import require_auth, require_role
from ..http_errors import HANDLED_ERRORS, error_response

products_bp = Blueprint("products", __name__, url_prefix="/api/products")

DEFAULT_PAGE_LIMIT = 20


def _read_product_payload() -> tuple[dict, list]:
    """JSON body, or multipart form fields plus uploaded files."""
    if request.mimetype == "multipart/form-data":
        payload = {k: v for k, v in request.form.items()}
        return payload, request.files.getlist("files")
    return request.get_json(silent=True) or {}, []


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    List active products.

    Query params: search, sort (field:asc|desc), page, limit,
    category, measurement_type, low_stock=true
    """
    try:
        page, limit = parse_page_args(
            request.args.get("page"),
            request.args.get("limit"),
            default_limit=DEFAULT_PAGE_LIMIT,
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
        result = products_service.list_products(
            search=request.args.get("search"),
            sort=request.args.get("sort"),
            page=page,
            limit=limit,
            category=request.args.get("category"),
            measurement_type=request.args.get("measurement_type"),
            low_stock=_flag(request.args.get("low_stock")),
        )
        return jsonify(result), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def create_product_route():
    payload, files = _read_product_payload()

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        product = products_service.create_product(patch, actor_id=g.current_user.id, files=files)
        return jsonify(products_service.product_to_dict(product)), 201
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
        return jsonify(products_service.product_to_dict(product)), 200
    except HANDLED_ERRORS as e:
        return error_response(e)


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def update_product_route(product_id: int):
    payload, files = _read_product_payload()

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        product = products_service.update_product(product_id, patch, files=files)
        return jsonify(products_service.product_to_dict(product)), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(*ADMIN_ROLES)
def retire_product_route(product_id: int):
    """Soft delete: the product is retired, never removed."""
    try:
        product = products_service.retire_product(product_id)
        return jsonify({"ok": True, "product": product.to_dict()}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to retire product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/stock-movement")
@require_auth
def stock_movement_route(product_id: int):
    """Daily quantity/revenue for one product over ?days= (default 30)."""
    try:
        days = request.args.get("days", default=30, type=int)
        products_service.get_product(product_id)
        rows = reporting_service.stock_movement(product_id, days)
        return jsonify({"product_id": product_id, "days": days, "rows": rows}), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build stock movement")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>/restock")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def restock_route(product_id: int):
    """
    Body: {"quantity": n, "cost_price"?: x, "price_per_unit"?: y}
    """
    payload = request.get_json(silent=True) or {}

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        product = inventory_service.restock(
            product_id,
            payload.get("quantity"),
            new_cost_price=payload.get("cost_price"),
            new_price_per_unit=payload.get("price_per_unit"),
        )
        return jsonify(product.to_dict()), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500
