# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/stockbook/routes/inventory.py
"""
Stock scans and bulk adjustments. SUPER-ADMIN, ADMIN and MANAGER only.
"""
from flask import Blueprint, request, jsonify, current_app

from ..models.auth import MANAGEMENT_ROLES
from ..services import inventory_service
from ..validation import ValidationError
from ..decorators import require_auth, require_role
from ..http_errors import HANDLED_ERRORS, error_response

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/low-stock")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def low_stock_route():
    """Active products at or below their minimum stock level."""
    items = [p.to_dict() for p in inventory_service.list_low_stock()]
    return jsonify({"items": items, "count": len(items)}), 200


@inventory_bp.get("/out-of-stock")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def out_of_stock_route():
    items = [p.to_dict() for p in inventory_service.list_out_of_stock()]
    return jsonify({"items": items, "count": len(items)}), 200


@inventory_bp.post("/bulk-update")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def bulk_update_route():
    """
    Body: {"updates": [{"product_id": id, "quantity": n, "operation": "add|subtract"}, ...]}

    Items for missing or retired products, and subtracts that would go below
    zero, are skipped and reported back.
    """
    payload = request.get_json(silent=True) or {}

    try:
        updates = payload.get("updates") if isinstance(payload, dict) else None
        if not isinstance(updates, list) or not updates:
            raise ValidationError("updates must be a non-empty list")
        if not all(isinstance(u, dict) for u in updates):
            raise ValidationError("each update must be an object")

        summary = inventory_service.bulk_adjust_stock(updates)
        return jsonify(summary), 200
    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to apply bulk stock update")
        return jsonify({"error": "Internal server error"}), 500
