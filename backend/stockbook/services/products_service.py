# backend/stockbook/services/products_service.py
"""
Products Service

Catalog CRUD over Product.
- Listings only show ACTIVE products; get_product also returns retired ones
  so sales history can still resolve them.
- Measurement rules: scale products never carry a container size; container
  products must have one. Checked against the merged state on update.
- Stock is not editable here after creation. It changes through sales,
  restocks and bulk adjustments (see inventory_service.py).
- Products are never deleted; retire_product flips status and drops attachments.
"""
from __future__ import annotations

from typing import Iterable

from sqlalchemy.exc import IntegrityError
from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..models import Product
from ..models.catalog import (
    CONTAINER_SIZES,
    MEASUREMENT_TYPES,
    PRODUCT_ACTIVE,
    PRODUCT_CATEGORIES,
    PRODUCT_RETIRED,
    measurement_from_fields,
)
from ..errors import InvalidStateError, NotFoundError
from ..query_utils import build_search_filter, build_sort, paginate, split_search_terms
from ..validation import ConflictError, ModelValidationPolicy
from . import attachment_service

ATTACHMENT_MODEL = "Product"

PRODUCT_SEARCH_FIELDS = ("name", "description", "category", "supplier", "barcode")
PRODUCT_SORT_FIELDS = {
    "id", "name", "category", "price_per_unit", "cost_price", "current_stock",
    "min_stock_level", "created_at", "updated_at",
}

_PRODUCT_CHOICES = {
    "category": PRODUCT_CATEGORIES,
    "measurement_type": MEASUREMENT_TYPES,
    "container_size": CONTAINER_SIZES,
}
_PRODUCT_NON_NEGATIVE = {"price_per_unit", "cost_price", "current_stock", "min_stock_level"}

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "category", "measurement_type", "container_size",
        "price_per_unit", "cost_price", "current_stock", "min_stock_level",
        "supplier", "barcode",
    },
    required_on_create={"name", "category", "measurement_type", "price_per_unit", "cost_price"},
    choices=_PRODUCT_CHOICES,
    non_negative=_PRODUCT_NON_NEGATIVE,
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_CREATE_POLICY.writable_fields - {"current_stock"},
    choices=_PRODUCT_CHOICES,
    non_negative=_PRODUCT_NON_NEGATIVE,
)


def product_to_dict(product: Product) -> dict:
    data = product.to_dict()
    data["attachments"] = [
        a.to_dict() for a in attachment_service.list_files(ATTACHMENT_MODEL, product.id)
    ]
    return data


def _resolve_measurement(patch: dict, current: Product | None = None) -> None:
    """Normalise measurement_type/container_size in `patch` against the merged state."""
    measurement_type = patch.get(
        "measurement_type", current.measurement_type if current is not None else None
    )
    if "container_size" in patch:
        container_size = patch["container_size"]
    else:
        container_size = current.container_size if current is not None else None

    if measurement_type == "scale":
        if patch.get("container_size") is not None:
            raise InvalidStateError(
                "container_size is not allowed for scale products",
                details={"measurement_type": "scale", "container_size": patch["container_size"]},
            )
        # Switching a container product to scale clears its stored size
        container_size = None

    measurement = measurement_from_fields(measurement_type, container_size)
    patch["measurement_type"] = measurement.kind
    patch["container_size"] = measurement.size


def _ensure_barcode_free(barcode: str | None, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    query = db.session.query(Product.id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Barcode '{barcode}' is already assigned to another product")


def _commit_or_conflict() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product conflicts with an existing record (duplicate barcode?)")


def list_products(
    *,
    search: str | None = None,
    sort: str | None = None,
    page: int = 1,
    limit: int = 20,
    category: str | None = None,
    measurement_type: str | None = None,
    low_stock: bool = False,
) -> dict:
    query = db.session.query(Product).filter(Product.status == PRODUCT_ACTIVE)

    clause = build_search_filter(Product, split_search_terms(search), PRODUCT_SEARCH_FIELDS)
    if clause is not None:
        query = query.filter(clause)
    if category:
        query = query.filter(Product.category == category)
    if measurement_type:
        query = query.filter(Product.measurement_type == measurement_type)
    if low_stock:
        query = query.filter(Product.current_stock <= Product.min_stock_level)

    query = query.order_by(*build_sort(Product, sort, PRODUCT_SORT_FIELDS))

    result = paginate(query, page, limit)
    result["items"] = [product_to_dict(p) for p in result["items"]]
    return result


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def _get_active_product(product_id: int) -> Product:
    product = get_product(product_id)
    if product.status == PRODUCT_RETIRED:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def create_product(
    patch: dict,
    *,
    actor_id: int | None,
    files: Iterable[FileStorage] | None = None,
) -> Product:
    """
    Create a product from a validated patch dict.

    Raises InvalidStateError when the measurement variant does not hold
    (container without a size, scale with one) and ConflictError for a
    duplicate barcode.
    """
    patch = dict(patch)
    _resolve_measurement(patch)
    _ensure_barcode_free(patch.get("barcode"))

    product = Product(status=PRODUCT_ACTIVE, created_by_user_id=actor_id)
    for key, value in patch.items():
        setattr(product, key, value)

    db.session.add(product)
    _commit_or_conflict()

    attachment_service.store_files(ATTACHMENT_MODEL, product.id, files)
    return product


def update_product(
    product_id: int,
    patch: dict,
    *,
    files: Iterable[FileStorage] | None = None,
) -> Product:
    product = _get_active_product(product_id)

    patch = dict(patch)
    if "measurement_type" in patch or "container_size" in patch:
        _resolve_measurement(patch, current=product)
    if "barcode" in patch:
        _ensure_barcode_free(patch["barcode"], exclude_id=product.id)

    for key, value in patch.items():
        setattr(product, key, value)
    _commit_or_conflict()

    attachment_service.store_files(ATTACHMENT_MODEL, product.id, files)
    return product


def retire_product(product_id: int) -> Product:
    """Soft delete. Calling it on an already retired product is a no-op."""
    product = get_product(product_id)
    if product.status == PRODUCT_RETIRED:
        return product

    product.retire()
    db.session.commit()

    attachment_service.delete_files(ATTACHMENT_MODEL, product.id)
    return product
