# Overview: Service-layer operations for inventory; stock scans, bulk adjustments and restocks.

"""
Inventory Invariants

- current_stock >= 0 at all times. Every write below is a conditional or
  row-locked UPDATE so concurrent sales and adjustments cannot drive it negative.
- Scans (low stock, out of stock, report) only consider ACTIVE products and
  never write.
- Low stock means current_stock <= min_stock_level (a product sitting exactly
  on its minimum is already low).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..extensions import db
from ..models import Product
from ..models.catalog import PRODUCT_ACTIVE, PRODUCT_RETIRED
from ..errors import NotFoundError
from ..validation import STOCK_OPERATIONS, optional_non_negative, require_choice, require_positive
from .concurrency import (
    begin_write_transaction,
    lock_for_update,
    try_decrement_stock,
    try_increment_stock,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockAdjustment:
    product_id: int
    quantity: Decimal
    operation: str  # "add" | "subtract"


def _active_products():
    return db.session.query(Product).filter(Product.status == PRODUCT_ACTIVE)


def list_low_stock() -> list[Product]:
    return (
        _active_products()
        .filter(Product.current_stock <= Product.min_stock_level)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def list_out_of_stock() -> list[Product]:
    return (
        _active_products()
        .filter(Product.current_stock == 0)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def _normalize_adjustments(adjustments: Iterable) -> list[StockAdjustment]:
    normalized = []
    for index, adj in enumerate(adjustments):
        if isinstance(adj, dict):
            adj = StockAdjustment(
                product_id=adj.get("product_id", adj.get("productId")),
                quantity=adj.get("quantity"),
                operation=adj.get("operation"),
            )
        normalized.append(
            StockAdjustment(
                product_id=adj.product_id,
                quantity=require_positive(f"updates[{index}].quantity", adj.quantity),
                operation=require_choice(f"updates[{index}].operation", adj.operation, STOCK_OPERATIONS),
            )
        )
    return normalized


def bulk_adjust_stock(adjustments: Iterable) -> dict:
    """
    Apply add/subtract adjustments in one database transaction.

    Missing or retired products are skipped, as is any subtract that would
    take stock below zero. Returns {"applied": n, "skipped": [product_id, ...]}.
    """
    items = _normalize_adjustments(adjustments)

    applied = 0
    skipped: list = []
    try:
        begin_write_transaction()
        for adj in items:
            if adj.operation == "add":
                ok = try_increment_stock(adj.product_id, adj.quantity)
            else:
                ok = try_decrement_stock(adj.product_id, adj.quantity)
            if ok:
                applied += 1
            else:
                skipped.append(adj.product_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    # Loaded instances would otherwise keep their pre-adjustment stock
    db.session.expire_all()

    if skipped:
        logger.warning("Bulk stock update skipped product(s) %s", skipped)
    logger.info("Bulk stock update applied %d of %d adjustment(s)", applied, len(items))
    return {"applied": applied, "skipped": skipped}


def restock(
    product_id: int,
    quantity,
    new_cost_price=None,
    new_price_per_unit=None,
) -> Product:
    """
    Add stock to a product, optionally overwriting its prices.

    Retired products can still be restocked (stock arriving for a delisted
    item); they stay retired.
    """
    quantity = require_positive("quantity", quantity)
    new_cost_price = optional_non_negative("cost_price", new_cost_price)
    new_price_per_unit = optional_non_negative("price_per_unit", new_price_per_unit)

    try:
        product = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        try_increment_stock(product.id, quantity, active_only=False, product=product)

        if new_cost_price is not None:
            product.cost_price = new_cost_price
        if new_price_per_unit is not None:
            product.price_per_unit = new_price_per_unit

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if product.status == PRODUCT_RETIRED:
        logger.info("Restocked retired product %s by %s", product.id, quantity)
    return product


def inventory_report() -> dict:
    """
    Snapshot of the active catalog.

    total_value is sum(current_stock * cost_price), i.e. stock valued at cost.
    """
    products = _active_products().all()

    total_value = sum(
        (p.current_stock * p.cost_price for p in products),
        Decimal("0"),
    )

    return {
        "total_products": len(products),
        "total_value": float(total_value),
        "low_stock_items": [
            {
                "id": p.id,
                "name": p.name,
                "current_stock": float(p.current_stock),
                "min_stock_level": float(p.min_stock_level),
            }
            for p in list_low_stock()
        ],
        "out_of_stock_items": [{"id": p.id, "name": p.name} for p in list_out_of_stock()],
    }
