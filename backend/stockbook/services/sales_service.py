"""
Sales Service - the stock reconciliation write path.

A sale is recorded as one unit of work:
- lines are processed in caller order, each with a conditional stock
  decrement (check and write in one statement)
- a later line for the same product sees the stock left by earlier lines
- any failing line rolls back every decrement made by the call and no
  transaction row is written
- no retries: a sale is not safe to replay blindly
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from flask import current_app

from ..extensions import db
from ..models import Product, SalesLine, SalesTransaction
from ..models.catalog import PRODUCT_ACTIVE
from ..models.sales import generate_transaction_code
from ..errors import InsufficientStockError, NotFoundError
from ..query_utils import build_search_filter, build_sort, paginate, split_search_terms
from ..validation import PAYMENT_METHODS, ValidationError, parse_decimal
from stockbook.time_utils import end_of_day, start_of_day, utcnow
from .concurrency import begin_write_transaction, try_decrement_stock

logger = logging.getLogger(__name__)

MONEY = Decimal("0.01")

TRANSACTION_SEARCH_FIELDS = ("transaction_code", "customer_name", "customer_phone")
TRANSACTION_SORT_FIELDS = {
    "id", "transaction_code", "created_at", "total_amount", "total_cost", "profit",
    "payment_method", "customer_name",
}

# Random disambiguator space is 000-999; give up well before exhausting it
MAX_CODE_ATTEMPTS = 20


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: int
    quantity: Decimal


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY)


def _normalize_lines(lines: Iterable) -> list[SaleLineRequest]:
    normalized = []
    for index, line in enumerate(lines):
        if isinstance(line, SaleLineRequest):
            product_id, quantity = line.product_id, line.quantity
        else:
            product_id, quantity = line
        quantity = parse_decimal(f"lines[{index}].quantity", quantity)
        if quantity <= 0:
            raise ValidationError(f"lines[{index}].quantity must be greater than zero")
        normalized.append(SaleLineRequest(product_id=product_id, quantity=quantity))
    if not normalized:
        raise ValidationError("A sale needs at least one line")
    return normalized


def _allocate_transaction_code(created_at) -> str:
    """Pick a code not already in the log. Called once per transaction; the result is never regenerated."""
    prefix = current_app.config.get("TRANSACTION_CODE_PREFIX", "TXN")
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_transaction_code(prefix, created_at)
        taken = db.session.query(SalesTransaction.id).filter_by(transaction_code=code).first()
        if taken is None:
            return code
    raise RuntimeError("Could not allocate a unique transaction code")


def _load_active_product(product_id: int, line_index: int) -> Product:
    product = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.status == PRODUCT_ACTIVE)
        .first()
    )
    if product is None:
        raise NotFoundError(
            f"Line {line_index + 1}: product {product_id} not found",
            details={"product_id": product_id, "line_index": line_index},
        )
    return product


def _reconcile_line(position: int, request: SaleLineRequest) -> SalesLine:
    product = _load_active_product(request.product_id, position)

    # Snapshot before the decrement expires the product's stock attributes
    unit_price = product.price_per_unit
    unit_cost = product.cost_price

    if not try_decrement_stock(product.id, request.quantity, product=product):
        raise InsufficientStockError(
            product_id=product.id,
            product_name=product.name,
            available=product.current_stock,
            requested=request.quantity,
            line_index=position,
        )

    return SalesLine(
        position=position,
        product_id=product.id,
        quantity=request.quantity,
        unit_price=unit_price,
        unit_cost=unit_cost,
        line_total=_money(request.quantity * unit_price),
        line_cost=_money(request.quantity * unit_cost),
        measurement_type=product.measurement_type,
        container_size=product.container_size,
    )


def record_sale(
    *,
    seller_id: int,
    lines: Sequence,
    payment_method: str,
    customer_name: str | None = None,
    customer_phone: str | None = None,
) -> SalesTransaction:
    """
    Reconcile a multi-line sale against stock and append it to the transaction log.

    Raises NotFoundError (unknown or retired product), InsufficientStockError
    (carrying product name and available quantity) or ValidationError. On any
    failure nothing from this call is persisted.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    requests = _normalize_lines(lines)

    try:
        begin_write_transaction()

        sale_lines = [_reconcile_line(position, req) for position, req in enumerate(requests)]

        total_amount = sum((line.line_total for line in sale_lines), Decimal("0"))
        total_cost = sum((line.line_cost for line in sale_lines), Decimal("0"))

        created_at = utcnow()
        sale = SalesTransaction(
            transaction_code=_allocate_transaction_code(created_at),
            total_amount=total_amount,
            total_cost=total_cost,
            profit=total_amount - total_cost,
            payment_method=payment_method,
            customer_name=customer_name,
            customer_phone=customer_phone,
            sold_by_user_id=seller_id,
            created_at=created_at,
            lines=sale_lines,
        )
        db.session.add(sale)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Recorded sale %s: %d line(s), total %s, profit %s",
        sale.transaction_code, len(sale_lines), sale.total_amount, sale.profit,
    )
    return sale


def get_transaction(transaction_id: int) -> SalesTransaction:
    sale = db.session.get(SalesTransaction, transaction_id)
    if sale is None:
        raise NotFoundError("Sales transaction not found", details={"transaction_id": transaction_id})
    return sale


def list_transactions(
    *,
    search: str | None = None,
    sort: str | None = None,
    page: int = 1,
    limit: int = 20,
    start_date: date | None = None,
    end_date: date | None = None,
    payment_methods: Sequence[str] | None = None,
    customer_name: str | None = None,
) -> dict:
    """
    Search/filter/sort/paginate the transaction log.

    Date bounds are whole days: start_date from 00:00, end_date through 23:59:59.999999.
    """
    query = db.session.query(SalesTransaction)

    clause = build_search_filter(SalesTransaction, split_search_terms(search), TRANSACTION_SEARCH_FIELDS)
    if clause is not None:
        query = query.filter(clause)

    if start_date is not None:
        query = query.filter(SalesTransaction.created_at >= start_of_day(start_date))
    if end_date is not None:
        query = query.filter(SalesTransaction.created_at <= end_of_day(end_date))

    if payment_methods:
        unknown = [m for m in payment_methods if m not in PAYMENT_METHODS]
        if unknown:
            raise ValidationError(f"Unknown payment method(s): {', '.join(unknown)}")
        query = query.filter(SalesTransaction.payment_method.in_(list(payment_methods)))

    if customer_name:
        name_clause = build_search_filter(SalesTransaction, [customer_name], ("customer_name",))
        query = query.filter(name_clause)

    query = query.order_by(*build_sort(SalesTransaction, sort, TRANSACTION_SORT_FIELDS))

    result = paginate(query, page, limit)
    result["items"] = [sale.to_dict() for sale in result["items"]]
    return result
