# Overview: Service-layer operations for reporting; read-only aggregates over the sales log.

"""
Reporting Time Semantics

- Transaction timestamps are UTC-naive; stock movement buckets by UTC calendar day.
- Trailing windows (period_start):
    daily   -> since local midnight in REPORT_TIMEZONE
    weekly  -> now - 7 days
    monthly -> now - 1 calendar month (day clamped)
    yearly  -> now - 1 calendar year
- profit_loss_report bounds are inclusive on both ends; plain dates cover the whole day.

Money comes back from SQL aggregates as whatever the driver returns; it is
normalised to Decimal at 2 places before any arithmetic.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, SalesLine, SalesTransaction
from ..models.catalog import PRODUCT_ACTIVE
from ..validation import REPORT_PERIODS, ValidationError
from stockbook.time_utils import end_of_day, shift_months, start_of_day, to_utc_z, utcnow
from .inventory_service import list_low_stock

MONEY = Decimal("0.01")
QTY = Decimal("0.001")


def _dec(value, places: Decimal = MONEY) -> Decimal:
    if value is None:
        return Decimal("0").quantize(places)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(places)


def _report_zone():
    name = current_app.config.get("REPORT_TIMEZONE", "UTC")
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def period_start(period: str, now: datetime | None = None) -> datetime:
    """UTC-naive start of the trailing window ending at `now`."""
    if period not in REPORT_PERIODS:
        raise ValidationError(f"period must be one of: {', '.join(REPORT_PERIODS)}")
    now = now or utcnow()

    if period == "daily":
        local_now = now.replace(tzinfo=timezone.utc).astimezone(_report_zone())
        local_midnight = datetime.combine(local_now.date(), datetime.min.time(), tzinfo=local_now.tzinfo)
        return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)
    if period == "weekly":
        return now - timedelta(days=7)
    if period == "monthly":
        return shift_months(now, -1)
    return shift_months(now, -12)


def stock_movement(product_id: int, window_days: int = 30, *, now: datetime | None = None) -> list[dict]:
    """
    Daily sales of one product over the trailing window.

    Rows are ascending by date and sparse: days without sales are absent.
    transaction_count counts distinct transactions, not lines.
    """
    if window_days < 1:
        raise ValidationError("days must be >= 1")
    since = (now or utcnow()) - timedelta(days=window_days)

    day = func.strftime("%Y-%m-%d", SalesTransaction.created_at)
    rows = (
        db.session.query(
            day.label("day"),
            func.coalesce(func.sum(SalesLine.quantity), 0).label("quantity_sold"),
            func.coalesce(func.sum(SalesLine.line_total), 0).label("revenue"),
            func.count(func.distinct(SalesTransaction.id)).label("transaction_count"),
        )
        .join(SalesLine, SalesLine.transaction_id == SalesTransaction.id)
        .filter(SalesLine.product_id == product_id, SalesTransaction.created_at >= since)
        .group_by("day")
        .order_by("day")
        .all()
    )

    return [
        {
            "date": row.day,
            "quantity_sold": float(_dec(row.quantity_sold, QTY)),
            "revenue": float(_dec(row.revenue)),
            "transaction_count": int(row.transaction_count or 0),
        }
        for row in rows
    ]


def best_sellers(limit: int = 10, period: str | None = None, *, now: datetime | None = None) -> list[dict]:
    """
    Products ranked by quantity sold (ties: revenue desc, then product id).

    Name and category are read from the product as it is now; revenue and
    cost come from the line snapshots.
    """
    if limit < 1:
        raise ValidationError("limit must be >= 1")

    total_qty = func.sum(SalesLine.quantity)
    total_revenue = func.sum(SalesLine.line_total)

    query = (
        db.session.query(
            Product.id.label("product_id"),
            Product.name.label("name"),
            Product.category.label("category"),
            func.coalesce(total_qty, 0).label("total_quantity"),
            func.coalesce(total_revenue, 0).label("total_revenue"),
            func.coalesce(func.sum(SalesLine.line_cost), 0).label("total_cost"),
        )
        .select_from(SalesLine)
        .join(SalesTransaction, SalesLine.transaction_id == SalesTransaction.id)
        .join(Product, SalesLine.product_id == Product.id)
    )
    if period:
        query = query.filter(SalesTransaction.created_at >= period_start(period, now))

    rows = (
        query.group_by(Product.id, Product.name, Product.category)
        .order_by(total_qty.desc(), total_revenue.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )

    result = []
    for row in rows:
        revenue = _dec(row.total_revenue)
        cost = _dec(row.total_cost)
        result.append(
            {
                "product_id": row.product_id,
                "name": row.name,
                "category": row.category,
                "total_quantity": float(_dec(row.total_quantity, QTY)),
                "total_revenue": float(revenue),
                "total_cost": float(cost),
                "total_profit": float(revenue - cost),
            }
        )
    return result


def _window_totals(query) -> tuple[Decimal, Decimal, int]:
    revenue, cost, count = query.with_entities(
        func.coalesce(func.sum(SalesTransaction.total_amount), 0),
        func.coalesce(func.sum(SalesTransaction.total_cost), 0),
        func.count(SalesTransaction.id),
    ).one()
    return _dec(revenue), _dec(cost), int(count or 0)


def _as_bound(value, *, end: bool) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return end_of_day(value) if end else start_of_day(value)
    raise ValidationError("start_date and end_date must be dates")


def profit_loss_report(start, end) -> dict:
    """Realized revenue/cost/profit for transactions created in [start, end]."""
    if start is None or end is None:
        raise ValidationError("start_date and end_date are required")
    start_dt = _as_bound(start, end=False)
    end_dt = _as_bound(end, end=True)
    if start_dt > end_dt:
        raise ValidationError("start_date must be on or before end_date")

    query = db.session.query(SalesTransaction).filter(
        SalesTransaction.created_at >= start_dt,
        SalesTransaction.created_at <= end_dt,
    )
    revenue, cost, count = _window_totals(query)

    return {
        "start_date": to_utc_z(start_dt),
        "end_date": to_utc_z(end_dt),
        "total_revenue": float(revenue),
        "total_cost_of_goods": float(cost),
        "gross_profit": float(revenue - cost),
        "total_transactions": count,
    }


def sales_stats(period: str = "weekly", *, now: datetime | None = None) -> dict:
    since = period_start(period, now)
    query = db.session.query(SalesTransaction).filter(SalesTransaction.created_at >= since)
    revenue, cost, count = _window_totals(query)

    # Low stock is the catalog as it is now, whatever the period
    low_stock = [
        {
            "id": p.id,
            "name": p.name,
            "current_stock": float(p.current_stock),
            "min_stock_level": float(p.min_stock_level),
        }
        for p in list_low_stock()
    ]

    return {
        "period": period,
        "since": to_utc_z(since),
        "total_sales": float(revenue),
        "total_cost": float(cost),
        "total_profit": float(revenue - cost),
        "transaction_count": count,
        "low_stock_products": low_stock,
    }


def expected_profit() -> float:
    """Potential profit if all active stock sold at today's prices."""
    products = db.session.query(Product).filter(Product.status == PRODUCT_ACTIVE).all()
    total = sum(
        ((p.price_per_unit - p.cost_price) * p.current_stock for p in products),
        Decimal("0"),
    )
    return float(_dec(total))
