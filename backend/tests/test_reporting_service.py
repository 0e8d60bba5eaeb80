from datetime import date, datetime
from decimal import Decimal

import pytest

from stockbook.models import SalesLine, SalesTransaction
from stockbook.models.catalog import PRODUCT_RETIRED
from stockbook.services import reporting_service
from stockbook.validation import ValidationError

from conftest import make_product, make_transaction

NOW = datetime(2024, 3, 31, 12, 0, 0)


def _sale(db_session, seller, code, created_at, lines, payment_method="cash"):
    """Insert a sale with lines priced from the products' current price/cost."""
    sale_lines = []
    for position, (product, qty) in enumerate(lines):
        qty = Decimal(qty)
        sale_lines.append(SalesLine(
            position=position,
            product_id=product.id,
            quantity=qty,
            unit_price=product.price_per_unit,
            unit_cost=product.cost_price,
            line_total=qty * product.price_per_unit,
            line_cost=qty * product.cost_price,
            measurement_type=product.measurement_type,
            container_size=product.container_size,
        ))
    total = sum((line.line_total for line in sale_lines), Decimal("0"))
    cost = sum((line.line_cost for line in sale_lines), Decimal("0"))
    sale = SalesTransaction(
        transaction_code=code,
        total_amount=total,
        total_cost=cost,
        profit=total - cost,
        payment_method=payment_method,
        sold_by_user_id=seller.id,
        created_at=created_at,
        lines=sale_lines,
    )
    db_session.add(sale)
    db_session.commit()
    return sale


def test_profit_loss_sums_inclusive_range(db_session, staff):
    make_transaction(db_session, staff, code="TXN-20240301-080000-001", total_amount="300",
                     total_cost="210", created_at=datetime(2024, 3, 1, 8, 0))
    make_transaction(db_session, staff, code="TXN-20240305-235959-002", total_amount="50",
                     total_cost="60", created_at=datetime(2024, 3, 5, 23, 59, 59))
    make_transaction(db_session, staff, code="TXN-20240306-000001-003", total_amount="999",
                     total_cost="1", created_at=datetime(2024, 3, 6, 0, 0, 1))

    report = reporting_service.profit_loss_report(date(2024, 3, 1), date(2024, 3, 5))

    assert report["gross_profit"] == 80.0
    assert report["total_transactions"] == 2
    assert report["total_revenue"] == 350.0
    assert report["total_cost_of_goods"] == 270.0


def test_profit_loss_empty_range_and_bad_range(db_session):
    report = reporting_service.profit_loss_report(date(2024, 1, 1), date(2024, 1, 31))
    assert report["total_revenue"] == 0.0
    assert report["gross_profit"] == 0.0
    assert report["total_transactions"] == 0

    with pytest.raises(ValidationError):
        reporting_service.profit_loss_report(date(2024, 2, 1), date(2024, 1, 1))


def test_stock_movement_buckets_by_day(db_session, staff, product, tomatoes):
    _sale(db_session, staff, "TXN-20240310-090000-001", datetime(2024, 3, 10, 9, 0),
          [(product, "2"), (product, "1")])
    _sale(db_session, staff, "TXN-20240310-170000-002", datetime(2024, 3, 10, 17, 0),
          [(product, "1.5"), (tomatoes, "4")])
    _sale(db_session, staff, "TXN-20240325-100000-003", datetime(2024, 3, 25, 10, 0),
          [(product, "1")])
    # outside the 30 day window
    _sale(db_session, staff, "TXN-20240215-100000-004", datetime(2024, 2, 15, 10, 0),
          [(product, "5")])
    # other product only
    _sale(db_session, staff, "TXN-20240320-100000-005", datetime(2024, 3, 20, 10, 0),
          [(tomatoes, "1")])

    rows = reporting_service.stock_movement(product.id, 30, now=NOW)

    assert rows == [
        {"date": "2024-03-10", "quantity_sold": 4.5, "revenue": 450.0, "transaction_count": 2},
        {"date": "2024-03-25", "quantity_sold": 1.0, "revenue": 100.0, "transaction_count": 1},
    ]


def test_stock_movement_empty(db_session, product):
    assert reporting_service.stock_movement(product.id, 7, now=NOW) == []


def test_best_sellers_rank_and_current_names(db_session, staff, product, tomatoes):
    onions = make_product(db_session, name="Onions", category="vegetable", measurement_type="container",
                          container_size="large", price_per_unit=Decimal("800"), cost_price=Decimal("600"))
    _sale(db_session, staff, "TXN-20240330-090000-001", datetime(2024, 3, 30, 9, 0),
          [(product, "3"), (tomatoes, "5"), (onions, "3")])
    _sale(db_session, staff, "TXN-20240101-090000-002", datetime(2024, 1, 1, 9, 0),
          [(product, "10")])

    # Rename after the sale: reports show the current name
    product.name = "Chicken (Broiler)"
    db_session.commit()

    ranked = reporting_service.best_sellers(limit=10, now=NOW)
    assert [r["product_id"] for r in ranked] == [product.id, tomatoes.id, onions.id]
    assert ranked[0]["name"] == "Chicken (Broiler)"
    assert ranked[0]["total_quantity"] == 13.0
    assert ranked[0]["total_revenue"] == 1300.0
    assert ranked[0]["total_profit"] == 390.0

    weekly = reporting_service.best_sellers(limit=2, period="weekly", now=NOW)
    # tomatoes 5, then product 3 vs onions 3 tie broken by revenue (onions 2400 > 300)
    assert [r["product_id"] for r in weekly] == [tomatoes.id, onions.id]


def test_best_sellers_includes_retired_products(db_session, staff):
    p = make_product(db_session, name="Discontinued")
    _sale(db_session, staff, "TXN-20240330-090000-001", datetime(2024, 3, 30, 9, 0), [(p, "2")])
    p.retire()
    db_session.commit()

    ranked = reporting_service.best_sellers(now=NOW)
    assert ranked[0]["product_id"] == p.id


def test_sales_stats_window_and_live_low_stock(db_session, staff, product):
    low = make_product(db_session, name="Salt", current_stock=Decimal("3"), min_stock_level=Decimal("10"))
    make_transaction(db_session, staff, code="TXN-20240329-100000-001", total_amount="300",
                     total_cost="210", created_at=datetime(2024, 3, 29, 10, 0))
    make_transaction(db_session, staff, code="TXN-20240301-100000-002", total_amount="100",
                     total_cost="80", created_at=datetime(2024, 3, 1, 10, 0))

    weekly = reporting_service.sales_stats("weekly", now=NOW)
    assert weekly["transaction_count"] == 1
    assert weekly["total_sales"] == 300.0
    assert weekly["total_profit"] == 90.0
    assert [p["id"] for p in weekly["low_stock_products"]] == [low.id]

    monthly = reporting_service.sales_stats("monthly", now=NOW)
    assert monthly["transaction_count"] == 2
    assert monthly["total_cost"] == 290.0

    with pytest.raises(ValidationError):
        reporting_service.sales_stats("hourly", now=NOW)


def test_period_start(app):
    with app.app_context():
        assert reporting_service.period_start("daily", NOW) == datetime(2024, 3, 31, 0, 0)
        assert reporting_service.period_start("weekly", NOW) == datetime(2024, 3, 24, 12, 0)
        assert reporting_service.period_start("monthly", NOW) == datetime(2024, 2, 29, 12, 0)
        assert reporting_service.period_start("yearly", NOW) == datetime(2023, 3, 31, 12, 0)


def test_daily_period_uses_report_timezone(app):
    with app.app_context():
        app.config["REPORT_TIMEZONE"] = "Africa/Lagos"
        try:
            # 12:00 UTC is 13:00 in Lagos (UTC+1); local midnight is 23:00 UTC the day before
            assert reporting_service.period_start("daily", NOW) == datetime(2024, 3, 30, 23, 0)
        finally:
            app.config["REPORT_TIMEZONE"] = "UTC"


def test_expected_profit(db_session, product, tomatoes):
    make_product(db_session, name="Retired", status=PRODUCT_RETIRED, current_stock=Decimal("100"))

    # (100 - 70) * 10 + (500 - 350) * 100
    assert reporting_service.expected_profit() == 15300.0
