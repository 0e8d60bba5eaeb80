from decimal import Decimal

import pytest

from stockbook.errors import NotFoundError
from stockbook.models.catalog import PRODUCT_RETIRED
from stockbook.services import inventory_service
from stockbook.services.inventory_service import StockAdjustment
from stockbook.validation import ValidationError

from conftest import make_product, stock_of


def test_low_stock_boundary_is_inclusive(db_session):
    at_min = make_product(db_session, name="At Minimum", current_stock=Decimal("5"), min_stock_level=Decimal("5"))
    make_product(db_session, name="Above Minimum", current_stock=Decimal("6"), min_stock_level=Decimal("5"))
    below = make_product(db_session, name="Below Minimum", current_stock=Decimal("1"), min_stock_level=Decimal("5"))

    ids = [p.id for p in inventory_service.list_low_stock()]

    assert ids == [at_min.id, below.id]


def test_low_stock_is_idempotent_and_skips_retired(db_session):
    make_product(db_session, name="Beans", current_stock=Decimal("2"), min_stock_level=Decimal("5"))
    make_product(db_session, name="Rice", current_stock=Decimal("0"), min_stock_level=Decimal("5"))
    make_product(db_session, name="Old", current_stock=Decimal("0"), status=PRODUCT_RETIRED)

    first = [p.id for p in inventory_service.list_low_stock()]
    second = [p.id for p in inventory_service.list_low_stock()]

    assert first == second
    assert len(first) == 2


def test_out_of_stock(db_session, product):
    empty = make_product(db_session, name="Salt", current_stock=Decimal("0"))
    make_product(db_session, name="Gone", current_stock=Decimal("0"), status=PRODUCT_RETIRED)

    assert [p.id for p in inventory_service.list_out_of_stock()] == [empty.id]


def test_restock_adds_stock_and_overwrites_cost(db_session):
    p = make_product(db_session, current_stock=Decimal("7"))

    restocked = inventory_service.restock(p.id, 20, new_cost_price=65)

    assert restocked.current_stock == Decimal("27")
    assert restocked.cost_price == Decimal("65")
    assert restocked.price_per_unit == Decimal("100")


def test_restock_missing_product(db_session):
    with pytest.raises(NotFoundError):
        inventory_service.restock(123456, 5)


def test_restock_rejects_non_positive_quantity(db_session, product):
    with pytest.raises(ValidationError):
        inventory_service.restock(product.id, 0)
    with pytest.raises(ValidationError):
        inventory_service.restock(product.id, 5, new_price_per_unit=-1)

    assert stock_of(db_session, product.id) == Decimal("10")


def test_restock_retired_product_stays_retired(db_session):
    p = make_product(db_session, status=PRODUCT_RETIRED, current_stock=Decimal("0"))

    restocked = inventory_service.restock(p.id, 4)

    assert restocked.current_stock == Decimal("4")
    assert restocked.status == PRODUCT_RETIRED


def test_bulk_adjust_applies_and_skips(db_session, product, tomatoes):
    retired = make_product(db_session, name="Old Stock", status=PRODUCT_RETIRED)

    summary = inventory_service.bulk_adjust_stock([
        StockAdjustment(product.id, Decimal("5"), "add"),
        StockAdjustment(tomatoes.id, Decimal("30"), "subtract"),
        StockAdjustment(retired.id, Decimal("1"), "add"),
        StockAdjustment(987654, Decimal("1"), "add"),
        StockAdjustment(product.id, Decimal("500"), "subtract"),
    ])

    assert summary == {"applied": 2, "skipped": [retired.id, 987654, product.id]}
    assert stock_of(db_session, product.id) == Decimal("15")
    assert stock_of(db_session, tomatoes.id) == Decimal("70")
    assert stock_of(db_session, retired.id) == Decimal("10")


def test_bulk_adjust_accepts_dicts_and_validates(db_session, product):
    summary = inventory_service.bulk_adjust_stock([
        {"product_id": product.id, "quantity": "2.5", "operation": "subtract"},
    ])
    assert summary["applied"] == 1
    assert stock_of(db_session, product.id) == Decimal("7.5")

    with pytest.raises(ValidationError):
        inventory_service.bulk_adjust_stock([{"product_id": product.id, "quantity": 1, "operation": "set"}])
    with pytest.raises(ValidationError):
        inventory_service.bulk_adjust_stock([{"product_id": product.id, "quantity": -1, "operation": "add"}])


def test_inventory_report(db_session, product, tomatoes):
    low = make_product(db_session, name="Goat Meat", current_stock=Decimal("0"), min_stock_level=Decimal("8"),
                       cost_price=Decimal("2400"), price_per_unit=Decimal("3000"))
    make_product(db_session, name="Retired", status=PRODUCT_RETIRED, current_stock=Decimal("1000"))

    report = inventory_service.inventory_report()

    assert report["total_products"] == 3
    # 10 * 70 + 100 * 350 + 0 * 2400
    assert report["total_value"] == 35700.0
    assert [item["id"] for item in report["low_stock_items"]] == [low.id]
    assert report["out_of_stock_items"] == [{"id": low.id, "name": "Goat Meat"}]
