from decimal import Decimal

import pytest

from stockbook.models import Product
from stockbook.query_utils import build_search_filter, build_sort, paginate, split_search_terms
from stockbook.validation import ValidationError, parse_page_args

from conftest import make_product

FIELDS = ("name", "description", "supplier")


def _names(query):
    return [p.name for p in query.all()]


@pytest.fixture
def catalog(db_session):
    make_product(db_session, name="Rice (Local)", description="Local rice", supplier="Grain Supplier",
                 price_per_unit=Decimal("400"))
    make_product(db_session, name="Beans (Brown)", description="Brown beans", supplier="Grain Supplier",
                 price_per_unit=Decimal("450"))
    make_product(db_session, name="Salt 100%", description="Table salt", supplier="Spice Supplier",
                 price_per_unit=Decimal("100"))
    return db_session


def test_split_search_terms():
    assert split_search_terms(None) == []
    assert split_search_terms("  grain   rice ") == ["grain", "rice"]


def test_every_term_must_match_some_field(catalog):
    clause = build_search_filter(Product, ["grain", "RICE"], FIELDS)
    assert _names(catalog.query(Product).filter(clause)) == ["Rice (Local)"]

    clause = build_search_filter(Product, ["supplier"], FIELDS)
    assert catalog.query(Product).filter(clause).count() == 3


def test_wildcards_are_literal(catalog):
    clause = build_search_filter(Product, ["100%"], FIELDS)
    assert _names(catalog.query(Product).filter(clause)) == ["Salt 100%"]

    clause = build_search_filter(Product, ["_"], FIELDS)
    assert catalog.query(Product).filter(clause).count() == 0


def test_no_terms_means_no_filter():
    assert build_search_filter(Product, [], FIELDS) is None


def test_sort_direction(catalog):
    allowed = {"name", "price_per_unit"}

    query = catalog.query(Product).order_by(*build_sort(Product, "price_per_unit:desc", allowed))
    assert _names(query) == ["Beans (Brown)", "Rice (Local)", "Salt 100%"]

    # anything other than "desc" is ascending
    query = catalog.query(Product).order_by(*build_sort(Product, "price_per_unit:sideways", allowed))
    assert _names(query) == ["Salt 100%", "Rice (Local)", "Beans (Brown)"]

    with pytest.raises(ValidationError):
        build_sort(Product, "cost_price:asc", allowed)


def test_paginate(catalog):
    query = catalog.query(Product).order_by(Product.name.asc())

    page = paginate(query, 2, 2)
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert page["current_page"] == 2
    assert [p.name for p in page["items"]] == ["Salt 100%"]

    empty = paginate(catalog.query(Product).filter(Product.id < 0), 1, 20)
    assert empty["total"] == 0
    assert empty["total_pages"] == 0
    assert empty["items"] == []

    with pytest.raises(ValidationError):
        paginate(query, 0, 10)


def test_parse_page_args_caps_limit():
    assert parse_page_args(None, None, default_limit=20, max_limit=100) == (1, 20)
    assert parse_page_args("3", "50", default_limit=20, max_limit=100) == (3, 50)
    with pytest.raises(ValidationError):
        parse_page_args("1", "101", default_limit=20, max_limit=100)
    with pytest.raises(ValidationError):
        parse_page_args("abc", None, default_limit=20, max_limit=100)
