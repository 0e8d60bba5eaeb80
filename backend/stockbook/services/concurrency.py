# Overview: Atomic stock primitives and locking helpers shared by the write paths.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import text, update

from ..extensions import db
from ..models import Product
from ..models.catalog import PRODUCT_ACTIVE


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Start the unit of work for a multi-statement stock change.

    SQLite: BEGIN IMMEDIATE takes the write lock up front so two sales cannot
    interleave their reads and writes. A read-only transaction left open by
    earlier queries in the request (auth lookups) is ended first; one holding
    unflushed changes is kept and the conditional UPDATEs carry the guarantee.
    Other databases rely on the row locks and conditional UPDATEs below.
    """
    if db.engine.dialect.name != "sqlite":
        return

    # db.session is a scoped_session proxy; transaction state lives on the real session
    session = db.session()
    if session.in_transaction():
        if session.new or session.dirty or session.deleted:
            return
        session.commit()
    session.execute(text("BEGIN IMMEDIATE"))


def _apply_stock_update(stmt, product: Product | None) -> bool:
    result = db.session.execute(stmt.execution_options(synchronize_session=False))
    if product is not None:
        db.session.expire(product, ["current_stock", "updated_at"])
    return result.rowcount == 1


def try_decrement_stock(product_id: int, quantity: Decimal, *, product: Product | None = None) -> bool:
    """
    Decrement stock only if enough is on hand; the check and the write are one statement.

    Returns False when no ACTIVE row with current_stock >= quantity matched.
    Pass the loaded `product` to have its stale stock attributes expired.
    """
    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.status == PRODUCT_ACTIVE,
            Product.current_stock >= quantity,
        )
        .values(current_stock=Product.current_stock - quantity, updated_at=db.func.now())
    )
    return _apply_stock_update(stmt, product)


def try_increment_stock(
    product_id: int,
    quantity: Decimal,
    *,
    active_only: bool = True,
    product: Product | None = None,
) -> bool:
    stmt = update(Product).where(Product.id == product_id)
    if active_only:
        stmt = stmt.where(Product.status == PRODUCT_ACTIVE)
    stmt = stmt.values(current_stock=Product.current_stock + quantity, updated_at=db.func.now())
    return _apply_stock_update(stmt, product)
