from __future__ import annotations

import random
from datetime import datetime

from sqlalchemy import event, inspect
from sqlalchemy.orm import validates

from ..extensions import db
from ..errors import InvalidStateError
from stockbook.time_utils import to_utc_z, utcnow


def format_transaction_code(prefix: str, created_at: datetime, disambiguator: int) -> str:
    """e.g. TXN-20240115-143022-007"""
    return f"{prefix}-{created_at:%Y%m%d}-{created_at:%H%M%S}-{disambiguator:03d}"


def generate_transaction_code(prefix: str, created_at: datetime) -> str:
    return format_transaction_code(prefix, created_at, random.randint(0, 999))


class SalesTransaction(db.Model):
    """
    One recorded sale. Append-only: once inserted, no column may change.

    transaction_code is assigned once, before the first flush, and is never
    regenerated (see _freeze_after_insert).
    """
    __tablename__ = "sales_transactions"
    __table_args__ = (
        db.CheckConstraint("total_amount >= 0", name="ck_sales_total_amount_non_negative"),
        db.CheckConstraint("total_cost >= 0", name="ck_sales_total_cost_non_negative"),
        db.CheckConstraint(
            "payment_method IN ('cash', 'transfer', 'card', 'pos', 'credit')",
            name="ck_sales_payment_method_valid",
        ),
        db.Index("ix_sales_transactions_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable code (e.g., "TXN-20240115-143022-007")
    transaction_code = db.Column(db.String(64), nullable=False, unique=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    total_cost = db.Column(db.Numeric(14, 2), nullable=False)
    # May be negative when selling below cost
    profit = db.Column(db.Numeric(14, 2), nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    customer_name = db.Column(db.String(100), nullable=True)
    customer_phone = db.Column(db.String(15), nullable=True)

    sold_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    lines = db.relationship(
        "SalesLine",
        back_populates="transaction",
        order_by="SalesLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    sold_by = db.relationship("User", foreign_keys=[sold_by_user_id])

    @validates("transaction_code")
    def _validate_code(self, key, value):
        if self.transaction_code and value != self.transaction_code:
            raise InvalidStateError("transaction_code cannot be changed once assigned")
        return value

    def __repr__(self) -> str:
        return f"<SalesTransaction {self.transaction_code} total={self.total_amount}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "transaction_code": self.transaction_code,
            "total_amount": float(self.total_amount),
            "total_cost": float(self.total_cost),
            "profit": float(self.profit),
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "sold_by_user_id": self.sold_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class SalesLine(db.Model):
    """Individual line item; price, cost and measurement are snapshots taken at sale time."""
    __tablename__ = "sales_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "position", name="uq_sales_lines_transaction_position"),
        db.CheckConstraint("quantity > 0", name="ck_sales_lines_quantity_positive"),
        db.Index("ix_sales_lines_product_transaction", "product_id", "transaction_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("sales_transactions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    unit_cost = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(14, 2), nullable=False)
    line_cost = db.Column(db.Numeric(14, 2), nullable=False)

    measurement_type = db.Column(db.String(16), nullable=False)
    container_size = db.Column(db.String(16), nullable=True)

    transaction = db.relationship("SalesTransaction", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "product_id": self.product_id,
            "quantity": float(self.quantity),
            "unit_price": float(self.unit_price),
            "unit_cost": float(self.unit_cost),
            "line_total": float(self.line_total),
            "line_cost": float(self.line_cost),
            "measurement_type": self.measurement_type,
            "container_size": self.container_size,
        }


@event.listens_for(SalesTransaction, "before_insert")
def _require_code(mapper, connection, target: SalesTransaction) -> None:
    if not target.transaction_code:
        raise InvalidStateError("Sales transactions need a transaction code before insert")


@event.listens_for(SalesTransaction, "before_update")
@event.listens_for(SalesLine, "before_update")
def _freeze_after_insert(mapper, connection, target) -> None:
    # Relationship-only changes (e.g. appending to lines) are not column edits.
    state = inspect(target)
    changed = [
        attr.key
        for attr in mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    ]
    if changed:
        raise InvalidStateError(
            "Sales transactions are immutable; record a correcting transaction instead",
            details={"fields": changed},
        )


@event.listens_for(SalesTransaction, "before_delete")
@event.listens_for(SalesLine, "before_delete")
def _forbid_delete(mapper, connection, target) -> None:
    raise InvalidStateError("Sales transactions cannot be deleted")
