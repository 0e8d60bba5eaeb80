from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import event
from sqlalchemy.orm import validates

from ..extensions import db
from ..errors import InvalidStateError
from stockbook.time_utils import to_utc_z

PRODUCT_CATEGORIES = ("protein", "vegetable", "grain", "spice", "other")
MEASUREMENT_TYPES = ("scale", "container")
CONTAINER_SIZES = ("small", "medium", "large")

PRODUCT_ACTIVE = "ACTIVE"
PRODUCT_RETIRED = "RETIRED"


@dataclass(frozen=True)
class Scale:
    """Sold by weight/unit; never carries a container size."""
    kind = "scale"
    size = None


@dataclass(frozen=True)
class Container:
    """Sold per discrete container of a fixed size."""
    size: str
    kind = "container"

    def __post_init__(self):
        if self.size not in CONTAINER_SIZES:
            raise InvalidStateError(
                f"container_size must be one of: {', '.join(CONTAINER_SIZES)}",
                details={"container_size": self.size},
            )


def measurement_from_fields(measurement_type: str | None, container_size: str | None) -> Scale | Container:
    """
    Build the measurement variant from the two stored columns.

    container_size is required iff measurement_type == "container" and forbidden otherwise.
    """
    if measurement_type == "scale":
        if container_size is not None:
            raise InvalidStateError(
                "container_size is not allowed for scale products",
                details={"measurement_type": measurement_type, "container_size": container_size},
            )
        return Scale()
    if measurement_type == "container":
        if container_size is None:
            raise InvalidStateError(
                "Container size is required for container-based products",
                details={"measurement_type": measurement_type},
            )
        return Container(container_size)
    raise InvalidStateError(
        f"measurement_type must be one of: {', '.join(MEASUREMENT_TYPES)}",
        details={"measurement_type": measurement_type},
    )


class Product(db.Model):
    """
    Catalog entry with its live stock level.

    STOCK INVARIANT: current_stock >= 0, enforced by CHECK and by every
    writer using conditional UPDATEs (see services/concurrency.py).

    LIFECYCLE: ACTIVE -> RETIRED, one way. Retired products disappear from
    listings, stock scans and sales, but stay referenced by sales lines.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_non_negative"),
        db.CheckConstraint("price_per_unit >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost_price >= 0", name="ck_products_cost_non_negative"),
        db.CheckConstraint(
            "(measurement_type = 'container' AND container_size IS NOT NULL)"
            " OR (measurement_type = 'scale' AND container_size IS NULL)",
            name="ck_products_container_size_matches_measurement",
        ),
        db.Index("ix_products_category_status", "category", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.String(1000), nullable=True)
    category = db.Column(db.String(16), nullable=False)

    measurement_type = db.Column(db.String(16), nullable=False)
    container_size = db.Column(db.String(16), nullable=True)

    price_per_unit = db.Column(db.Numeric(12, 2), nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)

    current_stock = db.Column(db.Numeric(12, 3), nullable=False, default=Decimal("0"))
    min_stock_level = db.Column(db.Numeric(12, 3), nullable=False, default=Decimal("0"))

    supplier = db.Column(db.String(200), nullable=True)
    barcode = db.Column(db.String(100), nullable=True, unique=True)

    status = db.Column(db.String(16), nullable=False, default=PRODUCT_ACTIVE, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    created_by = db.relationship("User", foreign_keys=[created_by_user_id])

    @validates("status")
    def _validate_status(self, key, value):
        if value not in (PRODUCT_ACTIVE, PRODUCT_RETIRED):
            raise InvalidStateError(f"Unknown product status {value!r}")
        if self.status == PRODUCT_RETIRED and value != PRODUCT_RETIRED:
            raise InvalidStateError("Retired products cannot be reactivated")
        return value

    @property
    def is_active(self) -> bool:
        return self.status != PRODUCT_RETIRED

    @property
    def measurement(self) -> Scale | Container:
        return measurement_from_fields(self.measurement_type, self.container_size)

    @measurement.setter
    def measurement(self, value: Scale | Container) -> None:
        self.measurement_type = value.kind
        self.container_size = value.size

    def retire(self) -> None:
        self.status = PRODUCT_RETIRED

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.current_stock} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "measurement_type": self.measurement_type,
            "container_size": self.container_size,
            "price_per_unit": _num(self.price_per_unit),
            "cost_price": _num(self.cost_price),
            "current_stock": _num(self.current_stock),
            "min_stock_level": _num(self.min_stock_level),
            "supplier": self.supplier,
            "barcode": self.barcode,
            "status": self.status,
            "is_active": self.is_active,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


def _num(value):
    return float(value) if value is not None else None


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def _check_measurement(mapper, connection, target: Product) -> None:
    # Columns are assigned one at a time, so the pair is only checked at flush.
    measurement_from_fields(target.measurement_type, target.container_size)
