from __future__ import annotations

import uuid

from ..extensions import db
from stockbook.time_utils import to_utc_z, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class Product(db.Model):
    """
    Product master data.

    STOCK DESIGN DECISION:
    current_stock is a cached, denormalized counter. It is only moved by the
    ledger reconciler when a transaction is completed or reverted, so it
    should always equal the net of COMPLETED line items for the product.
    Nothing in the schema enforces that; it may go negative on apply.

    PRICES:
    cost_price / selling_price are whole yen. default_unit_price is the single
    price column of the legacy product layout and is kept in step with
    cost_price on import.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_product_code", "product_code"),
        db.Index("ix_products_internal_barcode", "internal_barcode"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(255), nullable=False)
    product_code = db.Column(db.String(128), nullable=True)
    internal_barcode = db.Column(db.String(128), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    cost_price = db.Column(db.Integer, nullable=False, default=0)
    selling_price = db.Column(db.Integer, nullable=False, default=0)
    default_unit_price = db.Column(db.Integer, nullable=False, default=0)

    supplier = db.Column(db.String(255), nullable=True)
    current_stock = db.Column(db.Integer, nullable=False, default=0)
    memo = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "product_code": self.product_code,
            "internal_barcode": self.internal_barcode,
            "image_url": self.image_url,
            "cost_price": self.cost_price,
            "selling_price": self.selling_price,
            "default_unit_price": self.default_unit_price,
            "supplier": self.supplier,
            "current_stock": self.current_stock,
            "memo": self.memo,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
