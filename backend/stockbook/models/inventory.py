from __future__ import annotations

from ..extensions import db
from stockbook.time_utils import to_iso_date, to_utc_z, utcnow
from .products import new_id


ITEM_IN_STOCK = "IN_STOCK"
ITEM_SHIPPED = "SHIPPED"
INVENTORY_ITEM_STATUSES = (ITEM_IN_STOCK, ITEM_SHIPPED)


class InventoryItem(db.Model):
    """
    Individual tracking record: one physical unit (or tracking-number batch).

    Created one-per-unit when an IN transaction completes; flipped to SHIPPED
    (oldest in_date first) when an OUT transaction completes.

    INVARIANT: status == SHIPPED iff out_transaction_id and out_date are set.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_product_status", "product_id", "status"),
        db.Index("ix_inventory_items_tracking_number", "tracking_number"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)

    tracking_number = db.Column(db.String(255), nullable=False)
    order_code = db.Column(db.String(255), nullable=True)
    shipping_code = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ITEM_IN_STOCK, index=True)

    in_transaction_id = db.Column(
        db.String(36),
        db.ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    out_transaction_id = db.Column(
        db.String(36),
        db.ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    in_date = db.Column(db.Date, nullable=False)
    out_date = db.Column(db.Date, nullable=True)

    partner_name = db.Column(db.String(255), nullable=True)
    memo = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", lazy="joined")

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} tracking={self.tracking_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "tracking_number": self.tracking_number,
            "order_code": self.order_code,
            "shipping_code": self.shipping_code,
            "status": self.status,
            "in_transaction_id": self.in_transaction_id,
            "out_transaction_id": self.out_transaction_id,
            "in_date": to_iso_date(self.in_date),
            "out_date": to_iso_date(self.out_date),
            "partner_name": self.partner_name,
            "memo": self.memo,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
