from __future__ import annotations

from ..extensions import db
from stockbook.time_utils import to_iso_date, to_utc_z, utcnow
from .products import new_id


TYPE_IN = "IN"
TYPE_OUT = "OUT"
TRANSACTION_TYPES = (TYPE_IN, TYPE_OUT)

STATUS_SCHEDULED = "SCHEDULED"
STATUS_COMPLETED = "COMPLETED"
TRANSACTION_STATUSES = (STATUS_SCHEDULED, STATUS_COMPLETED)

# Categories are stored as the labels people type into the CSV.
CATEGORY_RESTOCK = "入荷"
CATEGORY_RETURN = "返品"
CATEGORY_AUDIT = "棚卸"
CATEGORY_SHIP = "出荷"
CATEGORY_RESEND = "再送"

CATEGORIES_BY_TYPE = {
    TYPE_IN: (CATEGORY_RESTOCK, CATEGORY_RETURN, CATEGORY_AUDIT),
    TYPE_OUT: (CATEGORY_SHIP, CATEGORY_RESEND, CATEGORY_AUDIT),
}


def default_category(tx_type: str) -> str:
    return CATEGORY_RESTOCK if tx_type == TYPE_IN else CATEGORY_SHIP


class Transaction(db.Model):
    """
    A single inbound (IN) or outbound (OUT) stock movement.

    LIFECYCLE:
    1. SCHEDULED: planned, no effect on stock or tracking items
    2. COMPLETED: stock and InventoryItem effects applied by the reconciler

    A COMPLETED transaction can be reverted to SCHEDULED, which reverses
    those effects.

    IDENTIFIERS:
    tracking_number (store-internal id), order_code and shipping_code are the
    three identifier slots copied onto InventoryItems. purchase_order_code,
    order_id, order_date and customer_name are pass-through columns.

    total_amount is the denormalized sum of quantity * price over items and
    is recomputed by every service that writes items.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_status_date", "status", "date"),
        db.Index("ix_transactions_tracking_number", "tracking_number"),
        db.Index("ix_transactions_order_id", "order_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    type = db.Column(db.String(8), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_SCHEDULED, index=True)
    category = db.Column(db.String(32), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)

    tracking_number = db.Column(db.String(255), nullable=True)
    order_code = db.Column(db.String(255), nullable=True)
    shipping_code = db.Column(db.String(255), nullable=True)

    purchase_order_code = db.Column(db.String(255), nullable=True)
    order_id = db.Column(db.String(255), nullable=True)
    order_date = db.Column(db.String(32), nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)

    partner_name = db.Column(db.String(255), nullable=True)
    total_amount = db.Column(db.Integer, nullable=False, default=0)
    memo = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "TransactionItem",
        backref="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type} status={self.status} date={self.date}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "category": self.category,
            "date": to_iso_date(self.date),
            "tracking_number": self.tracking_number,
            "order_code": self.order_code,
            "shipping_code": self.shipping_code,
            "purchase_order_code": self.purchase_order_code,
            "order_id": self.order_id,
            "order_date": self.order_date,
            "customer_name": self.customer_name,
            "partner_name": self.partner_name,
            "total_amount": self.total_amount,
            "memo": self.memo,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TransactionItem(db.Model):
    __tablename__ = "transaction_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    transaction_id = db.Column(
        db.String(36),
        db.ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    price = db.Column(db.Integer, nullable=False, default=0)
    # position within the transaction, 1-based
    line_no = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    product = db.relationship("Product", lazy="joined")

    @property
    def subtotal(self) -> int:
        return int(self.quantity or 0) * int(self.price or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "line_no": self.line_no,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_code": self.product.product_code if self.product else None,
            "quantity": self.quantity,
            "price": self.price,
            "subtotal": self.subtotal,
        }
