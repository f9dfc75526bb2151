# Overview: Stock ledger reconciliation; applies or reverses a transaction's stock and tracking-item effects.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..models import InventoryItem, Product, TYPE_IN, ITEM_IN_STOCK, ITEM_SHIPPED
from .store import RecordStore
"""
Stock Ledger Invariants (authoritative)

- Product.current_stock is a cached counter; it equals the net quantity of
  COMPLETED line items only because every status transition goes through
  apply / revert here.
- Apply (SCHEDULED -> COMPLETED):
    stock += qty for IN, stock -= qty for OUT (no clamp, may go negative).
    IN creates one IN_STOCK InventoryItem per unit.
    OUT ships the oldest IN_STOCK items of the product (in_date ascending);
    when fewer exist only those are shipped.
- Revert (COMPLETED -> SCHEDULED):
    mirror delta, clamped at 0.
    IN deletes the items this transaction created.
    OUT returns this transaction's SHIPPED items to IN_STOCK.
- Best effort, not transactional: a stock read/write that fails (missing
  product, store error) skips that line and is reported in the result.
  InventoryItem writes are not guarded and propagate.
"""


@dataclass(frozen=True)
class TxInfo:
    type: str
    date: date
    tracking_number: str | None = None
    order_code: str | None = None
    shipping_code: str | None = None
    partner_name: str | None = None

    @classmethod
    def from_transaction(cls, tx) -> "TxInfo":
        return cls(
            type=tx.type,
            date=tx.date,
            tracking_number=tx.tracking_number,
            order_code=tx.order_code,
            shipping_code=tx.shipping_code,
            partner_name=tx.partner_name,
        )


@dataclass(frozen=True)
class ItemInfo:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class SkippedLine:
    product_id: str
    reason: str


@dataclass(frozen=True)
class Shortfall:
    product_id: str
    requested: int
    shipped: int


@dataclass
class ReconcileResult:
    stock_updates: int = 0
    items_created: int = 0
    items_shipped: int = 0
    items_deleted: int = 0
    items_restocked: int = 0
    skipped: list[SkippedLine] = field(default_factory=list)
    shortfalls: list[Shortfall] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped and not self.shortfalls

    def to_dict(self) -> dict:
        return {
            "stock_updates": self.stock_updates,
            "items_created": self.items_created,
            "items_shipped": self.items_shipped,
            "items_deleted": self.items_deleted,
            "items_restocked": self.items_restocked,
            "skipped": [{"product_id": s.product_id, "reason": s.reason} for s in self.skipped],
            "shortfalls": [
                {"product_id": s.product_id, "requested": s.requested, "shipped": s.shipped}
                for s in self.shortfalls
            ],
        }


def fallback_tracking_number(tx_id: str, sequence: int) -> str:
    """Tracking number for a unit whose transaction carries none."""
    return f"{tx_id[:8]}-{sequence}"


def _adjust_stock(
    store: RecordStore,
    items: Iterable[ItemInfo],
    *,
    sign: int,
    clamp_at_zero: bool,
    result: ReconcileResult,
) -> None:
    for item in items:
        try:
            product = store.get(Product, item.product_id)
            if product is None:
                result.skipped.append(SkippedLine(item.product_id, "product not found"))
                current_app.logger.warning(
                    "Stock update skipped: product %s not found", item.product_id
                )
                continue
            new_stock = int(product.current_stock or 0) + sign * int(item.quantity)
            if clamp_at_zero:
                new_stock = max(0, new_stock)
            store.update(Product, {"current_stock": new_stock}, eq={"id": item.product_id})
            result.stock_updates += 1
        except SQLAlchemyError as exc:
            result.skipped.append(SkippedLine(item.product_id, str(exc)))
            current_app.logger.warning(
                "Stock update skipped for product %s: %s", item.product_id, exc
            )


def apply_completed_transaction(
    tx_id: str,
    tx: TxInfo,
    items: list[ItemInfo],
    *,
    store: RecordStore | None = None,
) -> ReconcileResult:
    store = store or RecordStore()
    result = ReconcileResult()
    sign = 1 if tx.type == TYPE_IN else -1
    _adjust_stock(store, items, sign=sign, clamp_at_zero=False, result=result)

    if tx.type == TYPE_IN:
        inserts: list[dict] = []
        sequence = 0
        for item in items:
            for _ in range(int(item.quantity)):
                sequence += 1
                inserts.append({
                    "product_id": item.product_id,
                    "tracking_number": tx.tracking_number or fallback_tracking_number(tx_id, sequence),
                    "order_code": tx.order_code or None,
                    "shipping_code": tx.shipping_code or None,
                    "status": ITEM_IN_STOCK,
                    "in_transaction_id": tx_id,
                    "in_date": tx.date,
                    "partner_name": tx.partner_name or None,
                })
        if inserts:
            store.insert_many(InventoryItem, inserts)
        result.items_created = len(inserts)
        return result

    for item in items:
        stock_items = store.select(
            InventoryItem,
            eq={"product_id": item.product_id, "status": ITEM_IN_STOCK},
            order_by=["in_date", "created_at"],
            limit=int(item.quantity),
        )
        shipped = 0
        if stock_items:
            shipped = store.update(
                InventoryItem,
                {
                    "status": ITEM_SHIPPED,
                    "out_transaction_id": tx_id,
                    "out_date": tx.date,
                    "shipping_code": tx.shipping_code or None,
                    "order_code": tx.order_code or None,
                },
                in_={"id": [si.id for si in stock_items]},
            )
        result.items_shipped += shipped
        if shipped < int(item.quantity):
            result.shortfalls.append(Shortfall(item.product_id, int(item.quantity), shipped))
    return result


def revert_completed_transaction(
    tx_id: str,
    tx: TxInfo,
    items: list[ItemInfo],
    *,
    store: RecordStore | None = None,
) -> ReconcileResult:
    store = store or RecordStore()
    result = ReconcileResult()
    sign = -1 if tx.type == TYPE_IN else 1
    _adjust_stock(store, items, sign=sign, clamp_at_zero=True, result=result)

    if tx.type == TYPE_IN:
        result.items_deleted = store.delete(InventoryItem, eq={"in_transaction_id": tx_id})
    else:
        result.items_restocked = store.update(
            InventoryItem,
            {
                "status": ITEM_IN_STOCK,
                "out_transaction_id": None,
                "out_date": None,
                "shipping_code": None,
            },
            eq={"out_transaction_id": tx_id},
        )
    return result
