# Overview: Read side of individual tracking items (InventoryItem).

from __future__ import annotations

from ..models import InventoryItem, Product, INVENTORY_ITEM_STATUSES
from ..validation import NotFoundError, ValidationError
from .store import RecordStore

ITEM_SEARCH_COLUMNS = ["tracking_number", "order_code", "shipping_code", "partner_name", "memo"]


def list_inventory_items(
    *,
    status: str | None = None,
    product_id: str | None = None,
    search: str | None = None,
    store: RecordStore | None = None,
    cancel=None,
) -> list[InventoryItem]:
    """Tracking items, newest inbound first."""
    store = store or RecordStore()
    if status is not None and status not in INVENTORY_ITEM_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(INVENTORY_ITEM_STATUSES)}")

    eq: dict = {}
    if status:
        eq["status"] = status
    if product_id:
        eq["product_id"] = product_id
    return store.select_all(
        InventoryItem,
        cancel=cancel,
        order_by=["-in_date", "-created_at"],
        eq=eq,
        search=(ITEM_SEARCH_COLUMNS, search) if search else None,
    )


def find_by_tracking_number(tracking_number: str, *, store: RecordStore | None = None) -> list[dict]:
    """
    All tracking items carrying this number.

    Several units share a number when the inbound transaction had an
    explicit tracking number.
    """
    store = store or RecordStore()
    items = store.select(
        InventoryItem,
        eq={"tracking_number": (tracking_number or "").strip()},
        order_by=["in_date", "created_at"],
    )
    if not items:
        raise NotFoundError(f"No tracking item {tracking_number!r}")
    return [i.to_dict() for i in items]


def stock_summary(product_id: str, *, store: RecordStore | None = None) -> dict:
    """Tracking item count per status for one product."""
    store = store or RecordStore()
    if store.get(Product, product_id) is None:
        raise NotFoundError(f"Product {product_id} not found")
    return {
        status: store.count(InventoryItem, eq={"product_id": product_id, "status": status})
        for status in INVENTORY_ITEM_STATUSES
    }
