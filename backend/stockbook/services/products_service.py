# backend/stockbook/services/products_service.py
"""
Products Service

- list_products supports search and optional pagination
- create_product / update_product validate through PRODUCT_POLICY
- delete_product refuses while any line item or tracking item references it

current_stock is writable on create (opening stock) but is otherwise moved
only by the ledger reconciler.
"""
from __future__ import annotations

from ..models import InventoryItem, Product, TransactionItem
from ..validation import (
    PRODUCT_POLICY,
    ConflictError,
    NotFoundError,
    enforce_rules_product,
    validate_payload,
)
from .store import RecordStore

PRODUCT_SEARCH_COLUMNS = ["name", "product_code", "internal_barcode", "supplier", "memo"]


def _get_product(store: RecordStore, product_id: str) -> Product:
    product = store.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def list_products(
    *,
    search: str | None = None,
    supplier: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    store: RecordStore | None = None,
) -> dict:
    """
    Product listing ordered by name, with optional pagination.

    Args:
        search: case-insensitive substring over name, codes, supplier, memo
        supplier: exact supplier filter
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    store = store or RecordStore()
    filters = {
        "eq": {"supplier": supplier} if supplier else None,
        "search": (PRODUCT_SEARCH_COLUMNS, search) if search else None,
    }
    order_by = ["name"]

    if page is None:
        products = store.select_all(Product, order_by=order_by, **filters)
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = store.count(Product, **filters)
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    products = store.select(
        Product,
        order_by=order_by,
        offset=(page - 1) * per_page,
        limit=per_page,
        **filters,
    )

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: str, *, store: RecordStore | None = None) -> dict:
    store = store or RecordStore()
    return _get_product(store, product_id).to_dict()


def find_by_barcode(code: str, *, store: RecordStore | None = None) -> dict:
    """Scanner lookup: internal barcode first, then product code."""
    store = store or RecordStore()
    code = (code or "").strip()
    for column in ("internal_barcode", "product_code"):
        matches = store.select(Product, eq={column: code}, order_by=["created_at"], limit=1)
        if matches:
            return matches[0].to_dict()
    raise NotFoundError(f"No product with barcode {code!r}")


def create_product(*, payload: dict, store: RecordStore | None = None) -> dict:
    store = store or RecordStore()
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    if "cost_price" in patch and "default_unit_price" not in patch:
        patch["default_unit_price"] = patch["cost_price"]
    return store.insert(Product, patch).to_dict()


def update_product(product_id: str, *, payload: dict, store: RecordStore | None = None) -> dict:
    store = store or RecordStore()
    _get_product(store, product_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    if patch:
        store.update(Product, patch, eq={"id": product_id})
    return get_product(product_id, store=store)


def delete_product(product_id: str, *, store: RecordStore | None = None) -> None:
    store = store or RecordStore()
    _get_product(store, product_id)
    if store.count(TransactionItem, eq={"product_id": product_id}):
        raise ConflictError("Product is used by transactions and cannot be deleted")
    if store.count(InventoryItem, eq={"product_id": product_id}):
        raise ConflictError("Product has tracking items and cannot be deleted")
    store.delete(Product, eq={"id": product_id})
