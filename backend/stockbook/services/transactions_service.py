# backend/stockbook/services/transactions_service.py
"""
Transactions Service

Lifecycle of IN/OUT transactions and their line items:
- create / edit keep total_amount equal to the sum of quantity * price
- edits replace every line item (delete all, insert again)
- complete / revert move the status and run the ledger reconciler
- duplicate copies a transaction into a new SCHEDULED one dated today

Only SCHEDULED transactions may be edited. A COMPLETED transaction has to be
reverted first so that its stock effects are undone before its lines change.
"""
from __future__ import annotations

from datetime import date

from ..models import (
    Product,
    Transaction,
    TransactionItem,
    STATUS_SCHEDULED,
    STATUS_COMPLETED,
    TRANSACTION_STATUSES,
    TRANSACTION_TYPES,
    default_category,
)
from ..validation import (
    TRANSACTION_POLICY,
    ConflictError,
    NotFoundError,
    ValidationError,
    enforce_rules_transaction,
    validate_line_items,
    validate_payload,
)
from stockbook.time_utils import today as local_today
from .ledger_service import (
    ItemInfo,
    ReconcileResult,
    TxInfo,
    apply_completed_transaction,
    revert_completed_transaction,
)
from .store import RecordStore

DUPLICATE_MEMO_PREFIX = "[複製]"

SORT_KEYS = {
    "date_desc": ["-date", "-created_at"],
    "date_asc": ["date", "created_at"],
    "amount_desc": ["-total_amount"],
    "amount_asc": ["total_amount"],
    "partner": ["partner_name"],
    "category": ["category"],
}

SEARCH_COLUMNS = [
    "partner_name", "tracking_number", "order_code", "shipping_code",
    "order_id", "customer_name", "memo", "category",
]


def _get_transaction(store: RecordStore, tx_id: str) -> Transaction:
    tx = store.get(Transaction, tx_id)
    if tx is None:
        raise NotFoundError("Transaction not found")
    return tx


def _load_items(store: RecordStore, tx_id: str) -> list[TransactionItem]:
    return store.select(TransactionItem, eq={"transaction_id": tx_id}, order_by=["line_no"])


def _require_products(store: RecordStore, items: list[dict]) -> None:
    product_ids = [i["product_id"] for i in items]
    found = {p.id for p in store.select_in(Product, "id", product_ids)}
    missing = [pid for pid in dict.fromkeys(product_ids) if pid not in found]
    if missing:
        raise ValidationError(f"Unknown product_id: {', '.join(missing)}")


def _total(items: list[dict]) -> int:
    return sum(i["quantity"] * i["price"] for i in items)


def item_rows(tx_id: str, lines: list[dict]) -> list[dict]:
    """Insert payloads for line items, numbered in the order given."""
    return [{**line, "transaction_id": tx_id, "line_no": n} for n, line in enumerate(lines, start=1)]


def _item_infos(items: list[TransactionItem]) -> list[ItemInfo]:
    return [ItemInfo(product_id=i.product_id, quantity=i.quantity) for i in items]


def serialize_transaction(store: RecordStore, tx: Transaction) -> dict:
    data = tx.to_dict()
    data["items"] = [i.to_dict() for i in _load_items(store, tx.id)]
    return data


def get_transaction(tx_id: str, *, store: RecordStore | None = None) -> dict:
    store = store or RecordStore()
    return serialize_transaction(store, _get_transaction(store, tx_id))


def list_transactions(
    *,
    status: str | None = None,
    tx_type: str | None = None,
    category: str | None = None,
    partner_name: str | None = None,
    search: str | None = None,
    sort: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    store: RecordStore | None = None,
) -> dict:
    """
    Filtered transaction listing with optional pagination.

    Returns dict with 'items', 'count', and pagination metadata if paginated.
    Each item carries item_count and the first product's name/code for
    list display.
    """
    store = store or RecordStore()
    if status is not None and status not in TRANSACTION_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(TRANSACTION_STATUSES)}")
    if tx_type is not None and tx_type not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of {', '.join(TRANSACTION_TYPES)}")

    eq: dict = {}
    if status:
        eq["status"] = status
    if tx_type:
        eq["type"] = tx_type
    if category:
        eq["category"] = category
    if partner_name:
        eq["partner_name"] = partner_name

    filters = {"eq": eq, "search": (SEARCH_COLUMNS, search) if search else None}
    order_by = SORT_KEYS.get(sort or "date_desc", SORT_KEYS["date_desc"])

    if page is None:
        txs = store.select_all(Transaction, order_by=order_by, **filters)
        pagination = None
    else:
        per_page = min(per_page or 20, 100)
        page = max(page, 1)
        total = store.count(Transaction, **filters)
        total_pages = (total + per_page - 1) // per_page if total > 0 else 1
        txs = store.select(
            Transaction,
            order_by=order_by,
            offset=(page - 1) * per_page,
            limit=per_page,
            **filters,
        )
        pagination = {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        }

    items = store.select_in(TransactionItem, "transaction_id", [t.id for t in txs], order_by=["line_no"])
    by_tx: dict[str, list[TransactionItem]] = {}
    for item in items:
        by_tx.setdefault(item.transaction_id, []).append(item)

    rows = []
    for tx in txs:
        data = tx.to_dict()
        tx_items = by_tx.get(tx.id, [])
        first = tx_items[0].product if tx_items else None
        data["item_count"] = len(tx_items)
        data["first_product_name"] = first.name if first else None
        data["first_product_code"] = first.product_code if first else None
        rows.append(data)

    result = {"items": rows, "count": len(rows)}
    if pagination is not None:
        result["pagination"] = pagination
    return result


def create_transaction(payload: dict, items: list, *, store: RecordStore | None = None) -> dict:
    """
    Create a transaction with its line items.

    A transaction created directly as COMPLETED is reconciled right after
    its items are written.
    """
    store = store or RecordStore()
    patch = validate_payload(model=Transaction, payload=payload, policy=TRANSACTION_POLICY, partial=False)
    enforce_rules_transaction(patch)
    lines = validate_line_items(items)
    _require_products(store, lines)

    status = patch.pop("status", None) or STATUS_SCHEDULED
    patch.setdefault("category", default_category(patch["type"]))
    if patch.get("date") is None:
        patch["date"] = local_today()

    tx = store.insert(
        Transaction,
        {**patch, "status": STATUS_SCHEDULED, "total_amount": _total(lines)},
    )
    store.insert_many(TransactionItem, item_rows(tx.id, lines))

    if status == STATUS_COMPLETED:
        return complete_transaction(tx.id, store=store)
    return serialize_transaction(store, tx)


def update_transaction(tx_id: str, payload: dict, items: list, *, store: RecordStore | None = None) -> dict:
    store = store or RecordStore()
    tx = _get_transaction(store, tx_id)
    if tx.status != STATUS_SCHEDULED:
        raise ConflictError("Only scheduled transactions can be edited; revert it first")

    patch = validate_payload(model=Transaction, payload=payload, policy=TRANSACTION_POLICY, partial=True)
    if "status" in patch and patch["status"] != STATUS_SCHEDULED:
        raise ValidationError("Use the complete action to change status")
    patch.pop("status", None)
    enforce_rules_transaction(patch, existing_type=tx.type)
    if "type" in patch and "category" not in patch and patch["type"] != tx.type:
        patch["category"] = default_category(patch["type"])
    if "date" in patch and patch["date"] is None:
        raise ValidationError("date cannot be null")

    lines = validate_line_items(items)
    _require_products(store, lines)

    store.update(Transaction, {**patch, "total_amount": _total(lines)}, eq={"id": tx_id})
    store.delete(TransactionItem, eq={"transaction_id": tx_id})
    store.insert_many(TransactionItem, item_rows(tx.id, lines))
    return get_transaction(tx_id, store=store)


def complete_transaction(tx_id: str, *, store: RecordStore | None = None) -> dict:
    """SCHEDULED -> COMPLETED: apply stock/tracking effects, then write the status."""
    store = store or RecordStore()
    tx = _get_transaction(store, tx_id)
    if tx.status != STATUS_SCHEDULED:
        raise ConflictError("Transaction is already completed")

    reconcile = apply_completed_transaction(
        tx.id, TxInfo.from_transaction(tx), _item_infos(_load_items(store, tx.id)), store=store
    )
    store.update(Transaction, {"status": STATUS_COMPLETED}, eq={"id": tx_id})
    return _with_reconcile(store, tx_id, reconcile)


def revert_transaction(tx_id: str, *, store: RecordStore | None = None) -> dict:
    """COMPLETED -> SCHEDULED: reverse stock/tracking effects, then write the status."""
    store = store or RecordStore()
    tx = _get_transaction(store, tx_id)
    if tx.status != STATUS_COMPLETED:
        raise ConflictError("Transaction is not completed")

    reconcile = revert_completed_transaction(
        tx.id, TxInfo.from_transaction(tx), _item_infos(_load_items(store, tx.id)), store=store
    )
    store.update(Transaction, {"status": STATUS_SCHEDULED}, eq={"id": tx_id})
    return _with_reconcile(store, tx_id, reconcile)


def _with_reconcile(store: RecordStore, tx_id: str, reconcile: ReconcileResult) -> dict:
    data = get_transaction(tx_id, store=store)
    data["reconcile"] = reconcile.to_dict()
    return data


def duplicate_transaction(tx_id: str, *, today: date | None = None, store: RecordStore | None = None) -> dict:
    """
    Copy a transaction into a new SCHEDULED one.

    Type, category, partner, customer and line items are copied. The date
    is reset to today and the identifier fields are cleared.
    """
    store = store or RecordStore()
    src = _get_transaction(store, tx_id)
    src_items = _load_items(store, tx_id)
    lines = [{"product_id": i.product_id, "quantity": i.quantity, "price": i.price} for i in src_items]

    memo = f"{DUPLICATE_MEMO_PREFIX} {src.memo}" if src.memo else DUPLICATE_MEMO_PREFIX
    new_tx = store.insert(
        Transaction,
        {
            "type": src.type,
            "status": STATUS_SCHEDULED,
            "category": src.category,
            "date": today or local_today(),
            "tracking_number": None,
            "order_code": None,
            "shipping_code": None,
            "purchase_order_code": None,
            "order_id": None,
            "order_date": None,
            "customer_name": src.customer_name,
            "partner_name": src.partner_name,
            "total_amount": _total(lines),
            "memo": memo,
        },
    )
    if lines:
        store.insert_many(TransactionItem, item_rows(new_tx.id, lines))
    return serialize_transaction(store, new_tx)


def delete_transaction(tx_id: str, *, store: RecordStore | None = None) -> None:
    """Delete a transaction and its line items (items first)."""
    store = store or RecordStore()
    _get_transaction(store, tx_id)
    store.delete(TransactionItem, eq={"transaction_id": tx_id})
    store.delete(Transaction, eq={"id": tx_id})


def bulk_delete_transactions(tx_ids: list[str], *, store: RecordStore | None = None) -> int:
    store = store or RecordStore()
    deleted = 0
    for tx_id in dict.fromkeys(tx_ids):
        if store.get(Transaction, tx_id) is None:
            continue
        store.delete(TransactionItem, eq={"transaction_id": tx_id})
        deleted += store.delete(Transaction, eq={"id": tx_id})
    return deleted
