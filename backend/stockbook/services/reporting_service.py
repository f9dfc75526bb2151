# backend/stockbook/services/reporting_service.py
"""
Reporting Service

Read-only aggregates:
- net_stock: per product, COMPLETED IN quantity minus COMPLETED OUT quantity,
  computed from line items inner-joined to their transaction
- profit_summary: COMPLETED OUT totals (sales) against COMPLETED IN totals
  (cost) over an optional inclusive date range
- dashboard: product count, low-stock count, scheduled IN / OUT counts

net_stock is derived from the ledger of line items and is independent of
Product.current_stock, so the two can be compared to spot drift.
"""
from __future__ import annotations

from datetime import date

from flask import current_app

from ..models import (
    Product,
    Transaction,
    TransactionItem,
    TYPE_IN,
    TYPE_OUT,
    STATUS_SCHEDULED,
    STATUS_COMPLETED,
)
from ..validation import ValidationError
from stockbook.time_utils import parse_iso_date, to_iso_date
from .store import RecordStore

DEFAULT_LOW_STOCK_THRESHOLD = 5


def _completed_quantities(store: RecordStore, tx_type: str) -> dict[str, int]:
    totals: dict[str, int] = {}
    items = store.select_all(
        TransactionItem,
        join=Transaction,
        join_eq={"type": tx_type, "status": STATUS_COMPLETED},
    )
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + int(item.quantity or 0)
    return totals


def net_stock(*, search: str | None = None, store: RecordStore | None = None) -> dict:
    store = store or RecordStore()
    products = store.select_all(
        Product,
        order_by=["name"],
        search=(["name", "product_code"], search) if search else None,
    )
    totals_in = _completed_quantities(store, TYPE_IN)
    totals_out = _completed_quantities(store, TYPE_OUT)

    rows = []
    for p in products:
        total_in = totals_in.get(p.id, 0)
        total_out = totals_out.get(p.id, 0)
        rows.append({
            "product_id": p.id,
            "product_name": p.name,
            "product_code": p.product_code,
            "image_url": p.image_url,
            "total_in": total_in,
            "total_out": total_out,
            "net_stock": total_in - total_out,
            "current_stock": p.current_stock,
        })

    return {
        "items": rows,
        "count": len(rows),
        "totals": {
            "total_in": sum(r["total_in"] for r in rows),
            "total_out": sum(r["total_out"] for r in rows),
            "net_stock": sum(r["net_stock"] for r in rows),
        },
    }


def _coerce_date(value, field_name: str) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")


def profit_summary(
    *,
    date_from=None,
    date_to=None,
    store: RecordStore | None = None,
) -> dict:
    """
    Gross profit over [date_from, date_to]; either bound may be omitted.

    margin_percent is gross_profit / sales * 100, or 0.0 without sales.
    """
    store = store or RecordStore()
    start = _coerce_date(date_from, "date_from")
    end = _coerce_date(date_to, "date_to")
    if start and end and start > end:
        raise ValidationError("date_from must be on or before date_to")

    gte = {"date": start} if start else None
    lte = {"date": end} if end else None

    def _completed(tx_type: str) -> list[Transaction]:
        return store.select_all(
            Transaction,
            eq={"type": tx_type, "status": STATUS_COMPLETED},
            gte=gte,
            lte=lte,
        )

    inbound = _completed(TYPE_IN)
    outbound = _completed(TYPE_OUT)
    total_cost = sum(int(t.total_amount or 0) for t in inbound)
    total_sales = sum(int(t.total_amount or 0) for t in outbound)
    gross_profit = total_sales - total_cost
    margin = (gross_profit / total_sales) * 100 if total_sales > 0 else 0.0

    return {
        "date_from": to_iso_date(start),
        "date_to": to_iso_date(end),
        "total_sales": total_sales,
        "total_cost": total_cost,
        "gross_profit": gross_profit,
        "margin_percent": round(margin, 1),
        "in_count": len(inbound),
        "out_count": len(outbound),
    }


def dashboard(*, store: RecordStore | None = None) -> dict:
    store = store or RecordStore()
    threshold = int(current_app.config.get("LOW_STOCK_THRESHOLD", DEFAULT_LOW_STOCK_THRESHOLD))
    return {
        "total_products": store.count(Product),
        "low_stock_count": store.count(Product, lte={"current_stock": threshold}),
        "low_stock_threshold": threshold,
        "scheduled_in": store.count(Transaction, eq={"type": TYPE_IN, "status": STATUS_SCHEDULED}),
        "scheduled_out": store.count(Transaction, eq={"type": TYPE_OUT, "status": STATUS_SCHEDULED}),
    }
