# Overview: Product CSV import (legacy and current layouts) and product CSV export.

from __future__ import annotations

from datetime import date

from flask import current_app

from ..models import Product
from ..validation import ValidationError
from .csv_codec import CsvDownload, build_download, decode_rows, parse_num
from .store import RecordStore


# Current layout: name, product code, barcode, cost, selling price, supplier, quantity, memo
PRODUCT_HEADER = ["商品名", "商品コード", "バーコード", "仕入価格", "販売価格", "仕入れ先", "数量", "メモ"]

# Legacy layout: name, barcode, quantity, unit price, memo
LEGACY_PRODUCT_HEADER = ["商品名", "管理バーコード", "現在庫", "単価", "メモ"]

PRODUCTS_EXPORT_PREFIX = "products"


def is_legacy_product_header(header: list[str]) -> bool:
    return len(header) <= 5 or header[:2] == LEGACY_PRODUCT_HEADER[:2]


def _cell(row: list[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


def _legacy_payload(row: list[str]) -> dict:
    unit_price = parse_num(_cell(row, 3))
    return {
        "name": _cell(row, 0),
        "product_code": None,
        "internal_barcode": _cell(row, 1) or None,
        "cost_price": unit_price,
        "selling_price": 0,
        "default_unit_price": unit_price,
        "supplier": None,
        "current_stock": parse_num(_cell(row, 2)),
        "memo": _cell(row, 4) or None,
    }


def _current_payload(row: list[str]) -> dict:
    cost_price = parse_num(_cell(row, 3))
    return {
        "name": _cell(row, 0),
        "product_code": _cell(row, 1) or None,
        "internal_barcode": _cell(row, 2) or None,
        "cost_price": cost_price,
        "selling_price": parse_num(_cell(row, 4)),
        "default_unit_price": cost_price,
        "supplier": _cell(row, 5) or None,
        "current_stock": parse_num(_cell(row, 6)),
        "memo": _cell(row, 7) or None,
    }


def build_product_payloads(rows: list[list[str]]) -> list[dict]:
    """Map decoded rows (header first) to product insert payloads."""
    if len(rows) < 2:
        raise ValidationError("CSV has no data rows")

    legacy = is_legacy_product_header(rows[0])
    to_payload = _legacy_payload if legacy else _current_payload
    return [to_payload(row) for row in rows[1:] if row and _cell(row, 0)]


def import_products_csv(text: str, *, store: RecordStore | None = None) -> int:
    """
    Insert one product per data row.

    No deduplication: an existing product with the same name or code is not
    updated, a second record is created.
    """
    store = store or RecordStore()
    payloads = build_product_payloads(decode_rows(text))
    if not payloads:
        raise ValidationError("No products to import")

    store.insert_many(Product, payloads)
    current_app.logger.info("Imported %d products from CSV", len(payloads))
    return len(payloads)


def export_products_csv(
    *,
    store: RecordStore | None = None,
    cancel=None,
    today: date | None = None,
) -> CsvDownload:
    store = store or RecordStore()
    rows: list[list] = [PRODUCT_HEADER]
    for page in store.iter_pages(Product, cancel=cancel, order_by=["name"]):
        for p in page:
            rows.append([
                p.name,
                p.product_code,
                p.internal_barcode,
                p.cost_price if p.cost_price is not None else (p.default_unit_price or 0),
                p.selling_price or 0,
                p.supplier,
                p.current_stock,
                p.memo,
            ])
    return build_download(PRODUCTS_EXPORT_PREFIX, rows, today=today)
