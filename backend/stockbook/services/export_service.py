# Overview: CSV exports for transactions (detail report + import template) and tracking items (stock report).

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
    ITEM_IN_STOCK,
    ITEM_SHIPPED,
)
from stockbook.time_utils import to_iso_date, today as local_today
from .csv_codec import CsvDownload, build_download
from .inventory_service import list_inventory_items
from .store import RecordStore

TRANSACTION_REPORT_PREFIX = "transaction_report"
STOCK_REPORT_PREFIX = "stock_report"
TEMPLATE_PREFIX = "transactions_template"

TRANSACTION_REPORT_HEADER = [
    "日付", "区分", "カテゴリ", "ステータス", "商品名", "商品コード", "数量", "単価", "小計",
    "合計金額", "取引先", "管理番号", "注文コード", "追跡コード", "発注コード", "注文日",
    "顧客名", "注文ID", "メモ",
]

STOCK_REPORT_HEADER = [
    "商品名", "管理番号", "注文コード", "追跡コード", "ステータス", "入庫日", "出荷日", "取引先", "メモ",
]

TEMPLATE_HEADER = [
    "日付", "区分", "カテゴリ", "商品名", "数量", "単価", "取引先", "管理番号", "注文コード", "追跡コード", "メモ",
]

TYPE_LABELS = {TYPE_IN: "入庫", TYPE_OUT: "出庫"}
STATUS_LABELS = {STATUS_SCHEDULED: "予定", STATUS_COMPLETED: "完了"}
ITEM_STATUS_LABELS = {ITEM_IN_STOCK: "入荷済", ITEM_SHIPPED: "出荷済"}

TEMPLATE_SAMPLE_PRODUCTS = 3
TEMPLATE_GUIDE_NAME = "※ここに登録済みの商品名を入力"


def _report_rows(tx: Transaction, items: list[TransactionItem], products: dict[str, Product]) -> list[list]:
    head = [
        to_iso_date(tx.date),
        TYPE_LABELS[tx.type],
        tx.category,
        STATUS_LABELS[tx.status],
    ]
    tail = [
        tx.total_amount,
        tx.partner_name,
        tx.tracking_number,
        tx.order_code,
        tx.shipping_code,
        tx.purchase_order_code,
        tx.order_date,
        tx.customer_name,
        tx.order_id,
        tx.memo,
    ]
    if not items:
        return [head + ["", "", "", "", ""] + tail]

    rows = []
    for idx, item in enumerate(items):
        product = products.get(item.product_id)
        product_cells = [
            product.name if product else "",
            product.product_code if product else "",
            item.quantity,
            item.price,
            item.quantity * item.price,
        ]
        if idx == 0:
            rows.append(head + product_cells + tail)
        else:
            rows.append([""] * len(head) + product_cells + [""] * len(tail))
    return rows


def export_transactions_csv(
    *,
    store: RecordStore | None = None,
    cancel=None,
    today: date | None = None,
) -> CsvDownload:
    """
    Transaction detail report, newest first.

    One row per line item. The first row of a transaction carries its
    fields; continuation rows only carry product columns, which is the
    layout the transaction importer groups back together.

    Transactions are fetched a page at a time; their items and products
    are fetched in id chunks. `cancel` is checked before every fetch and
    raises ExportCancelled when set.
    """
    store = store or RecordStore()
    rows: list[list] = [TRANSACTION_REPORT_HEADER]
    tx_count = 0

    for page in store.iter_pages(Transaction, cancel=cancel, order_by=["-date", "-created_at"]):
        items = store.select_in(
            TransactionItem,
            "transaction_id",
            [t.id for t in page],
            cancel=cancel,
            order_by=["line_no"],
        )
        products = {
            p.id: p
            for p in store.select_in(Product, "id", [i.product_id for i in items], cancel=cancel)
        }
        by_tx: dict[str, list[TransactionItem]] = {}
        for item in items:
            by_tx.setdefault(item.transaction_id, []).append(item)

        for tx in page:
            rows.extend(_report_rows(tx, by_tx.get(tx.id, []), products))
        tx_count += len(page)

    current_app.logger.info("Exported %d transactions (%d rows)", tx_count, len(rows) - 1)
    return build_download(TRANSACTION_REPORT_PREFIX, rows, today=today)


def export_stock_report_csv(
    *,
    status: str | None = None,
    search: str | None = None,
    store: RecordStore | None = None,
    cancel=None,
    today: date | None = None,
) -> CsvDownload:
    """Tracking items as a stock report, filtered like the inventory listing."""
    store = store or RecordStore()
    items = list_inventory_items(status=status, search=search, store=store, cancel=cancel)
    products = {
        p.id: p
        for p in store.select_in(Product, "id", [i.product_id for i in items], cancel=cancel)
    }

    rows: list[list] = [STOCK_REPORT_HEADER]
    for item in items:
        product = products.get(item.product_id)
        rows.append([
            product.name if product else "",
            item.tracking_number,
            item.order_code,
            item.shipping_code,
            ITEM_STATUS_LABELS[item.status],
            to_iso_date(item.in_date),
            to_iso_date(item.out_date) or "",
            item.partner_name,
            item.memo,
        ])
    return build_download(STOCK_REPORT_PREFIX, rows, today=today)


def _price(*values) -> int:
    for value in values:
        if value is not None:
            return int(value)
    return 0


def export_template_csv(*, store: RecordStore | None = None, today: date | None = None) -> CsvDownload:
    """
    Import template built from registered product names.

    Up to three IN sample rows (quantity 1..3 at cost price) and one OUT
    sample for the first product at selling price. Without products a
    single guide row is written instead.
    """
    store = store or RecordStore()
    day = to_iso_date(today or local_today())
    products = store.select(Product, order_by=["name"], limit=TEMPLATE_SAMPLE_PRODUCTS)

    rows: list[list] = [TEMPLATE_HEADER]
    if not products:
        rows.append([day, "入庫", "入荷", TEMPLATE_GUIDE_NAME, 1, 1000, "仕入先名", "TRK-001", "ORD-001", "SHP-001", "メモ"])
        return build_download(TEMPLATE_PREFIX, rows, today=today)

    for n, p in enumerate(products, start=1):
        rows.append([
            day, "入庫", "入荷", p.name, n, _price(p.cost_price, p.default_unit_price),
            "仕入先サンプル", f"TRK-00{n}", f"ORD-00{n}", f"SHP-00{n}", "サンプルデータ",
        ])
    first = products[0]
    rows.append([
        day, "出庫", "出荷", first.name, 1, _price(first.selling_price, first.default_unit_price),
        "顧客サンプル", "TRK-010", "ORD-010", "SHP-010", "出荷サンプル",
    ])
    return build_download(TEMPLATE_PREFIX, rows, today=today)
