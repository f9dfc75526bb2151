# Overview: Transaction CSV import; rebuilds multi-row transactions and resolves product references.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterator

from flask import current_app

from ..models import (
    Product,
    Transaction,
    TransactionItem,
    TYPE_IN,
    TYPE_OUT,
    STATUS_SCHEDULED,
    STATUS_COMPLETED,
    default_category,
)
from ..validation import ValidationError
from stockbook.time_utils import parse_iso_date, today as local_today
from .csv_codec import decode_rows, parse_num
from .store import RecordStore
from .transactions_service import item_rows
"""
Transaction CSV Import (authoritative)

Current format (header row starts with 日付 and 区分/タイプ):
- Columns are looked up by header name; unknown and optional columns are
  tolerated and the first occurrence of a duplicated header wins.
- A row with a date opens a transaction ("base" row). A row with an empty
  date continues the most recent base and carries only product columns.
- Consecutive lines sharing (date, type, status, 管理番号, 注文コード) form one
  transaction. Rows of one transaction must be contiguous in the file; the
  same key appearing again later starts a separate transaction.
- Product references resolve by code, then by name, then code-as-name,
  then name-as-code (case-insensitive exact matches).
- Lines that do not resolve are skipped and reported. If nothing could be
  inserted the import fails; otherwise it succeeds with a warning.

Legacy format (anything else): fixed positional columns
type, status, category, date, tracking, order_code, shipping_code, partner,
amount, memo. Every row is its own transaction without line items.

Current-format transactions are always written as SCHEDULED; the status
column only separates transactions. Completing them later applies their
stock effects. Legacy rows keep the status from the file (they carry no
line items, so there is nothing to reconcile).
"""

HEADER_DATE = "日付"
HEADER_TYPE_NAMES = ("区分", "タイプ")

# field -> accepted header names
COLUMN_HEADERS: dict[str, tuple[str, ...]] = {
    "date": ("日付",),
    "type": ("区分", "タイプ"),
    "category": ("カテゴリ",),
    "status": ("ステータス",),
    "product_name": ("商品名",),
    "product_code": ("商品コード",),
    "quantity": ("数量",),
    "price": ("単価",),
    "partner_name": ("取引先",),
    "tracking_number": ("管理番号",),
    "order_code": ("注文コード",),
    "shipping_code": ("追跡コード",),
    "purchase_order_code": ("発注コード",),
    "order_date": ("注文日",),
    "customer_name": ("顧客名",),
    "order_id": ("注文ID",),
    "memo": ("メモ",),
}

TYPE_TOKENS = {
    "入庫": TYPE_IN, "入": TYPE_IN, "IN": TYPE_IN,
    "出庫": TYPE_OUT, "出": TYPE_OUT, "OUT": TYPE_OUT,
}
STATUS_TOKENS = {
    "完了": STATUS_COMPLETED, "COMPLETED": STATUS_COMPLETED,
    "予定": STATUS_SCHEDULED, "SCHEDULED": STATUS_SCHEDULED,
}

PASS_THROUGH_FIELDS = (
    "partner_name", "tracking_number", "order_code", "shipping_code",
    "purchase_order_code", "order_id", "order_date", "customer_name", "memo",
)


class TransactionImportError(ValidationError):
    """Raised when an import leaves nothing to insert; carries the skipped lines."""

    def __init__(self, message: str, skipped: list["UnresolvedLine"] | None = None):
        super().__init__(message)
        self.skipped = list(skipped or [])


@dataclass(frozen=True)
class UnresolvedLine:
    line_number: int
    label: str

    def describe(self) -> str:
        return f"line {self.line_number}: {self.label}"

    def to_dict(self) -> dict:
        return {"line_number": self.line_number, "label": self.label}


@dataclass
class TransactionImportResult:
    count: int
    skipped: list[UnresolvedLine] = field(default_factory=list)
    legacy_format: bool = False

    @property
    def level(self) -> str:
        return "warning" if self.skipped else "success"

    @property
    def message(self) -> str:
        if not self.skipped:
            return f"Imported {self.count} transactions"
        lines = "\n".join(s.describe() for s in self.skipped)
        return (
            f"Imported {self.count} transactions. "
            f"Skipped lines whose product was not found:\n{lines}"
        )

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "level": self.level,
            "message": self.message,
            "skipped": [s.to_dict() for s in self.skipped],
            "legacy_format": self.legacy_format,
        }


@dataclass(frozen=True)
class BaseFields:
    """Transaction-level fields captured from a row that has a date."""
    date: date
    type: str
    status: str
    category: str
    partner_name: str | None = None
    tracking_number: str | None = None
    order_code: str | None = None
    shipping_code: str | None = None
    purchase_order_code: str | None = None
    order_id: str | None = None
    order_date: str | None = None
    customer_name: str | None = None
    memo: str | None = None

    @property
    def group_key(self) -> tuple:
        return (self.date, self.type, self.status, self.tracking_number or "", self.order_code or "")


@dataclass(frozen=True)
class ParsedLine:
    line_number: int
    base: BaseFields
    product_name: str
    product_code: str
    quantity: int
    price: int

    @property
    def label(self) -> str:
        return self.product_name or self.product_code


@dataclass
class Cluster:
    base: BaseFields
    lines: list[ParsedLine] = field(default_factory=list)


# ----------------------------------------------------------------------
# token parsing
# ----------------------------------------------------------------------

def is_current_transaction_header(header: list[str]) -> bool:
    if len(header) < 2:
        return False
    return header[0].strip() == HEADER_DATE and header[1].strip() in HEADER_TYPE_NAMES


def parse_type(value: str | None) -> str:
    return TYPE_TOKENS.get((value or "").strip().upper(), TYPE_IN)


def parse_status(value: str | None) -> str:
    return STATUS_TOKENS.get((value or "").strip().upper(), STATUS_SCHEDULED)


class HeaderIndex:
    """Header name -> column position (first occurrence wins)."""

    def __init__(self, header: list[str]):
        positions: dict[str, int] = {}
        for idx, name in enumerate(header):
            positions.setdefault(name.strip(), idx)
        self.columns: dict[str, int] = {}
        for field_name, names in COLUMN_HEADERS.items():
            for name in names:
                if name in positions:
                    self.columns[field_name] = positions[name]
                    break

    def get(self, row: list[str], field_name: str) -> str:
        idx = self.columns.get(field_name)
        if idx is None or idx >= len(row):
            return ""
        return row[idx].strip()


def _is_blank(row: list[str]) -> bool:
    return not any(cell.strip() for cell in row)


# ----------------------------------------------------------------------
# current format
# ----------------------------------------------------------------------

def parse_lines(rows: list[list[str]]) -> tuple[list[ParsedLine], list[UnresolvedLine]]:
    """
    Walk data rows (rows[0] is the header) and produce one ParsedLine per
    row that names a product. Line numbers are 1-based with the header on
    line 1.
    """
    index = HeaderIndex(rows[0])
    parsed: list[ParsedLine] = []
    errors: list[UnresolvedLine] = []
    base: BaseFields | None = None
    base_invalid = False

    for line_number, row in enumerate(rows[1:], start=2):
        if _is_blank(row):
            continue

        raw_date = index.get(row, "date")
        product_name = index.get(row, "product_name")
        product_code = index.get(row, "product_code")

        if raw_date:
            try:
                tx_date = parse_iso_date(raw_date)
            except ValueError:
                errors.append(UnresolvedLine(line_number, f"invalid date {raw_date}"))
                base = None
                base_invalid = True
                continue

            tx_type = parse_type(index.get(row, "type"))
            values = {name: index.get(row, name) or None for name in PASS_THROUGH_FIELDS}
            base = BaseFields(
                date=tx_date,
                type=tx_type,
                status=parse_status(index.get(row, "status")),
                category=index.get(row, "category") or default_category(tx_type),
                **values,
            )
            base_invalid = False
        elif base_invalid:
            # continuation of a row already reported as invalid
            continue

        if base is None or not (product_name or product_code):
            continue

        parsed.append(
            ParsedLine(
                line_number=line_number,
                base=base,
                product_name=product_name,
                product_code=product_code,
                quantity=parse_num(index.get(row, "quantity")),
                price=parse_num(index.get(row, "price")),
            )
        )

    return parsed, errors


def group_lines(lines: list[ParsedLine]) -> list[Cluster]:
    """Merge consecutive lines that share a group key."""
    clusters: list[Cluster] = []
    current: Cluster | None = None
    for line in lines:
        if current is not None and current.base.group_key == line.base.group_key:
            current.lines.append(line)
            continue
        current = Cluster(base=line.base, lines=[line])
        clusters.append(current)
    return clusters


@dataclass
class ProductLookup:
    by_name: dict[str, str] = field(default_factory=dict)
    by_code: dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, store: RecordStore) -> "ProductLookup":
        lookup = cls()
        for page in store.iter_pages(Product, order_by=["created_at"]):
            for p in page:
                if p.name:
                    lookup.by_name.setdefault(p.name.strip().lower(), p.id)
                if p.product_code:
                    lookup.by_code.setdefault(p.product_code.strip().lower(), p.id)
        return lookup

    def resolve(self, name: str, code: str) -> str | None:
        name_key = (name or "").strip().lower()
        code_key = (code or "").strip().lower()
        candidates = (
            (self.by_code, code_key),
            (self.by_name, name_key),
            (self.by_name, code_key),
            (self.by_code, name_key),
        )
        for mapping, key in candidates:
            if key and key in mapping:
                return mapping[key]
        return None


def _resolve_cluster(
    cluster: Cluster,
    lookup: ProductLookup,
    unresolved: list[UnresolvedLine],
) -> list[dict]:
    resolved: list[dict] = []
    for line in cluster.lines:
        product_id = lookup.resolve(line.product_name, line.product_code)
        if product_id is None:
            if all(u.label != line.label for u in unresolved):
                unresolved.append(UnresolvedLine(line.line_number, line.label))
            continue
        resolved.append({
            "product_id": product_id,
            "quantity": line.quantity if line.quantity > 0 else 1,
            "price": line.price,
        })
    return resolved


def _transaction_payload(base: BaseFields, total_amount: int) -> dict:
    return {
        "type": base.type,
        "status": STATUS_SCHEDULED,
        "category": base.category,
        "date": base.date,
        "tracking_number": base.tracking_number,
        "order_code": base.order_code,
        "shipping_code": base.shipping_code,
        "purchase_order_code": base.purchase_order_code,
        "order_id": base.order_id,
        "order_date": base.order_date,
        "customer_name": base.customer_name,
        "partner_name": base.partner_name,
        "total_amount": total_amount,
        "memo": base.memo,
    }


def _import_current(rows: list[list[str]], store: RecordStore) -> TransactionImportResult:
    lines, unresolved = parse_lines(rows)
    if not lines and not unresolved:
        raise ValidationError("No transactions to import")

    lookup = ProductLookup.load(store)
    inserted = 0
    for cluster in group_lines(lines):
        items = _resolve_cluster(cluster, lookup, unresolved)
        if not items:
            continue

        total = sum(i["quantity"] * i["price"] for i in items)
        tx = store.insert(Transaction, _transaction_payload(cluster.base, total))
        store.insert_many(TransactionItem, item_rows(tx.id, items))
        inserted += 1

    if unresolved and inserted == 0:
        listing = "\n".join(u.describe() for u in unresolved)
        raise TransactionImportError(
            "Import failed: no transactions were created.\n"
            "These lines reference products that are not registered "
            "(use the exact product name or the product code):\n"
            f"{listing}",
            skipped=unresolved,
        )

    result = TransactionImportResult(count=inserted, skipped=unresolved)
    if unresolved:
        current_app.logger.warning(
            "Transaction import: %d inserted, %d lines skipped", inserted, len(unresolved)
        )
    else:
        current_app.logger.info("Transaction import: %d inserted", inserted)
    return result


# ----------------------------------------------------------------------
# legacy format
# ----------------------------------------------------------------------

def _legacy_rows(rows: list[list[str]]) -> Iterator[tuple[int, list[str]]]:
    for line_number, row in enumerate(rows[1:], start=2):
        if len(row) >= 4 and not _is_blank(row):
            yield line_number, row


def _legacy_cell(row: list[str], idx: int) -> str:
    return row[idx].strip() if idx < len(row) else ""


def _import_legacy(rows: list[list[str]], store: RecordStore) -> TransactionImportResult:
    payloads: list[dict[str, Any]] = []
    for line_number, row in _legacy_rows(rows):
        tx_type = parse_type(_legacy_cell(row, 0))
        try:
            tx_date = parse_iso_date(_legacy_cell(row, 3)) or local_today()
        except ValueError:
            raise ValidationError(f"line {line_number}: invalid date {_legacy_cell(row, 3)}")
        payloads.append({
            "type": tx_type,
            "status": parse_status(_legacy_cell(row, 1)),
            "category": _legacy_cell(row, 2) or default_category(tx_type),
            "date": tx_date,
            "tracking_number": _legacy_cell(row, 4) or None,
            "order_code": _legacy_cell(row, 5) or None,
            "shipping_code": _legacy_cell(row, 6) or None,
            "partner_name": _legacy_cell(row, 7) or None,
            "total_amount": parse_num(_legacy_cell(row, 8)),
            "memo": _legacy_cell(row, 9) or None,
        })

    if not payloads:
        raise ValidationError("No transactions to import")

    store.insert_many(Transaction, payloads)
    current_app.logger.info("Transaction import (legacy layout): %d inserted", len(payloads))
    return TransactionImportResult(count=len(payloads), legacy_format=True)


def import_transactions_csv(text: str, *, store: RecordStore | None = None) -> TransactionImportResult:
    store = store or RecordStore()
    rows = decode_rows(text)
    if len(rows) < 2:
        raise ValidationError("CSV has no data rows")
    if all(_is_blank(row) for row in rows[1:]):
        raise ValidationError("No transactions to import")

    if is_current_transaction_header(rows[0]):
        return _import_current(rows, store)
    return _import_legacy(rows, store)
