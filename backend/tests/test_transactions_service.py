"""
Tests for the transaction lifecycle service.
"""

from datetime import date

import pytest

from stockbook.models import (
    InventoryItem,
    Product,
    Transaction,
    TransactionItem,
    STATUS_COMPLETED,
    STATUS_SCHEDULED,
    TYPE_IN,
    TYPE_OUT,
)
from stockbook.services import transactions_service
from stockbook.validation import ConflictError, NotFoundError, ValidationError


def _stock(db_session, product_id):
    return db_session.get(Product, product_id).current_stock


# =============================================================================
# CREATE / EDIT
# =============================================================================

class TestCreateTransaction:
    def test_create_scheduled_computes_total(self, db_session, store, widget, gadget):
        data = transactions_service.create_transaction(
            {"type": "IN", "date": "2024-01-05", "partner_name": "Supplier A"},
            [
                {"product_id": widget.id, "quantity": 2, "price": 100},
                {"product_id": gadget.id, "quantity": 1, "price": 250},
            ],
            store=store,
        )

        assert data["status"] == STATUS_SCHEDULED
        assert data["category"] == "入荷"
        assert data["total_amount"] == 450
        assert [i["line_no"] for i in data["items"]] == [1, 2]
        assert [i["product_name"] for i in data["items"]] == ["Widget", "Gadget"]
        # scheduled transactions do not touch stock
        assert _stock(db_session, widget.id) == 2

    def test_create_completed_reconciles(self, db_session, store, widget):
        data = transactions_service.create_transaction(
            {"type": "IN", "status": "COMPLETED", "date": "2024-01-05"},
            [{"product_id": widget.id, "quantity": 3, "price": 100}],
            store=store,
        )

        assert data["status"] == STATUS_COMPLETED
        assert data["reconcile"]["items_created"] == 3
        assert _stock(db_session, widget.id) == 5

    def test_requires_items(self, store, widget):
        with pytest.raises(ValidationError):
            transactions_service.create_transaction({"type": "IN"}, [], store=store)

    def test_unknown_product(self, store, widget):
        with pytest.raises(ValidationError, match="Unknown product_id"):
            transactions_service.create_transaction(
                {"type": "IN"}, [{"product_id": "missing", "quantity": 1, "price": 0}], store=store
            )

    def test_category_must_match_type(self, store, widget):
        with pytest.raises(ValidationError):
            transactions_service.create_transaction(
                {"type": "IN", "category": "出荷"},
                [{"product_id": widget.id, "quantity": 1, "price": 0}],
                store=store,
            )

    def test_date_defaults_to_today(self, store, widget):
        data = transactions_service.create_transaction(
            {"type": "OUT"}, [{"product_id": widget.id, "quantity": 1, "price": 180}], store=store
        )

        assert data["date"] == date.today().isoformat()
        assert data["category"] == "出荷"


class TestUpdateTransaction:
    def test_update_replaces_items(self, db_session, store, widget, gadget, make_transaction):
        tx = make_transaction(TYPE_IN, [(widget, 1, 100), (gadget, 1, 250)])

        data = transactions_service.update_transaction(
            tx.id,
            {"memo": "edited"},
            [{"product_id": gadget.id, "quantity": 4, "price": 200}],
            store=store,
        )

        assert data["memo"] == "edited"
        assert data["total_amount"] == 800
        assert len(data["items"]) == 1
        assert db_session.query(TransactionItem).filter_by(transaction_id=tx.id).count() == 1

    def test_completed_cannot_be_edited(self, store, widget, make_transaction):
        tx = make_transaction(TYPE_IN, [(widget, 1, 100)], status=STATUS_COMPLETED)

        with pytest.raises(ConflictError):
            transactions_service.update_transaction(
                tx.id, {}, [{"product_id": widget.id, "quantity": 1, "price": 100}], store=store
            )

    def test_missing_transaction(self, store, widget):
        with pytest.raises(NotFoundError):
            transactions_service.update_transaction(
                "missing", {}, [{"product_id": widget.id, "quantity": 1, "price": 100}], store=store
            )


# =============================================================================
# STATUS CHANGES
# =============================================================================

class TestCompleteAndRevert:
    def test_complete_then_revert_restores_stock(self, db_session, store, widget, make_transaction):
        tx = make_transaction(TYPE_IN, [(widget, 3, 100)])

        completed = transactions_service.complete_transaction(tx.id, store=store)
        assert completed["status"] == STATUS_COMPLETED
        assert _stock(db_session, widget.id) == 5
        assert db_session.query(InventoryItem).filter_by(in_transaction_id=tx.id).count() == 3

        reverted = transactions_service.revert_transaction(tx.id, store=store)
        assert reverted["status"] == STATUS_SCHEDULED
        assert reverted["reconcile"]["items_deleted"] == 3
        assert _stock(db_session, widget.id) == 2
        assert db_session.query(InventoryItem).filter_by(in_transaction_id=tx.id).count() == 0

    def test_complete_twice_conflicts(self, store, widget, make_transaction):
        tx = make_transaction(TYPE_IN, [(widget, 1, 100)])
        transactions_service.complete_transaction(tx.id, store=store)

        with pytest.raises(ConflictError):
            transactions_service.complete_transaction(tx.id, store=store)

    def test_revert_scheduled_conflicts(self, store, widget, make_transaction):
        tx = make_transaction(TYPE_IN, [(widget, 1, 100)])

        with pytest.raises(ConflictError):
            transactions_service.revert_transaction(tx.id, store=store)

    def test_out_completion_reports_shortfall(self, store, widget, make_transaction, make_stock_item):
        make_stock_item(widget, date(2024, 1, 1))
        tx = make_transaction(TYPE_OUT, [(widget, 2, 180)])

        data = transactions_service.complete_transaction(tx.id, store=store)

        assert data["reconcile"]["items_shipped"] == 1
        assert data["reconcile"]["shortfalls"] == [
            {"product_id": widget.id, "requested": 2, "shipped": 1}
        ]


# =============================================================================
# DUPLICATE / DELETE / LIST
# =============================================================================

class TestDuplicate:
    def test_duplicate_copies_lines_and_clears_identifiers(self, store, widget, make_transaction):
        tx = make_transaction(
            TYPE_OUT, [(widget, 2, 180)], status=STATUS_COMPLETED,
            tracking_number="TRK-1", order_code="ORD-1", partner_name="Customer A", memo="gift",
        )

        copy = transactions_service.duplicate_transaction(tx.id, today=date(2024, 5, 1), store=store)

        assert copy["id"] != tx.id
        assert copy["status"] == STATUS_SCHEDULED
        assert copy["date"] == "2024-05-01"
        assert copy["tracking_number"] is None
        assert copy["order_code"] is None
        assert copy["partner_name"] == "Customer A"
        assert copy["memo"] == "[複製] gift"
        assert copy["total_amount"] == 360
        assert [(i["product_id"], i["quantity"]) for i in copy["items"]] == [(widget.id, 2)]


class TestDelete:
    def test_delete_removes_items(self, db_session, store, widget, make_transaction):
        tx_id = make_transaction(TYPE_IN, [(widget, 1, 100)]).id

        transactions_service.delete_transaction(tx_id, store=store)

        assert db_session.get(Transaction, tx_id) is None
        assert db_session.query(TransactionItem).count() == 0

    def test_bulk_delete_ignores_unknown_ids(self, store, widget, make_transaction):
        a = make_transaction(TYPE_IN, [(widget, 1, 100)])
        b = make_transaction(TYPE_IN, [(widget, 1, 100)])

        deleted = transactions_service.bulk_delete_transactions([a.id, b.id, "missing", a.id], store=store)

        assert deleted == 2


class TestListTransactions:
    def test_filters_and_pagination(self, store, widget, gadget, make_transaction):
        make_transaction(TYPE_IN, [(widget, 1, 100)], tx_date=date(2024, 1, 1))
        make_transaction(TYPE_IN, [(gadget, 1, 250), (widget, 1, 100)], tx_date=date(2024, 1, 3))
        make_transaction(TYPE_OUT, [(widget, 1, 180)], tx_date=date(2024, 1, 2))

        result = transactions_service.list_transactions(tx_type="IN", page=1, per_page=1, store=store)

        assert result["pagination"]["total"] == 2
        assert result["pagination"]["has_next"] is True
        first = result["items"][0]
        assert first["date"] == "2024-01-03"
        assert first["item_count"] == 2
        assert first["first_product_name"] == "Gadget"

    def test_invalid_status(self, store):
        with pytest.raises(ValidationError):
            transactions_service.list_transactions(status="DONE", store=store)
