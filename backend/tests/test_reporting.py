"""
Tests for reporting, product and inventory read services.
"""

from datetime import date

import pytest

from stockbook.models import ITEM_SHIPPED, STATUS_COMPLETED, TYPE_IN, TYPE_OUT
from stockbook.services import inventory_service, products_service, reporting_service
from stockbook.validation import ConflictError, NotFoundError, ValidationError


# =============================================================================
# REPORTS
# =============================================================================

class TestNetStock:
    def test_only_completed_lines_count(self, store, widget, gadget, make_transaction):
        make_transaction(TYPE_IN, [(widget, 10, 100), (gadget, 2, 250)], status=STATUS_COMPLETED)
        make_transaction(TYPE_OUT, [(widget, 3, 180)], status=STATUS_COMPLETED)
        make_transaction(TYPE_OUT, [(widget, 50, 180)])  # scheduled

        report = reporting_service.net_stock(store=store)

        rows = {r["product_name"]: r for r in report["items"]}
        assert rows["Widget"]["total_in"] == 10
        assert rows["Widget"]["total_out"] == 3
        assert rows["Widget"]["net_stock"] == 7
        assert rows["Gadget"]["net_stock"] == 2
        assert report["totals"]["net_stock"] == 9

    def test_products_without_lines_are_listed(self, store, widget):
        report = reporting_service.net_stock(store=store)

        assert report["items"][0]["net_stock"] == 0

    def test_search(self, store, widget, gadget):
        report = reporting_service.net_stock(search="g-00", store=store)

        assert [r["product_name"] for r in report["items"]] == ["Gadget"]


class TestProfitSummary:
    def test_sales_minus_cost_in_range(self, store, widget, make_transaction):
        make_transaction(TYPE_IN, [(widget, 10, 100)], status=STATUS_COMPLETED, tx_date=date(2024, 1, 5))
        make_transaction(TYPE_OUT, [(widget, 5, 300)], status=STATUS_COMPLETED, tx_date=date(2024, 1, 20))
        make_transaction(TYPE_OUT, [(widget, 1, 999)], tx_date=date(2024, 1, 21))
        make_transaction(TYPE_OUT, [(widget, 1, 500)], status=STATUS_COMPLETED, tx_date=date(2024, 2, 1))

        summary = reporting_service.profit_summary(date_from="2024-01-01", date_to="2024-01-31", store=store)

        assert summary["total_cost"] == 1000
        assert summary["total_sales"] == 1500
        assert summary["gross_profit"] == 500
        assert summary["margin_percent"] == pytest.approx(33.3)
        assert summary["in_count"] == 1
        assert summary["out_count"] == 1

    def test_no_sales_margin_is_zero(self, store):
        summary = reporting_service.profit_summary(store=store)

        assert summary["total_sales"] == 0
        assert summary["margin_percent"] == 0.0

    def test_reversed_range(self, store):
        with pytest.raises(ValidationError):
            reporting_service.profit_summary(date_from="2024-02-01", date_to="2024-01-01", store=store)

    def test_bad_date(self, store):
        with pytest.raises(ValidationError):
            reporting_service.profit_summary(date_from="yesterday", store=store)


class TestDashboard:
    def test_counts(self, store, widget, gadget, make_product, make_transaction):
        make_product("Plenty", current_stock=50)
        make_transaction(TYPE_IN, [(widget, 1, 100)])
        make_transaction(TYPE_OUT, [(widget, 1, 100)])
        make_transaction(TYPE_OUT, [(widget, 1, 100)], status=STATUS_COMPLETED)

        data = reporting_service.dashboard(store=store)

        assert data["total_products"] == 3
        assert data["low_stock_count"] == 2
        assert data["scheduled_in"] == 1
        assert data["scheduled_out"] == 1


# =============================================================================
# PRODUCTS
# =============================================================================

class TestProductsService:
    def test_create_and_update(self, store):
        created = products_service.create_product(payload={"name": "Lamp", "cost_price": 900}, store=store)

        assert created["default_unit_price"] == 900
        updated = products_service.update_product(created["id"], payload={"memo": "desk"}, store=store)
        assert updated["memo"] == "desk"

    def test_negative_price_rejected(self, store):
        with pytest.raises(ValidationError):
            products_service.create_product(payload={"name": "Lamp", "cost_price": -1}, store=store)

    def test_barcode_lookup(self, store, widget):
        assert products_service.find_by_barcode("4900000000011", store=store)["id"] == widget.id
        assert products_service.find_by_barcode("W-001", store=store)["id"] == widget.id
        with pytest.raises(NotFoundError):
            products_service.find_by_barcode("nothing", store=store)

    def test_delete_referenced_product_conflicts(self, store, widget, make_transaction):
        make_transaction(TYPE_IN, [(widget, 1, 100)])

        with pytest.raises(ConflictError):
            products_service.delete_product(widget.id, store=store)

    def test_list_paginated(self, store, widget, gadget):
        result = products_service.list_products(page=1, per_page=1, store=store)

        assert result["items"][0]["name"] == "Gadget"
        assert result["pagination"]["total_pages"] == 2


# =============================================================================
# INVENTORY
# =============================================================================

class TestInventoryService:
    def test_tracking_lookup(self, store, widget, make_stock_item):
        make_stock_item(widget, date(2024, 1, 1), "TRK-1")
        make_stock_item(widget, date(2024, 1, 2), "TRK-1")

        items = inventory_service.find_by_tracking_number("TRK-1", store=store)

        assert len(items) == 2
        with pytest.raises(NotFoundError):
            inventory_service.find_by_tracking_number("TRK-404", store=store)

    def test_list_by_status(self, store, widget, make_stock_item):
        make_stock_item(widget, date(2024, 1, 1), "A")
        make_stock_item(widget, date(2024, 1, 2), "B", status=ITEM_SHIPPED, out_date=date(2024, 1, 3))

        shipped = inventory_service.list_inventory_items(status=ITEM_SHIPPED, store=store)

        assert [i.tracking_number for i in shipped] == ["B"]
        assert inventory_service.stock_summary(widget.id, store=store) == {"IN_STOCK": 1, "SHIPPED": 1}
        with pytest.raises(NotFoundError):
            inventory_service.stock_summary("missing", store=store)
