"""
HTTP route tests: status codes, error mapping and CSV attachments.
"""

import io
from datetime import date

from stockbook.models import STATUS_COMPLETED, TYPE_IN, TYPE_OUT


# =============================================================================
# SYSTEM
# =============================================================================

class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json["status"] == "healthy"


# =============================================================================
# PRODUCTS
# =============================================================================

class TestProductRoutes:
    def test_create_and_get(self, client):
        response = client.post("/api/products", json={"name": "Lamp", "product_code": "L-1"})
        assert response.status_code == 201
        product_id = response.json["id"]

        response = client.get(f"/api/products/{product_id}")
        assert response.status_code == 200
        assert response.json["product_code"] == "L-1"

    def test_validation_error_is_400(self, client):
        response = client.post("/api/products", json={"product_code": "no-name"})

        assert response.status_code == 400
        assert "name" in response.json["error"]

    def test_unknown_product_is_404(self, client):
        assert client.get("/api/products/missing").status_code == 404

    def test_delete_referenced_is_409(self, client, widget, make_transaction):
        make_transaction(TYPE_IN, [(widget, 1, 100)])

        response = client.delete(f"/api/products/{widget.id}")

        assert response.status_code == 409

    def test_barcode_lookup(self, client, widget):
        response = client.get("/api/products/barcode/4900000000011")

        assert response.status_code == 200
        assert response.json["name"] == "Widget"

    def test_import_multipart(self, client):
        csv_bytes = "商品名,管理バーコード,現在庫,単価,メモ\nPen,BC-1,7,120,\n".encode("utf-8")

        response = client.post(
            "/api/products/import",
            data={"file": (io.BytesIO(csv_bytes), "products.csv")},
            content_type="multipart/form-data",
        )

        assert response.status_code == 201
        assert response.json["count"] == 1

    def test_import_empty_body_is_400(self, client):
        response = client.post("/api/products/import", data=b"", content_type="text/csv")

        assert response.status_code == 400

    def test_export_is_attachment(self, client, widget):
        response = client.get("/api/products/export")

        assert response.status_code == 200
        assert response.headers["Content-Type"].startswith("text/csv")
        assert "attachment" in response.headers["Content-Disposition"]
        assert f"products_{date.today():%Y%m%d}.csv" in response.headers["Content-Disposition"]
        assert response.data.startswith(b"\xef\xbb\xbf")


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TestTransactionRoutes:
    def test_create_complete_revert(self, client, widget):
        response = client.post("/api/transactions", json={
            "type": "IN",
            "date": "2024-01-05",
            "items": [{"product_id": widget.id, "quantity": 3, "price": 100}],
        })
        assert response.status_code == 201
        tx_id = response.json["id"]

        response = client.post(f"/api/transactions/{tx_id}/complete")
        assert response.status_code == 200
        assert response.json["reconcile"]["items_created"] == 3
        assert client.get(f"/api/products/{widget.id}").json["current_stock"] == 5

        assert client.post(f"/api/transactions/{tx_id}/complete").status_code == 409

        response = client.post(f"/api/transactions/{tx_id}/revert")
        assert response.status_code == 200
        assert client.get(f"/api/products/{widget.id}").json["current_stock"] == 2

    def test_edit_completed_is_409(self, client, widget, make_transaction):
        tx = make_transaction(TYPE_OUT, [(widget, 1, 180)], status=STATUS_COMPLETED)

        response = client.put(f"/api/transactions/{tx.id}", json={
            "items": [{"product_id": widget.id, "quantity": 2, "price": 180}],
        })

        assert response.status_code == 409

    def test_missing_items_is_400(self, client):
        response = client.post("/api/transactions", json={"type": "IN"})

        assert response.status_code == 400

    def test_duplicate_and_bulk_delete(self, client, widget, make_transaction):
        tx = make_transaction(TYPE_IN, [(widget, 1, 100)])

        response = client.post(f"/api/transactions/{tx.id}/duplicate")
        assert response.status_code == 201
        copy_id = response.json["id"]

        response = client.post("/api/transactions/bulk-delete", json={"ids": [tx.id, copy_id]})
        assert response.json["deleted"] == 2
        assert client.get("/api/transactions").json["count"] == 0

    def test_import_raw_body_with_warning(self, client, widget):
        body = (
            "日付,区分,商品名,数量,単価,管理番号\n"
            "2024-01-05,入庫,Widget,1,100,T1\n"
            "2024-01-06,入庫,Ghost,1,100,T2\n"
        )

        response = client.post(
            "/api/transactions/import", data=body.encode("utf-8"), content_type="text/csv"
        )

        assert response.status_code == 201
        assert response.json["count"] == 1
        assert response.json["level"] == "warning"
        assert response.json["skipped"] == [{"line_number": 3, "label": "Ghost"}]

    def test_import_nothing_resolved_is_400(self, client, widget):
        body = "日付,区分,商品名,数量,単価\n2024-01-05,入庫,Ghost,1,100\n"

        response = client.post(
            "/api/transactions/import", data=body.encode("utf-8"), content_type="text/csv"
        )

        assert response.status_code == 400
        assert response.json["skipped"][0]["label"] == "Ghost"

    def test_export_and_template(self, client, widget, make_transaction):
        make_transaction(TYPE_IN, [(widget, 1, 100)])

        export = client.get("/api/transactions/export")
        template = client.get("/api/transactions/template")

        assert "transaction_report_" in export.headers["Content-Disposition"]
        assert "transactions_template_" in template.headers["Content-Disposition"]


# =============================================================================
# INVENTORY AND REPORTS
# =============================================================================

class TestInventoryAndReportRoutes:
    def test_inventory_listing_and_tracking(self, client, widget, make_stock_item):
        make_stock_item(widget, date(2024, 1, 1), "TRK-1")

        assert client.get("/api/inventory").json["count"] == 1
        assert client.get("/api/inventory/tracking/TRK-1").status_code == 200
        assert client.get("/api/inventory/tracking/NOPE").status_code == 404
        assert client.get("/api/inventory?status=LOST").status_code == 400

    def test_stock_summary(self, client, widget, make_stock_item):
        make_stock_item(widget, date(2024, 1, 1), "TRK-1")
        make_stock_item(widget, date(2024, 1, 2), "TRK-2")

        response = client.get(f"/api/inventory/summary/{widget.id}")

        assert response.status_code == 200
        assert response.json["by_status"] == {"IN_STOCK": 2, "SHIPPED": 0}
        assert response.json["total"] == 2
        assert client.get("/api/inventory/summary/missing").status_code == 404

    def test_inventory_export(self, client, widget, make_stock_item):
        make_stock_item(widget, date(2024, 1, 1), "TRK-1")

        response = client.get("/api/inventory/export")

        assert "stock_report_" in response.headers["Content-Disposition"]

    def test_reports(self, client, widget, make_transaction):
        make_transaction(TYPE_OUT, [(widget, 2, 300)], status=STATUS_COMPLETED)

        assert client.get("/api/reports/net-stock").json["items"][0]["total_out"] == 2
        assert client.get("/api/reports/profit").json["total_sales"] == 600
        assert client.get("/api/reports/profit?date_from=bad").status_code == 400
        assert client.get("/api/reports/dashboard").json["total_products"] == 1
