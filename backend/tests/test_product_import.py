"""
Tests for product CSV import/export.
"""

from datetime import date

import pytest

from stockbook.models import Product
from stockbook.services.csv_codec import BOM, decode_rows
from stockbook.services.product_import_service import (
    PRODUCT_HEADER,
    build_product_payloads,
    export_products_csv,
    import_products_csv,
    is_legacy_product_header,
)
from stockbook.validation import ValidationError


CURRENT_CSV = (
    "商品名,商品コード,バーコード,仕入価格,販売価格,仕入れ先,数量,メモ\n"
    "りんご,AP-1,490001,\"¥1,200\",1800,青森農園,10,旬\n"
    ",EMPTY-NAME,,,,,,\n"
    "みかん,MK-1,,300,500,,3,\n"
)

LEGACY_CSV = (
    "商品名,管理バーコード,現在庫,単価,メモ\n"
    "Pen,BC-1,7,120,blue\n"
)


class TestLayoutDetection:
    def test_current_header(self):
        assert not is_legacy_product_header(PRODUCT_HEADER)

    def test_legacy_header(self):
        assert is_legacy_product_header(["商品名", "管理バーコード", "現在庫", "単価", "メモ"])

    def test_short_header_is_legacy(self):
        assert is_legacy_product_header(["商品名", "コード", "数"])


class TestBuildPayloads:
    def test_current_layout_mapping(self):
        payloads = build_product_payloads(decode_rows(CURRENT_CSV))

        assert [p["name"] for p in payloads] == ["りんご", "みかん"]
        apple = payloads[0]
        assert apple["product_code"] == "AP-1"
        assert apple["internal_barcode"] == "490001"
        assert apple["cost_price"] == 1200
        assert apple["default_unit_price"] == 1200
        assert apple["selling_price"] == 1800
        assert apple["supplier"] == "青森農園"
        assert apple["current_stock"] == 10
        assert apple["memo"] == "旬"

    def test_legacy_layout_mapping(self):
        (pen,) = build_product_payloads(decode_rows(LEGACY_CSV))

        assert pen["name"] == "Pen"
        assert pen["internal_barcode"] == "BC-1"
        assert pen["current_stock"] == 7
        assert pen["cost_price"] == 120
        assert pen["default_unit_price"] == 120
        assert pen["memo"] == "blue"

    def test_header_only_is_rejected(self):
        with pytest.raises(ValidationError):
            build_product_payloads(decode_rows("商品名,商品コード\n"))


class TestImportProducts:
    def test_import_inserts_rows(self, db_session, store):
        count = import_products_csv(BOM + CURRENT_CSV, store=store)

        assert count == 2
        assert db_session.query(Product).count() == 2

    def test_import_does_not_deduplicate(self, db_session, store, widget):
        import_products_csv("商品名,管理バーコード,現在庫,単価,メモ\nWidget,,1,100,\n", store=store)

        assert db_session.query(Product).filter_by(name="Widget").count() == 2

    def test_no_named_rows(self, store):
        with pytest.raises(ValidationError):
            import_products_csv(PRODUCT_HEADER[0] + ",x\n,y\n", store=store)


class TestExportProducts:
    def test_export_round_trips_through_import(self, db_session, store, widget, gadget):
        download = export_products_csv(store=store, today=date(2024, 6, 1))

        assert download.filename == "products_20240601.csv"
        rows = decode_rows(download.content)
        assert rows[0] == PRODUCT_HEADER
        assert [r[0] for r in rows[1:]] == ["Gadget", "Widget"]
        assert rows[2] == ["Widget", "W-001", "4900000000011", "100", "180", "", "2", ""]

        db_session.query(Product).delete()
        db_session.commit()
        assert import_products_csv(download.content, store=store) == 2
        restored = db_session.query(Product).filter_by(name="Widget").one()
        assert restored.cost_price == 100
        assert restored.current_stock == 2
