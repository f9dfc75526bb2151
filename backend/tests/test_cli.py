"""
Tests for the `flask stock` command group.
"""

from stockbook.models import Product, Transaction, STATUS_COMPLETED, TYPE_IN


class TestStockCommands:
    def test_import_products(self, app, db_session, tmp_path):
        path = tmp_path / "products.csv"
        path.write_text("\ufeff商品名,管理バーコード,現在庫,単価,メモ\nPen,BC-1,7,120,\n", encoding="utf-8")

        result = app.test_cli_runner().invoke(args=["stock", "import-products", str(path)])

        assert result.exit_code == 0, result.output
        assert "PASS Imported 1 products" in result.output
        assert db_session.query(Product).one().name == "Pen"

    def test_import_transactions_lists_warnings(self, app, widget, tmp_path):
        path = tmp_path / "transactions.csv"
        path.write_text(
            "日付,区分,商品名,数量,単価,管理番号\n"
            "2024-01-05,入庫,Widget,1,100,T1\n"
            "2024-01-06,入庫,Ghost,1,100,T2\n",
            encoding="utf-8",
        )

        result = app.test_cli_runner().invoke(args=["stock", "import-transactions", str(path)])

        assert result.exit_code == 0, result.output
        assert "WARN  line 3: Ghost" in result.output

    def test_export_writes_dated_file(self, app, widget, tmp_path):
        result = app.test_cli_runner().invoke(args=["stock", "export", "products", "--out", str(tmp_path)])

        assert result.exit_code == 0, result.output
        (written,) = tmp_path.glob("products_*.csv")
        assert written.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_complete_and_revert(self, app, db_session, widget, make_transaction):
        tx = make_transaction(TYPE_IN, [(widget, 2, 100)])
        runner = app.test_cli_runner()

        result = runner.invoke(args=["stock", "complete", tx.id])
        assert result.exit_code == 0, result.output
        assert "items created: 2" in result.output
        assert db_session.get(Transaction, tx.id).status == STATUS_COMPLETED

        assert runner.invoke(args=["stock", "complete", tx.id]).exit_code != 0
        assert runner.invoke(args=["stock", "revert", tx.id]).exit_code == 0

    def test_unknown_transaction(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["stock", "complete", "missing"])

        assert result.exit_code != 0
