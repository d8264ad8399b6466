from __future__ import annotations

import tempfile
from datetime import date
from pathlib import Path
from unittest import TestCase, mock

from core.db import connect, ensure_schema
from core.services import documents
from core.services.aggregates import summarize
from core.services.documents import (
    InventoryLoadError,
    MATERIAL_INWARD,
    PRODUCTS,
    collection_counts,
    fetch_sources,
    import_documents,
    list_documents,
    put_document,
)
from core.services.demo_data import load_demo_data, upsert_reference_data, wipe_all
from core.services.inventory import STATUS_SOLD
from core.services.reconciliation import run_inventory_pass, run_stock_position
from core.services.stock_position import summarize_position


class DocumentStoreTestCase(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = Path(self.tmp.name) / "app.db"
        self.conn = connect(self.db_path)
        ensure_schema(self.conn)

    def tearDown(self):
        self.conn.close()
        self.tmp.cleanup()


class DocumentStoreTests(DocumentStoreTestCase):
    def test_put_and_list_orders_by_id(self):
        put_document(self.conn, PRODUCTS, {"name": "B"}, doc_id="P2")
        put_document(self.conn, PRODUCTS, {"id": "P1", "name": "A"})
        docs = list_documents(self.conn, PRODUCTS)
        self.assertEqual(docs, [{"name": "A", "id": "P1"}, {"name": "B", "id": "P2"}])

    def test_put_replaces_existing_document(self):
        put_document(self.conn, PRODUCTS, {"name": "old"}, doc_id="P1")
        put_document(self.conn, PRODUCTS, {"name": "new"}, doc_id="P1")
        self.assertEqual(list_documents(self.conn, PRODUCTS), [{"name": "new", "id": "P1"}])

    def test_insert_without_replace_keeps_existing(self):
        put_document(self.conn, PRODUCTS, {"name": "old"}, doc_id="P1")
        put_document(self.conn, PRODUCTS, {"name": "new"}, doc_id="P1", replace=False)
        put_document(self.conn, PRODUCTS, {"name": "fresh"}, doc_id="P9", replace=False)
        self.assertEqual(
            list_documents(self.conn, PRODUCTS),
            [{"name": "old", "id": "P1"}, {"name": "fresh", "id": "P9"}],
        )

    def test_reference_data_never_overwrites_imported_documents(self):
        import_documents(self.conn, PRODUCTS, [{"id": "P2", "name": "My Aid", "hasSerialNumber": True}])
        upsert_reference_data(self.conn)
        upsert_reference_data(self.conn)
        products = {d["id"]: d for d in list_documents(self.conn, PRODUCTS)}
        self.assertEqual(products["P2"], {"id": "P2", "name": "My Aid", "hasSerialNumber": True})
        self.assertEqual(sorted(products), ["P1", "P2", "P3", "P4"])

    def test_schema_bootstrap_is_repeatable(self):
        ensure_schema(self.conn)
        ensure_schema(self.conn)
        cols = {r["name"] for r in self.conn.execute("PRAGMA table_info(documents);").fetchall()}
        self.assertTrue({"collection", "doc_id", "body", "created_at", "updated_at"} <= cols)

    def test_generated_ids(self):
        did = put_document(self.conn, PRODUCTS, {"name": "x"})
        self.assertTrue(did)
        self.assertEqual(list_documents(self.conn, PRODUCTS)[0]["id"], did)

    def test_import_list_and_mapping(self):
        self.assertEqual(import_documents(self.conn, PRODUCTS, [{"id": "P1"}, {"id": "P2"}]), 2)
        self.assertEqual(import_documents(self.conn, MATERIAL_INWARD, {"R1": {"challanNumber": "CH"}}), 1)
        counts = {r["collection"]: r["n"] for r in collection_counts(self.conn)}
        self.assertEqual(counts, {MATERIAL_INWARD: 1, PRODUCTS: 2})

    def test_invalid_input(self):
        with self.assertRaises(ValueError):
            put_document(self.conn, "inventory", {})
        with self.assertRaises(ValueError):
            put_document(self.conn, PRODUCTS, ["not", "a", "dict"])
        with self.assertRaises(ValueError):
            import_documents(self.conn, PRODUCTS, "nope")

    def test_fetch_sources_snapshot(self):
        put_document(self.conn, MATERIAL_INWARD, {"challanNumber": "CH-1"}, doc_id="R1")
        snap = fetch_sources(self.db_path)
        self.assertEqual(snap.inbound_receipts, ({"challanNumber": "CH-1", "id": "R1"},))
        self.assertEqual(snap.sales, ())

    def test_any_failed_fetch_aborts_the_pass(self):
        real = documents.load_collection

        def flaky(db_path, collection):
            if collection == documents.SALES:
                raise OSError("disk gone")
            return real(db_path, collection)

        with mock.patch.object(documents, "load_collection", side_effect=flaky):
            with self.assertRaises(InventoryLoadError) as ctx:
                fetch_sources(self.db_path)
        self.assertEqual(str(ctx.exception), "Failed to load inventory data")
        self.assertEqual(ctx.exception.collection, documents.SALES)
        self.assertIsInstance(ctx.exception.__cause__, OSError)


class DemoDataPassTests(DocumentStoreTestCase):
    def setUp(self):
        super().setUp()
        load_demo_data(self.conn, base=date(2024, 1, 1))

    def test_inventory_pass(self):
        result = run_inventory_pass(self.db_path, head_office_fallback="fallback")
        self.assertEqual(result.head_office_id, "rohini")

        units = {u.key: u for u in result.units}
        self.assertEqual(
            sorted(units),
            ["P1|SN1", "P1|SN2", "P1|SN3", "P1|SN4", "P3|PX-01", "P3|PX-02"],
        )
        self.assertEqual(units["P1|SN1"].status, STATUS_SOLD)
        self.assertEqual(units["P3|PX-01"].status, STATUS_SOLD)
        self.assertEqual(units["P1|SN2"].source_doc_id, "R1")
        self.assertEqual(units["P1|SN4"].location, "rohini")
        self.assertTrue(units["P1|SN4"].transferred_in)
        self.assertEqual(units["P3|PX-02"].dealer_price, 41000.0)

        lines = {l.product_id: l for l in result.non_serial}
        self.assertEqual(lines["P2"].quantity, 7)
        self.assertEqual(lines["P2"].last_source_doc_id, "PU1")
        self.assertEqual(lines["P4"].quantity, 36)
        self.assertEqual(lines["P4"].location, "dwarka")

        self.assertEqual(result.reservations.transferred, frozenset({"P1|SN4"}))
        self.assertEqual(result.reservations.pending, frozenset({"P3|PX-02"}))

        stats = summarize(result)
        self.assertEqual(stats.total_items, 8)
        self.assertEqual(stats.in_stock, 47)
        self.assertEqual(stats.sold, 2)
        self.assertEqual(stats.inventory_value, 135210.0)

    def test_stock_position_pass(self):
        rows = run_stock_position(self.db_path, head_office_fallback="fallback")
        summary = summarize_position(rows)
        self.assertEqual(summary.total_quantity, 52)
        self.assertEqual(summary.in_stock, 49)
        self.assertEqual(summary.sold, 2)
        self.assertEqual(summary.reserved, 1)
        self.assertEqual(summary.inventory_value, 94840.0)

    def test_wipe(self):
        wipe_all(self.conn)
        result = run_inventory_pass(self.db_path, head_office_fallback="fallback")
        self.assertEqual(result.items, [])
        self.assertEqual(result.head_office_id, "fallback")
