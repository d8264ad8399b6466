from __future__ import annotations

from unittest import TestCase

from core.services.aggregates import (
    FRAME_COLUMNS,
    InventoryFilter,
    compute_stats,
    facets,
    filter_items,
    group_in_stock,
    items_frame,
)
from core.services.inventory import STATUS_DAMAGED, STATUS_IN_STOCK, STATUS_SOLD, NonSerialStockLine

from factories import unit


def battery_line(quantity=7) -> NonSerialStockLine:
    return NonSerialStockLine(
        product_id="P2",
        quantity=quantity,
        product_name="Battery",
        type="Battery",
        company="Rayovac",
        dealer_price=20.0,
        mrp=30.0,
        last_supplier="Vendor",
        last_invoice="INV-1",
        last_date=None,
        last_location="dwarka",
        last_source_type="purchase",
        last_source_doc_id="PU1",
    )


class AggregateTests(TestCase):
    def setUp(self):
        self.items = [
            unit(key="P1|A", serial_number="A", dealer_price=100.0, mrp=150.0),
            unit(key="P1|B", serial_number="B", status=STATUS_SOLD, supplier="Other Supplier"),
            unit(key="P3|C", serial_number="C", product_name="BTE", type="", company="Phonak", location="dwarka", mrp=400.0, dealer_price=300.0),
            unit(key="P1|D", serial_number="D", status=STATUS_DAMAGED),
            battery_line(),
        ]

    def test_stats(self):
        stats = compute_stats(self.items)
        self.assertEqual(stats.total_items, 5)
        self.assertEqual(stats.in_stock, 1 + 1 + 7)
        self.assertEqual(stats.sold, 1)
        self.assertEqual(stats.damaged, 1)
        self.assertEqual(stats.inventory_value, 100.0 + 300.0 + 7 * 20.0)

    def test_empty_stats(self):
        stats = compute_stats([])
        self.assertEqual((stats.total_items, stats.in_stock, stats.inventory_value), (0, 0, 0))

    def test_search_is_case_insensitive_across_fields(self):
        self.assertEqual([i.key for i in filter_items(self.items, InventoryFilter(search="other SUPP"))], ["P1|B"])
        self.assertEqual([i.key for i in filter_items(self.items, InventoryFilter(search="bte"))], ["P3|C"])
        self.assertEqual([i.key for i in filter_items(self.items, InventoryFilter(search="VENDOR"))], ["qty-P2"])

    def test_field_filters(self):
        self.assertEqual(len(filter_items(self.items, InventoryFilter(status=STATUS_IN_STOCK))), 3)
        self.assertEqual([i.key for i in filter_items(self.items, InventoryFilter(type="Battery"))], ["qty-P2"])
        self.assertEqual(
            [i.key for i in filter_items(self.items, InventoryFilter(location="dwarka"))],
            ["P3|C", "qty-P2"],
        )
        self.assertEqual([i.key for i in filter_items(self.items, InventoryFilter(company="phon"))], ["P3|C"])

    def test_show_sold_toggle(self):
        hidden = filter_items(self.items, InventoryFilter(show_sold=False))
        self.assertNotIn("P1|B", [i.key for i in hidden])
        self.assertEqual(len(filter_items(self.items, InventoryFilter())), 5)

    def test_grouping(self):
        groups = group_in_stock(self.items)
        self.assertEqual([g.category for g in groups], ["Battery", "Hearing Aid", "Other"])
        aids = groups[1]
        self.assertEqual(aids.total_count, 1)
        self.assertEqual(aids.total_value, 150.0)
        self.assertEqual([p.product_name for p in aids.products], ["Hearing Aid"])
        self.assertEqual(groups[2].products[0].items[0].key, "P3|C")

    def test_grouping_sorts_products(self):
        items = [unit(key="X|1", product_name="Zeta"), unit(key="X|2", product_name="Alpha"), unit(key="X|3", product_name="")]
        (group,) = group_in_stock(items)
        self.assertEqual([p.product_name for p in group.products], ["Alpha", "Unnamed", "Zeta"])

    def test_facets(self):
        opts = facets(self.items)
        self.assertEqual(opts["types"], ["Battery", "Hearing Aid"])
        self.assertEqual(opts["locations"], ["dwarka", "rohini"])
        self.assertEqual(opts["companies"], ["Phonak", "Rayovac", "Signia"])

    def test_items_frame(self):
        df = items_frame(self.items, location_names={"dwarka": "Dwarka"})
        self.assertEqual(list(df.columns), FRAME_COLUMNS)
        self.assertEqual(len(df), 5)
        self.assertEqual(df["quantity"].tolist(), [1, 1, 1, 1, 7])
        self.assertEqual(df.loc[2, "location"], "Dwarka")
        self.assertEqual(df.loc[4, "serial_number"], "-")

    def test_items_frame_empty(self):
        self.assertTrue(items_frame([]).empty)
