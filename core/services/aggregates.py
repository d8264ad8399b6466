from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import pandas as pd

from core.services.inventory import (
    STATUS_DAMAGED,
    STATUS_IN_STOCK,
    STATUS_SOLD,
    ReconcileResult,
)


@dataclass(frozen=True)
class InventoryStats:
    total_items: int = 0
    in_stock: float = 0
    sold: int = 0
    damaged: int = 0
    inventory_value: float = 0.0


@dataclass(frozen=True)
class InventoryFilter:
    search: str = ""
    status: str = ""
    type: str = ""
    location: str = ""
    company: str = ""
    show_sold: bool = True


@dataclass
class ProductGroup:
    product_name: str
    company: str
    items: list = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass
class CategoryGroup:
    category: str
    total_value: float = 0.0
    total_count: int = 0
    products: list[ProductGroup] = field(default_factory=list)


def _qty(item) -> float:
    return item.quantity or 1


def compute_stats(items: Iterable) -> InventoryStats:
    items = list(items)
    in_stock_items = [i for i in items if i.status == STATUS_IN_STOCK]
    return InventoryStats(
        total_items=len(items),
        in_stock=sum(_qty(i) for i in in_stock_items),
        sold=sum(1 for i in items if i.status == STATUS_SOLD),
        damaged=sum(1 for i in items if i.status == STATUS_DAMAGED),
        inventory_value=sum((i.dealer_price or 0) * _qty(i) for i in in_stock_items),
    )


def summarize(result: ReconcileResult) -> InventoryStats:
    return compute_stats(result.items)


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle in (haystack or "").lower()


def filter_items(items: Iterable, flt: InventoryFilter) -> list:
    """Query-time filtering over an already reconciled item list."""
    out = list(items)

    if not flt.show_sold:
        out = [i for i in out if i.status != STATUS_SOLD]

    if flt.search:
        s = flt.search.strip().lower()
        out = [
            i
            for i in out
            if _contains(i.product_name, s)
            or _contains(i.serial_number, s)
            or _contains(i.company, s)
            or _contains(i.supplier, s)
        ]

    if flt.status:
        out = [i for i in out if i.status == flt.status]

    if flt.type:
        out = [i for i in out if i.type == flt.type]

    if flt.location:
        out = [i for i in out if i.location == flt.location]

    if flt.company:
        c = flt.company.strip().lower()
        out = [i for i in out if _contains(i.company, c)]

    return out


def group_in_stock(items: Iterable) -> list[CategoryGroup]:
    """
    Drill-down view of in-stock items: category -> product -> items.
    Category value is the sum of MRP. Categories and products are sorted by name.
    """
    by_category: dict[str, CategoryGroup] = {}
    by_product: dict[tuple[str, str], ProductGroup] = {}

    for item in items:
        if item.status != STATUS_IN_STOCK:
            continue
        cat = item.type or "Other"
        group = by_category.setdefault(cat, CategoryGroup(category=cat))
        group.total_value += item.mrp or 0
        group.total_count += 1

        name = item.product_name or "Unnamed"
        pkey = (cat, name)
        if pkey not in by_product:
            by_product[pkey] = ProductGroup(product_name=name, company=item.company or "")
            group.products.append(by_product[pkey])
        by_product[pkey].items.append(item)

    out = []
    for cat in sorted(by_category):
        group = by_category[cat]
        group.products.sort(key=lambda p: p.product_name)
        out.append(group)
    return out


def facets(items: Sequence) -> dict[str, list[str]]:
    return {
        "types": sorted({i.type for i in items if i.type}),
        "locations": sorted({i.location for i in items if i.location}),
        "companies": sorted({i.company for i in items if i.company}),
    }


FRAME_COLUMNS = [
    "product_name",
    "serial_number",
    "type",
    "company",
    "location",
    "status",
    "quantity",
    "dealer_price",
    "mrp",
    "purchase_date",
    "purchase_invoice",
    "supplier",
    "source_type",
    "source_doc_id",
]


def items_frame(items: Iterable, *, location_names: Optional[dict[str, str]] = None) -> pd.DataFrame:
    rows = []
    for i in items:
        row = {col: getattr(i, col) for col in FRAME_COLUMNS}
        row["quantity"] = _qty(i)
        if location_names:
            row["location"] = location_names.get(i.location, i.location)
        rows.append(row)
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    if not df.empty:
        df["purchase_date"] = pd.to_datetime(df["purchase_date"], utc=True, errors="coerce")
    return df
