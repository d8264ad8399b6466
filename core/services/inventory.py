from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from core.services.catalog import ProductRef, build_index, lookup
from core.services.line_items import (
    SOURCE_INBOUND,
    SOURCE_PURCHASE,
    LineItem,
    flatten,
    inbound_receipt_lines,
    make_key,
    outbound_lines,
    purchase_lines,
    sale_lines,
    visit_sale_lines,
)
from core.services.provenance import challan_index, invoice_index, resolve_provenance
from core.services.sold import VisitSalePredicate, is_visit_sale, resolve_sold
from core.services.transfers import OutboundReservations, TransferScan, classify_outbound, detect_transfers

logger = logging.getLogger(__name__)

STATUS_IN_STOCK = "In Stock"
STATUS_SOLD = "Sold"
# No source computes this yet; kept so filters and totals have a slot for it.
STATUS_DAMAGED = "Damaged"
# Only used by the stock position report.
STATUS_RESERVED = "Reserved"

STATUSES = (STATUS_IN_STOCK, STATUS_SOLD, STATUS_DAMAGED)

UNIT_ID_PREFIX = {SOURCE_INBOUND: "mi", SOURCE_PURCHASE: "po"}


@dataclass(frozen=True)
class InventoryUnit:
    key: str
    unit_id: str
    product_id: str
    product_name: str
    type: str
    company: str
    location: str
    serial_number: str
    status: str
    dealer_price: float
    mrp: float
    purchase_date: Optional[datetime]
    purchase_invoice: str
    supplier: str
    source_type: Optional[str]
    source_doc_id: Optional[str]
    transferred_in: bool = False
    quantity: Optional[float] = None


@dataclass(frozen=True)
class NonSerialStockLine:
    product_id: str
    quantity: float
    product_name: str
    type: str
    company: str
    dealer_price: float
    mrp: float
    last_supplier: str
    last_invoice: str
    last_date: Optional[datetime]
    last_location: str
    last_source_type: Optional[str]
    last_source_doc_id: Optional[str]

    # Row-compatible view so aggregates and tables treat both kinds alike.
    @property
    def key(self) -> str:
        return f"qty-{self.product_id}"

    @property
    def status(self) -> str:
        return STATUS_IN_STOCK

    @property
    def serial_number(self) -> str:
        return "-"

    @property
    def location(self) -> str:
        return self.last_location or "-"

    @property
    def supplier(self) -> str:
        return self.last_supplier or "-"

    @property
    def purchase_invoice(self) -> str:
        return self.last_invoice or "-"

    @property
    def purchase_date(self) -> Optional[datetime]:
        return self.last_date

    @property
    def source_type(self) -> Optional[str]:
        return self.last_source_type

    @property
    def source_doc_id(self) -> Optional[str]:
        return self.last_source_doc_id


@dataclass(frozen=True)
class SourceSnapshot:
    products: tuple = ()
    inbound_receipts: tuple = ()
    purchases: tuple = ()
    outbound_dispatches: tuple = ()
    sales: tuple = ()
    enquiries: tuple = ()
    centers: tuple = ()


@dataclass(frozen=True)
class ReconcileResult:
    units: tuple = ()
    non_serial: tuple = ()
    sold: frozenset = field(default_factory=frozenset)
    transfers: TransferScan = field(default_factory=TransferScan)
    reservations: OutboundReservations = field(default_factory=OutboundReservations)
    head_office_id: str = ""

    @property
    def items(self) -> list:
        return [*self.units, *self.non_serial]


def _money(*candidates: Optional[float]) -> float:
    # First value that is present (an explicit 0 counts), else 0.
    for c in candidates:
        if c is not None:
            return float(c)
    return 0.0


def _build_unit(
    line: LineItem,
    serial_idx: int,
    serial: str,
    ref: ProductRef,
    *,
    status: str,
    location: str,
    transferred_in: bool,
) -> InventoryUnit:
    prefix = UNIT_ID_PREFIX.get(line.source, "src")
    return InventoryUnit(
        key=make_key(line.product_id, serial),
        unit_id=f"{prefix}-{line.doc_id}-{line.index}-{serial_idx}",
        product_id=line.product_id,
        product_name=line.name or ref.name,
        type=line.type or ref.type,
        company=line.company or ref.company,
        location=location,
        serial_number=serial,
        status=status,
        dealer_price=_money(line.dealer_price, ref.dealer_price),
        mrp=_money(line.mrp, ref.mrp),
        purchase_date=line.date,
        purchase_invoice=line.reference,
        supplier=line.party,
        source_type=line.source if line.doc_id else None,
        source_doc_id=line.doc_id or None,
        transferred_in=transferred_in,
    )


def merge_serialized(
    inbound: Iterable[LineItem],
    purchases: Iterable[LineItem],
    sold: frozenset,
    catalog: dict[str, ProductRef],
    transfer_in: frozenset = frozenset(),
    *,
    head_office_id: str,
) -> dict[str, InventoryUnit]:
    """
    One unit per ``product_id|serial`` key.

    Receipts are merged before purchases and the first record seen for a key
    wins, so a purchase that was later converted into a receipt never shows
    up twice and the receipt is always the unit's source.
    """
    units: dict[str, InventoryUnit] = {}
    for lines in (inbound, purchases):
        for line in lines:
            if not line.has_serials:
                continue
            ref = lookup(catalog, line.product_id)
            location = line.location or head_office_id
            for serial_idx, serial in enumerate(line.serials):
                key = make_key(line.product_id, serial)
                if key in units:
                    continue
                units[key] = _build_unit(
                    line,
                    serial_idx,
                    serial,
                    ref,
                    status=STATUS_SOLD if key in sold else STATUS_IN_STOCK,
                    location=location,
                    transferred_in=key in transfer_in,
                )
    return units


@dataclass
class _InboundAgg:
    qty: float = 0.0
    last: Optional[LineItem] = None
    mrp: float = 0.0
    dealer_price: float = 0.0


def _is_newer(line: LineItem, prev: Optional[LineItem]) -> bool:
    # Ties on date go to the larger document id; within one document the
    # later line wins.
    if prev is None:
        return True
    return (line.date_ms, line.doc_id) >= (prev.date_ms, prev.doc_id)


def reconcile_non_serial(
    inbound: Iterable[LineItem],
    purchases: Iterable[LineItem],
    outbound: Iterable[LineItem],
    sales: Iterable[LineItem],
    visit_sales: Iterable[LineItem],
    catalog: dict[str, ProductRef],
    *,
    head_office_id: str,
) -> dict[str, NonSerialStockLine]:
    """
    Net quantity per product for lines without serial numbers:
    received (receipts + purchases) minus dispatched, sold and sold-in-visit,
    floored at zero. Provenance comes from the most recent inbound record.
    """
    incoming: dict[str, _InboundAgg] = {}
    for lines in (inbound, purchases):
        for line in lines:
            if line.has_serials:
                continue
            agg = incoming.setdefault(line.product_id, _InboundAgg())
            agg.qty += line.quantity or 0
            if _is_newer(line, agg.last):
                agg.last = line
                ref = lookup(catalog, line.product_id)
                mrp = _money(line.mrp, ref.mrp)
                dealer_price = _money(line.dealer_price, ref.dealer_price)
                agg.mrp = mrp or agg.mrp
                agg.dealer_price = dealer_price or agg.dealer_price

    outgoing: dict[str, float] = {}
    for line in outbound:
        if not line.has_serials:
            outgoing[line.product_id] = outgoing.get(line.product_id, 0) + (line.quantity or 0)
    for line in sales:
        if not line.has_serials:
            outgoing[line.product_id] = outgoing.get(line.product_id, 0) + (line.quantity or 1)
    for line in visit_sales:
        if line.product_id and not line.has_serials:
            outgoing[line.product_id] = outgoing.get(line.product_id, 0) + (line.quantity or 1)

    out: dict[str, NonSerialStockLine] = {}
    for product_id, agg in incoming.items():
        ref = lookup(catalog, product_id)
        remaining = max(0, agg.qty - outgoing.get(product_id, 0))
        # Serial-tracked products are fully represented by their units.
        if remaining <= 0 or ref.has_serial_number:
            continue
        last = agg.last
        out[product_id] = NonSerialStockLine(
            product_id=product_id,
            quantity=remaining,
            product_name=ref.name,
            type=ref.type,
            company=ref.company,
            dealer_price=agg.dealer_price,
            mrp=agg.mrp,
            last_supplier=last.party if last else "",
            last_invoice=last.reference if last else "",
            last_date=last.date if last else None,
            last_location=(last.location or head_office_id) if last else "",
            last_source_type=last.source if last else None,
            last_source_doc_id=(last.doc_id or None) if last else None,
        )
    return out


def reconcile(
    snapshot: SourceSnapshot,
    *,
    head_office_id: str,
    sale_predicate: VisitSalePredicate = is_visit_sale,
) -> ReconcileResult:
    """
    Derive current inventory from one snapshot of the source collections.

    Pure: the same snapshot always yields an equal result, and nothing is
    written back anywhere.
    """
    catalog = build_index(snapshot.products)

    inbound = flatten(snapshot.inbound_receipts, inbound_receipt_lines)
    purchases = flatten(snapshot.purchases, purchase_lines)
    outbound = flatten(snapshot.outbound_dispatches, outbound_lines)
    sales = flatten(snapshot.sales, sale_lines)
    visit_sales = flatten(snapshot.enquiries, lambda doc: visit_sale_lines(doc, sale_predicate))

    transfers = detect_transfers(inbound)
    reservations = classify_outbound(outbound, transfers)
    sold = resolve_sold(sales, visit_sales)

    merged = merge_serialized(
        inbound,
        purchases,
        sold,
        catalog,
        transfers.serial_keys,
        head_office_id=head_office_id,
    )
    units = resolve_provenance(
        list(merged.values()),
        challan_index(snapshot.inbound_receipts),
        invoice_index(snapshot.purchases),
    )
    non_serial = reconcile_non_serial(
        inbound,
        purchases,
        outbound,
        sales,
        visit_sales,
        catalog,
        head_office_id=head_office_id,
    )

    logger.info(
        "Reconciled %d serialized unit(s) and %d non-serial line(s) (%d sold serial(s))",
        len(units),
        len(non_serial),
        len(sold),
    )
    return ReconcileResult(
        units=tuple(units),
        non_serial=tuple(non_serial.values()),
        sold=sold,
        transfers=transfers,
        reservations=reservations,
        head_office_id=head_office_id,
    )


def snapshot_from_dict(data: dict[str, Any]) -> SourceSnapshot:
    """Build a snapshot from ``{collection_name: [documents]}``."""

    def docs(name: str) -> tuple:
        return tuple(data.get(name) or ())

    return SourceSnapshot(
        products=docs("products"),
        inbound_receipts=docs("materialInward"),
        purchases=docs("purchases"),
        outbound_dispatches=docs("materialsOut"),
        sales=docs("sales"),
        enquiries=docs("enquiries"),
        centers=docs("centers"),
    )
