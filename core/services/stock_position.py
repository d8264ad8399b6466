"""
Stock position report.

Overall (all locations) stock for reporting. Unlike the inventory view it
ignores internal stock transfers on both sides (the receiving receipt and the
sending dispatch), drops serials that were dispatched and marks serials on a
pending dispatch as Reserved.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from typing import Iterable, Optional, Union

from core.services.catalog import build_index
from core.services.inventory import (
    STATUS_IN_STOCK,
    STATUS_RESERVED,
    STATUS_SOLD,
    SourceSnapshot,
    merge_serialized,
    reconcile_non_serial,
)
from core.services.line_items import (
    LineItem,
    flatten,
    inbound_receipt_lines,
    outbound_lines,
    purchase_lines,
    sale_lines,
    visit_sale_lines,
)
from core.services.sold import VisitSalePredicate, is_visit_sale, resolve_sold
from core.services.transfers import (
    STATUS_DISPATCHED,
    STATUS_PENDING,
    TransferScan,
    classify_outbound,
    is_transfer_in,
)

STATUS_RETURNED = "returned"
TRANSFER_NOTE = "Stock Transfer"

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class StockPositionRow:
    key: str
    serial_number: str
    product_name: str
    type: str
    company: str
    status: str
    purchase_date: Optional[datetime]
    dealer_price: float
    mrp: float
    quantity: float = 1


@dataclass(frozen=True)
class StockPositionSummary:
    total_quantity: float = 0
    in_stock: float = 0
    sold: int = 0
    reserved: int = 0
    inventory_value: float = 0.0


def _is_transfer_dispatch(line: LineItem) -> bool:
    return TRANSFER_NOTE in line.notes or TRANSFER_NOTE in line.reason


def _report_outbound(outbound: Iterable[LineItem]) -> list[LineItem]:
    # Returned dispatches are void; anything not pending counts as dispatched.
    out = []
    for line in outbound:
        if _is_transfer_dispatch(line) or line.status == STATUS_RETURNED:
            continue
        status = STATUS_PENDING if line.status == STATUS_PENDING else STATUS_DISPATCHED
        out.append(line if status == line.status else replace(line, status=status))
    return out


def stock_position(
    snapshot: SourceSnapshot,
    *,
    head_office_id: str,
    sale_predicate: VisitSalePredicate = is_visit_sale,
) -> list[StockPositionRow]:
    catalog = build_index(snapshot.products)

    inbound = [
        line for line in flatten(snapshot.inbound_receipts, inbound_receipt_lines) if not is_transfer_in(line)
    ]
    purchases = flatten(snapshot.purchases, purchase_lines)
    outbound = _report_outbound(flatten(snapshot.outbound_dispatches, outbound_lines))
    sales = flatten(snapshot.sales, sale_lines)
    visit_sales = flatten(snapshot.enquiries, lambda doc: visit_sale_lines(doc, sale_predicate))

    reservations = classify_outbound(outbound, TransferScan())
    sold = resolve_sold(sales, visit_sales)

    rows: list[StockPositionRow] = []
    units = merge_serialized(inbound, purchases, sold, catalog, head_office_id=head_office_id)
    for key, unit in units.items():
        if not unit.product_id or key in reservations.dispatched:
            continue
        if key in sold:
            status = STATUS_SOLD
        elif key in reservations.pending:
            status = STATUS_RESERVED
        else:
            status = STATUS_IN_STOCK
        rows.append(
            StockPositionRow(
                key=key,
                serial_number=unit.serial_number,
                product_name=unit.product_name,
                type=unit.type,
                company=unit.company,
                status=status,
                purchase_date=unit.purchase_date,
                dealer_price=unit.dealer_price,
                mrp=unit.mrp,
            )
        )

    # Pending dispatches only reserve stock; they do not reduce quantities.
    dispatched_out = [line for line in outbound if line.status != STATUS_PENDING]
    non_serial = reconcile_non_serial(
        inbound,
        purchases,
        dispatched_out,
        sales,
        visit_sales,
        catalog,
        head_office_id=head_office_id,
    )
    for line in non_serial.values():
        rows.append(
            StockPositionRow(
                key=line.key,
                serial_number="-",
                product_name=line.product_name,
                type=line.type,
                company=line.company,
                status=STATUS_IN_STOCK,
                purchase_date=line.last_date,
                dealer_price=line.dealer_price,
                mrp=line.mrp,
                quantity=line.quantity,
            )
        )
    return rows


def _as_bound(value: Optional[DateLike], *, end: bool) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.max if end else time.min, tzinfo=timezone.utc)


def filter_position(
    rows: Iterable[StockPositionRow],
    *,
    product_type: str = "",
    company: str = "",
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> list[StockPositionRow]:
    """Rows without a purchase date always pass the date-range check."""
    lo = _as_bound(start, end=False)
    hi = _as_bound(end, end=True)
    out = []
    for row in rows:
        if product_type and row.type != product_type:
            continue
        if company and row.company != company:
            continue
        if row.purchase_date is not None:
            if lo and row.purchase_date < lo:
                continue
            if hi and row.purchase_date > hi:
                continue
        out.append(row)
    return out


def summarize_position(rows: Iterable[StockPositionRow]) -> StockPositionSummary:
    rows = list(rows)
    in_stock = [r for r in rows if r.status == STATUS_IN_STOCK]
    return StockPositionSummary(
        total_quantity=sum(r.quantity or 1 for r in rows),
        in_stock=sum(r.quantity or 1 for r in in_stock),
        sold=sum(1 for r in rows if r.status == STATUS_SOLD),
        reserved=sum(1 for r in rows if r.status == STATUS_RESERVED),
        inventory_value=sum((r.dealer_price or 0) * (r.quantity or 1) for r in in_stock),
    )
