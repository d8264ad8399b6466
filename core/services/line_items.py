"""
Canonical line items.

Each source collection stores its line items in a slightly different shape
(``productId`` vs ``id``, ``receivedDate`` vs ``purchaseDate``, supplier vs
party, challan vs invoice number, serial list vs single serial). The adapters
below turn every raw document into plain ``LineItem`` records so the merge
and ledger code never has to branch on document shape.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, Optional

from core.utils import as_number, as_text, to_datetime, to_millis

SOURCE_INBOUND = "inbound_receipt"
SOURCE_PURCHASE = "purchase"
SOURCE_OUTBOUND = "outbound_dispatch"
SOURCE_SALE = "sale"
SOURCE_VISIT_SALE = "visit_sale"

# Placeholder some sale screens store instead of an empty serial.
NO_SERIAL = "-"


@dataclass(frozen=True)
class LineItem:
    source: str
    doc_id: str
    index: int
    product_id: str
    serials: tuple[str, ...] = ()
    quantity: Optional[float] = None
    name: str = ""
    type: str = ""
    mrp: Optional[float] = None
    dealer_price: Optional[float] = None
    party: str = ""
    company: str = ""
    location: str = ""
    reference: str = ""
    date: Optional[datetime] = None
    date_ms: int = 0
    notes: str = ""
    reason: str = ""
    status: str = ""
    # Length of the raw ``serialNumbers`` list, blank entries included.
    listed_serials: int = 0

    @property
    def has_serials(self) -> bool:
        if self.listed_serials:
            return True
        return any(sn != NO_SERIAL for sn in self.serials)

    def keys(self) -> list[str]:
        return [make_key(self.product_id, sn) for sn in self.serials]


def make_key(product_id: str, serial_number: str) -> str:
    return f"{product_id}|{serial_number}"


def product_id_of(raw: dict[str, Any], *extra_fields: str) -> str:
    # productId first, then id, then any source-specific fallbacks
    for field in ("productId", "id", *extra_fields):
        value = raw.get(field)
        if value:
            return as_text(value)
    return ""


def _party_name(value: Any) -> str:
    if isinstance(value, dict):
        return as_text(value.get("name"))
    return as_text(value)


def _raw_serials(raw: dict[str, Any]) -> list:
    serials = raw.get("serialNumbers")
    return serials if isinstance(serials, list) else []


def _serial_list(raw: dict[str, Any]) -> tuple[str, ...]:
    return tuple(as_text(sn) for sn in _raw_serials(raw) if sn)


def _single_serial(raw: dict[str, Any], *fields: str) -> tuple[str, ...]:
    # "-" is kept: it marks the sale as sold while the line still counts
    # against non-serial quantities (see LineItem.has_serials).
    for field in fields:
        sn = as_text(raw.get(field)).strip()
        if sn:
            return (sn,)
    return ()


def _first_present(raw: dict[str, Any], *fields: str) -> Optional[float]:
    # Nullish fallback: an explicit 0 is kept, only missing values fall through.
    for field in fields:
        if raw.get(field) is not None:
            return as_number(raw.get(field))
    return None


def _products(doc: dict[str, Any]) -> list[dict[str, Any]]:
    products = doc.get("products")
    if not isinstance(products, list):
        return []
    return [p for p in products if isinstance(p, dict)]


def _inbound_like(
    doc: dict[str, Any],
    *,
    source: str,
    date_field: str,
    party_field: str,
    reference_field: str,
) -> Iterator[LineItem]:
    doc_id = as_text(doc.get("id"))
    raw_date = doc.get(date_field)
    when = to_datetime(raw_date)
    for idx, prod in enumerate(_products(doc)):
        yield LineItem(
            source=source,
            doc_id=doc_id,
            index=idx,
            product_id=product_id_of(prod),
            serials=_serial_list(prod),
            listed_serials=len(_raw_serials(prod)),
            quantity=as_number(prod.get("quantity")),
            name=as_text(prod.get("name")),
            type=as_text(prod.get("type")),
            mrp=as_number(prod.get("mrp")),
            dealer_price=_first_present(prod, "dealerPrice", "finalPrice"),
            party=_party_name(doc.get(party_field)),
            company=as_text(doc.get("company")),
            location=as_text(doc.get("location")),
            reference=as_text(doc.get(reference_field)),
            date=when,
            date_ms=to_millis(raw_date),
            notes=as_text(doc.get("notes")),
        )


def inbound_receipt_lines(doc: dict[str, Any]) -> list[LineItem]:
    return list(
        _inbound_like(
            doc,
            source=SOURCE_INBOUND,
            date_field="receivedDate",
            party_field="supplier",
            reference_field="challanNumber",
        )
    )


def purchase_lines(doc: dict[str, Any]) -> list[LineItem]:
    return list(
        _inbound_like(
            doc,
            source=SOURCE_PURCHASE,
            date_field="purchaseDate",
            party_field="party",
            reference_field="invoiceNo",
        )
    )


def outbound_lines(doc: dict[str, Any]) -> list[LineItem]:
    doc_id = as_text(doc.get("id"))
    notes = as_text(doc.get("notes"))
    reason = as_text(doc.get("reason"))
    status = as_text(doc.get("status")).strip().lower()
    out: list[LineItem] = []
    for idx, prod in enumerate(_products(doc)):
        out.append(
            LineItem(
                source=SOURCE_OUTBOUND,
                doc_id=doc_id,
                index=idx,
                product_id=product_id_of(prod),
                serials=_serial_list(prod),
                listed_serials=len(_raw_serials(prod)),
                quantity=as_number(prod.get("quantity")),
                location=as_text(doc.get("location")),
                notes=notes,
                reason=reason,
                status=status,
            )
        )
    return out


def sale_lines(doc: dict[str, Any]) -> list[LineItem]:
    doc_id = as_text(doc.get("id"))
    out: list[LineItem] = []
    for idx, prod in enumerate(_products(doc)):
        out.append(
            LineItem(
                source=SOURCE_SALE,
                doc_id=doc_id,
                index=idx,
                product_id=product_id_of(prod),
                serials=_single_serial(prod, "serialNumber"),
                quantity=as_number(prod.get("quantity")),
            )
        )
    return out


def visit_sale_lines(
    enquiry: dict[str, Any],
    is_sale: Callable[[dict[str, Any]], bool],
) -> list[LineItem]:
    """Product lines of every visit in an enquiry that ``is_sale`` accepts."""
    doc_id = as_text(enquiry.get("id"))
    visits = enquiry.get("visits")
    if not isinstance(visits, list):
        return []

    out: list[LineItem] = []
    idx = 0
    for visit in visits:
        if not isinstance(visit, dict) or not is_sale(visit):
            continue
        for prod in _products(visit):
            out.append(
                LineItem(
                    source=SOURCE_VISIT_SALE,
                    doc_id=doc_id,
                    index=idx,
                    product_id=product_id_of(prod, "hearingAidProductId"),
                    serials=_single_serial(prod, "serialNumber", "trialSerialNumber"),
                    quantity=as_number(prod.get("quantity")),
                )
            )
            idx += 1
    return out


def flatten(docs: Iterable[dict[str, Any]], adapter: Callable[[dict[str, Any]], list[LineItem]]) -> list[LineItem]:
    out: list[LineItem] = []
    for doc in docs:
        out.extend(adapter(doc))
    return out
