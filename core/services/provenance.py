from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Sequence

from core.services.line_items import SOURCE_INBOUND, SOURCE_PURCHASE
from core.utils import as_text

logger = logging.getLogger(__name__)


def _index_by(docs: Iterable[dict[str, Any]], field: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for doc in docs:
        number = as_text(doc.get(field))
        doc_id = as_text(doc.get("id"))
        if number and doc_id:
            out[number] = doc_id
    return out


def challan_index(inbound_receipts: Iterable[dict[str, Any]]) -> dict[str, str]:
    return _index_by(inbound_receipts, "challanNumber")


def invoice_index(purchases: Iterable[dict[str, Any]]) -> dict[str, str]:
    return _index_by(purchases, "invoiceNo")


def resolve_provenance(units: Sequence, challans: dict[str, str], invoices: dict[str, str]) -> list:
    """
    Backfill ``source_type``/``source_doc_id`` for units that lack one by
    matching ``purchase_invoice`` against receipt challan numbers first and
    purchase invoice numbers second. Unmatched units are returned unchanged.
    """
    out = []
    unresolved = 0
    for unit in units:
        if (unit.source_type and unit.source_doc_id) or not unit.purchase_invoice:
            if not (unit.source_type and unit.source_doc_id):
                unresolved += 1
            out.append(unit)
            continue

        ref = unit.purchase_invoice
        if ref in challans:
            out.append(replace(unit, source_type=SOURCE_INBOUND, source_doc_id=challans[ref]))
        elif ref in invoices:
            out.append(replace(unit, source_type=SOURCE_PURCHASE, source_doc_id=invoices[ref]))
        else:
            unresolved += 1
            out.append(unit)

    if unresolved:
        logger.debug("%d unit(s) have no linkable source document", unresolved)
    return out
