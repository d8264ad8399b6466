from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from core.services.line_items import LineItem, make_key
from core.utils import as_number

logger = logging.getLogger(__name__)

HEARING_AID_SALE_SERVICE = "hearing_aid_sale"

VisitSalePredicate = Callable[[dict[str, Any]], bool]


def is_visit_sale(visit: dict[str, Any]) -> bool:
    """
    Decide whether a patient visit recorded a product sale.

    Explicit signals: the hearing-aid-sale flag, the sale marker in
    ``medicalServices``, ``journeyStage == "sale"`` or
    ``hearingAidStatus == "sold"``.

    Fallback heuristic: the visit lists products and has a positive total
    (after or before tax). A visit with unrelated non-zero totals and a
    product list is therefore counted as a sale; pass a different predicate
    to ``resolve_sold`` to change that.
    """
    if visit.get("hearingAidSale"):
        return True

    services = visit.get("medicalServices")
    if isinstance(services, list) and HEARING_AID_SALE_SERVICE in services:
        return True

    if visit.get("journeyStage") == "sale":
        return True
    if visit.get("hearingAidStatus") == "sold":
        return True

    products = visit.get("products")
    if isinstance(products, list) and len(products) > 0:
        after_tax = as_number(visit.get("salesAfterTax")) or 0
        before_tax = as_number(visit.get("grossSalesBeforeTax")) or 0
        return after_tax > 0 or before_tax > 0

    return False


def is_explicit_visit_sale(visit: dict[str, Any]) -> bool:
    # Same as is_visit_sale without the monetary-total heuristic.
    services = visit.get("medicalServices")
    return bool(
        visit.get("hearingAidSale")
        or (isinstance(services, list) and HEARING_AID_SALE_SERVICE in services)
        or visit.get("journeyStage") == "sale"
        or visit.get("hearingAidStatus") == "sold"
    )


def resolve_sold(sales: Iterable[LineItem], visit_sales: Iterable[LineItem]) -> frozenset:
    """
    Union of serial keys sold through the sales collection and through
    patient visits. ``visit_sales`` must already be restricted to qualifying
    visits (see ``line_items.visit_sale_lines``).
    """
    sold: set[str] = set()

    for line in sales:
        for key in line.keys():
            sold.add(key)
            logger.debug("Sold serial %s from sale %s", key, line.doc_id)

    for line in visit_sales:
        if not line.product_id:
            continue
        for sn in line.serials:
            key = make_key(line.product_id, sn)
            sold.add(key)
            logger.debug("Sold serial %s from enquiry %s", key, line.doc_id)

    return frozenset(sold)
