from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from core.utils import as_number, as_text


@dataclass(frozen=True)
class ProductRef:
    id: str
    name: str = ""
    type: str = ""
    company: str = ""
    mrp: Optional[float] = None
    has_serial_number: bool = False
    dealer_price: Optional[float] = None


EMPTY_PRODUCT = ProductRef(id="")


def product_from_doc(doc: dict[str, Any]) -> ProductRef:
    return ProductRef(
        id=as_text(doc.get("id")),
        name=as_text(doc.get("name")),
        type=as_text(doc.get("type")),
        company=as_text(doc.get("company")),
        mrp=as_number(doc.get("mrp")),
        has_serial_number=bool(doc.get("hasSerialNumber")),
        dealer_price=as_number(doc.get("dealerPrice")),
    )


def build_index(products: Iterable[dict[str, Any]]) -> dict[str, ProductRef]:
    """Map product id -> catalog entry. Later documents with the same id win."""
    index: dict[str, ProductRef] = {}
    for doc in products:
        ref = product_from_doc(doc)
        index[ref.id] = ref
    return index


def lookup(index: dict[str, ProductRef], product_id: str) -> ProductRef:
    return index.get(product_id, EMPTY_PRODUCT)
