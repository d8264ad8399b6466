from __future__ import annotations

import logging
from pathlib import Path

from core.services.centers import resolve_head_office_id
from core.services.documents import fetch_sources
from core.services.inventory import ReconcileResult, reconcile
from core.services.sold import VisitSalePredicate, is_visit_sale
from core.services.stock_position import StockPositionRow, stock_position

logger = logging.getLogger(__name__)


def run_inventory_pass(
    db_path: Path,
    *,
    head_office_fallback: str,
    sale_predicate: VisitSalePredicate = is_visit_sale,
) -> ReconcileResult:
    """
    Fetch all source collections, then reconcile. Raises InventoryLoadError
    (and returns nothing) when any fetch fails.
    """
    snapshot = fetch_sources(db_path)
    head_office_id = resolve_head_office_id(snapshot.centers, head_office_fallback)
    return reconcile(snapshot, head_office_id=head_office_id, sale_predicate=sale_predicate)


def run_stock_position(
    db_path: Path,
    *,
    head_office_fallback: str,
    sale_predicate: VisitSalePredicate = is_visit_sale,
) -> list[StockPositionRow]:
    snapshot = fetch_sources(db_path)
    head_office_id = resolve_head_office_id(snapshot.centers, head_office_fallback)
    rows = stock_position(snapshot, head_office_id=head_office_id, sale_predicate=sale_predicate)
    logger.info("Stock position computed with %d row(s)", len(rows))
    return rows
