from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from core.utils import as_text

logger = logging.getLogger(__name__)


def head_office_center(centers: Iterable[dict[str, Any]]) -> Optional[dict[str, Any]]:
    for center in centers:
        if center.get("isHeadOffice"):
            return center
    return None


def resolve_head_office_id(centers: Iterable[dict[str, Any]], fallback: str) -> str:
    """
    Location assigned to documents saved before multi-location support:
    the first center flagged as head office, otherwise the configured fallback.
    """
    center = head_office_center(centers)
    if center is None or not as_text(center.get("id")):
        logger.debug("No head office center found, using fallback location %s", fallback)
        return fallback
    return as_text(center.get("id"))


def center_names(centers: Iterable[dict[str, Any]]) -> dict[str, str]:
    names: dict[str, str] = {}
    for center in centers:
        cid = as_text(center.get("id"))
        if cid:
            names[cid] = as_text(center.get("name")) or cid
    return names
