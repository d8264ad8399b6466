from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from core.services.line_items import LineItem

logger = logging.getLogger(__name__)

TRANSFER_IN_MARKER = "Stock Transfer from"
TRANSFER_OUT_MARKER = "Stock Transfer:"

STATUS_PENDING = "pending"
STATUS_DISPATCHED = "dispatched"


@dataclass(frozen=True)
class TransferScan:
    serial_keys: frozenset = field(default_factory=frozenset)
    receipt_ids: frozenset = field(default_factory=frozenset)


@dataclass(frozen=True)
class OutboundReservations:
    pending: frozenset = field(default_factory=frozenset)
    dispatched: frozenset = field(default_factory=frozenset)
    # Keys skipped because the matching transfer-in receipt already exists.
    transferred: frozenset = field(default_factory=frozenset)


def is_transfer_in(line: LineItem) -> bool:
    return TRANSFER_IN_MARKER in line.party


def is_transfer_out(line: LineItem) -> bool:
    return TRANSFER_OUT_MARKER in line.notes


def detect_transfers(inbound: Iterable[LineItem]) -> TransferScan:
    """
    Internal stock transfers show up twice: as an outbound dispatch at the
    sending location and as an inbound receipt ("Stock Transfer from ...") at
    the receiving one. Collect the serial keys of every transfer-in receipt.
    """
    keys: set[str] = set()
    receipts: set[str] = set()
    for line in inbound:
        if not is_transfer_in(line):
            continue
        receipts.add(line.doc_id)
        keys.update(line.keys())
    return TransferScan(serial_keys=frozenset(keys), receipt_ids=frozenset(receipts))


def classify_outbound(outbound: Iterable[LineItem], transfers: TransferScan) -> OutboundReservations:
    pending: set[str] = set()
    dispatched: set[str] = set()
    transferred: set[str] = set()
    for line in outbound:
        for key in line.keys():
            # Received at the destination already: completed, not reserved here.
            if is_transfer_out(line) and key in transfers.serial_keys:
                transferred.add(key)
                continue
            if line.status == STATUS_PENDING:
                pending.add(key)
            elif line.status == STATUS_DISPATCHED:
                dispatched.add(key)

    if transferred:
        logger.debug("Excluded %d transferred serial(s) from outbound reservations", len(transferred))
    return OutboundReservations(
        pending=frozenset(pending),
        dispatched=frozenset(dispatched),
        transferred=frozenset(transferred),
    )
