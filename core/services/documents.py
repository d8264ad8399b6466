from __future__ import annotations

import json
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional

from core.db import connect, q, x
from core.services.inventory import SourceSnapshot
from core.utils import iso_now

logger = logging.getLogger(__name__)

PRODUCTS = "products"
MATERIAL_INWARD = "materialInward"
PURCHASES = "purchases"
MATERIALS_OUT = "materialsOut"
SALES = "sales"
ENQUIRIES = "enquiries"
CENTERS = "centers"

# Snapshot field -> collection name
SNAPSHOT_COLLECTIONS = {
    "products": PRODUCTS,
    "inbound_receipts": MATERIAL_INWARD,
    "purchases": PURCHASES,
    "outbound_dispatches": MATERIALS_OUT,
    "sales": SALES,
    "enquiries": ENQUIRIES,
    "centers": CENTERS,
}

KNOWN_COLLECTIONS = tuple(SNAPSHOT_COLLECTIONS.values())


class InventoryLoadError(RuntimeError):
    """A source collection could not be read; the whole pass is abandoned."""

    def __init__(self, message: str = "Failed to load inventory data", *, collection: Optional[str] = None):
        super().__init__(message)
        self.collection = collection


def _check_collection(collection: str) -> str:
    name = str(collection or "").strip()
    if name not in KNOWN_COLLECTIONS:
        raise ValueError(f"Unknown collection '{collection}'. Use one of: {', '.join(KNOWN_COLLECTIONS)}.")
    return name


def _new_doc_id() -> str:
    return uuid.uuid4().hex[:20]


def put_document(
    conn,
    collection: str,
    doc: dict[str, Any],
    *,
    doc_id: Optional[str] = None,
    replace: bool = True,
) -> str:
    """
    Insert or replace one document. Returns its id.
    With ``replace=False`` an existing document is left untouched.
    """
    name = _check_collection(collection)
    if not isinstance(doc, dict):
        raise ValueError("A document must be a JSON object.")

    body = dict(doc)
    did = str(doc_id or body.pop("id", None) or _new_doc_id())
    body.pop("id", None)

    on_conflict = (
        "DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at"
        if replace
        else "DO NOTHING"
    )
    now = iso_now()
    x(
        conn,
        f"""
        INSERT INTO documents (collection, doc_id, body, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(collection, doc_id) {on_conflict}
        """,
        (name, did, json.dumps(body, default=str), now, now),
    )
    return did


def import_documents(conn, collection: str, payload: Any) -> int:
    """
    Bulk import. Accepts a list of documents (each may carry its own ``id``)
    or an object mapping document id -> document.
    """
    name = _check_collection(collection)
    if isinstance(payload, dict):
        items = [(str(k), v) for k, v in payload.items()]
    elif isinstance(payload, list):
        items = [(None, v) for v in payload]
    else:
        raise ValueError("Import payload must be a JSON list or object.")

    n = 0
    for did, doc in items:
        put_document(conn, name, doc, doc_id=did)
        n += 1
    logger.info("Imported %d document(s) into %s", n, name)
    return n


def list_documents(conn, collection: str) -> list[dict[str, Any]]:
    """Documents of one collection ordered by id, each with its ``id`` injected."""
    name = _check_collection(collection)
    rows = q(conn, "SELECT doc_id, body FROM documents WHERE collection=? ORDER BY doc_id", (name,))
    out: list[dict[str, Any]] = []
    for r in rows:
        body = json.loads(r["body"])
        body["id"] = r["doc_id"]
        out.append(body)
    return out


def collection_counts(conn):
    return q(
        conn,
        """
        SELECT collection, COUNT(*) AS n
        FROM documents
        GROUP BY collection
        ORDER BY collection
        """,
    )


def delete_all(conn) -> None:
    conn.execute("DELETE FROM documents;")
    conn.commit()


def load_collection(db_path: Path, collection: str) -> tuple:
    # Own connection per call so collections can be read from worker threads.
    conn = connect(db_path)
    try:
        return tuple(list_documents(conn, collection))
    finally:
        conn.close()


def fetch_sources(db_path: Path) -> SourceSnapshot:
    """
    Read every source collection concurrently and return one snapshot.
    If any read fails, nothing is returned and InventoryLoadError is raised.
    """
    with ThreadPoolExecutor(max_workers=len(SNAPSHOT_COLLECTIONS), thread_name_prefix="inventory-fetch") as pool:
        futures = {
            field_name: pool.submit(load_collection, db_path, collection)
            for field_name, collection in SNAPSHOT_COLLECTIONS.items()
        }
        loaded: dict[str, tuple] = {}
        for field_name, fut in futures.items():
            collection = SNAPSHOT_COLLECTIONS[field_name]
            try:
                loaded[field_name] = fut.result()
            except Exception as exc:
                for other in futures.values():
                    other.cancel()
                logger.exception("Failed to load collection %s", collection)
                raise InventoryLoadError(collection=collection) from exc

    return SourceSnapshot(**loaded)
