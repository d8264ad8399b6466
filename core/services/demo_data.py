from __future__ import annotations

from datetime import date, timedelta

from core.db import ensure_schema
from core.services.documents import (
    CENTERS,
    ENQUIRIES,
    MATERIAL_INWARD,
    MATERIALS_OUT,
    PRODUCTS,
    PURCHASES,
    SALES,
    delete_all,
    put_document,
)

DEFAULT_CENTERS = [
    ("rohini", {"name": "Rohini (Head Office)", "isHeadOffice": True}),
    ("dwarka", {"name": "Dwarka", "isHeadOffice": False}),
]

DEFAULT_PRODUCTS = [
    ("P1", {"name": "Hearing Aid RIC 312", "type": "Hearing Aid", "company": "Signia", "mrp": 45000, "dealerPrice": 30000, "hasSerialNumber": True}),
    ("P2", {"name": "Zinc Battery 312 (pack)", "type": "Battery", "company": "Rayovac", "mrp": 350, "hasSerialNumber": False}),
    ("P3", {"name": "Hearing Aid BTE Power", "type": "Hearing Aid", "company": "Phonak", "mrp": 62000, "dealerPrice": 41000, "hasSerialNumber": True}),
    ("P4", {"name": "Dome Tips", "type": "Accessory", "company": "Signia", "mrp": 200, "hasSerialNumber": False}),
]


def upsert_reference_data(conn) -> None:
    ensure_schema(conn)

    for doc_id, body in DEFAULT_CENTERS:
        put_document(conn, CENTERS, body, doc_id=doc_id, replace=False)

    for doc_id, body in DEFAULT_PRODUCTS:
        put_document(conn, PRODUCTS, body, doc_id=doc_id, replace=False)


def wipe_all(conn) -> None:
    delete_all(conn)


def _day(base: date, n: int) -> str:
    return (base + timedelta(days=n)).isoformat()


def load_demo_data(conn, *, base: date | None = None) -> None:
    """
    Seed a small, fully deterministic data set:
    - serials received both by challan and by purchase (receipt wins)
    - a sale and a patient-visit sale
    - a stock transfer Rohini -> Dwarka with its matching dispatch
    - a pending dispatch (reserved in the stock position report)
    - non-serial batteries received twice and partly dispatched/sold
    """
    base = base or (date.today() - timedelta(days=10))
    upsert_reference_data(conn)

    put_document(
        conn,
        MATERIAL_INWARD,
        {
            "receivedDate": _day(base, 0),
            "supplier": {"name": "Signia India"},
            "company": "Signia",
            "challanNumber": "CH-1001",
            "products": [
                {"productId": "P1", "dealerPrice": 30000, "serialNumbers": ["SN1", "SN2", "SN4"]},
                {"productId": "P2", "quantity": 10, "dealerPrice": 200},
            ],
        },
        doc_id="R1",
    )
    put_document(
        conn,
        PURCHASES,
        {
            "purchaseDate": _day(base, 2),
            "party": {"name": "Signia India"},
            "company": "Signia",
            "location": "rohini",
            "invoiceNo": "INV-2001",
            "products": [
                {"productId": "P1", "finalPrice": 29500, "serialNumbers": ["SN2", "SN3"]},
                {"productId": "P2", "quantity": 5, "dealerPrice": 210},
            ],
        },
        doc_id="PU1",
    )
    put_document(
        conn,
        PURCHASES,
        {
            "purchaseDate": _day(base, 3),
            "party": {"name": "Phonak Distributors"},
            "company": "Phonak",
            "location": "dwarka",
            "invoiceNo": "INV-2002",
            "products": [
                {"productId": "P3", "serialNumbers": ["PX-01", "PX-02"]},
                {"productId": "P4", "quantity": 40, "dealerPrice": 90},
            ],
        },
        doc_id="PU2",
    )

    # Stock transfer of SN4 from Rohini to Dwarka
    put_document(
        conn,
        MATERIALS_OUT,
        {
            "status": "dispatched",
            "notes": "Stock Transfer: Rohini -> Dwarka",
            "location": "rohini",
            "products": [{"productId": "P1", "serialNumbers": ["SN4"]}],
        },
        doc_id="MO1",
    )
    put_document(
        conn,
        MATERIAL_INWARD,
        {
            "receivedDate": _day(base, 5),
            "supplier": {"name": "Stock Transfer from Rohini"},
            "company": "Signia",
            "location": "dwarka",
            "challanNumber": "TR-0001",
            "products": [{"productId": "P1", "serialNumbers": ["SN4"]}],
        },
        doc_id="R2",
    )

    put_document(
        conn,
        MATERIALS_OUT,
        {
            "status": "pending",
            "notes": "Sent for demo camp",
            "location": "dwarka",
            "products": [
                {"productId": "P3", "serialNumbers": ["PX-02"]},
                {"productId": "P2", "quantity": 3},
            ],
        },
        doc_id="MO2",
    )
    put_document(
        conn,
        MATERIALS_OUT,
        {
            "status": "dispatched",
            "notes": "Camp supplies",
            "location": "rohini",
            "products": [{"productId": "P2", "quantity": 5}],
        },
        doc_id="MO3",
    )

    put_document(
        conn,
        SALES,
        {
            "saleDate": _day(base, 6),
            "products": [
                {"productId": "P1", "serialNumber": "SN1"},
                {"productId": "P4", "serialNumber": "-", "quantity": 4},
            ],
        },
        doc_id="S1",
    )
    put_document(
        conn,
        ENQUIRIES,
        {
            "name": "Demo Patient",
            "visits": [
                {"journeyStage": "trial", "products": [{"productId": "P3", "trialSerialNumber": "PX-01"}]},
                {
                    "hearingAidSale": True,
                    "salesAfterTax": 62000,
                    "products": [{"hearingAidProductId": "P3", "serialNumber": "PX-01"}],
                },
            ],
        },
        doc_id="E1",
    )
