"""Invoice model type definitions for database operations."""

from datetime import date, datetime
from typing import TypedDict


class InvoiceLineItem(TypedDict):
    """Structure for a single line item in an invoice.

    Stored as part of the items JSONB array.
    """

    description: str
    quantity: int
    price: str


class InvoiceRow(TypedDict):
    """invoices table row."""

    id: str
    user_id: str
    client_id: str
    number: str
    date: date
    due_date: date
    items: list[InvoiceLineItem]
    total: str
    currency: str
    created_at: datetime
