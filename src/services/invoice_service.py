"""Invoice business logic service."""

import logging
import time
from decimal import Decimal
from typing import Any
from uuid import UUID

from src.api.middleware.error_handler import BackendError, NotFoundError
from src.core.config import get_settings
from src.core.supabase import execute, first_row, get_supabase_client
from src.models.invoice import InvoiceLineItem, InvoiceRow
from src.schemas.invoice import InvoiceDraft, InvoiceItem, ProductOption

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def generate_invoice_number(now_ms: int | None = None) -> str:
    """INV- followed by the last six digits of the epoch milliseconds."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"INV-{str(now_ms)[-6:]}"


def format_amount(amount: Decimal, currency: str) -> str:
    """Format an amount for display, e.g. $1,234.50."""
    quantized = amount.quantize(Decimal("0.01"))
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{quantized:,.2f}"
    return f"{quantized:,.2f} {currency.upper()}"


def line_from_product(product: ProductOption) -> InvoiceItem:
    """Invoice line prefilled from a catalog product."""
    return InvoiceItem(
        description=product.description or product.name,
        quantity=1,
        price=product.price,
    )


class InvoiceService:
    """Service for invoice options and invoice creation."""

    def __init__(self) -> None:
        """Initialize invoice service with Supabase client."""
        self.client = get_supabase_client()
        self.settings = get_settings()

    async def list_clients(self, user_id: UUID) -> list[dict[str, Any]]:
        """Clients owned by a user, by name."""
        response = await execute(
            self.client.table("clients")
            .select("id, name")
            .eq("user_id", str(user_id))
            .order("name"),
            "load clients",
        )

        return response.data or []

    async def get_client(self, user_id: UUID, client_id: UUID) -> dict[str, Any] | None:
        """One of the user's clients, or None if it is missing or belongs to someone else."""
        response = await execute(
            self.client.table("clients")
            .select("id, name")
            .eq("id", str(client_id))
            .eq("user_id", str(user_id))
            .limit(1),
            "load client",
        )

        return first_row(response.data)

    async def list_products(self, user_id: UUID) -> list[dict[str, Any]]:
        """Products owned by a user, by name."""
        response = await execute(
            self.client.table("products")
            .select("id, name, price, description")
            .eq("user_id", str(user_id))
            .order("name"),
            "load products",
        )

        return response.data or []

    def preview(self, draft: InvoiceDraft) -> dict[str, Any]:
        """Derived total of a draft, raw and formatted."""
        return {
            "total": draft.total,
            "formatted_total": format_amount(draft.total, self.settings.invoice_currency),
        }

    async def create_invoice(self, user_id: UUID, draft: InvoiceDraft) -> InvoiceRow:
        """Number and store an invoice.

        Args:
            user_id: The issuing user's ID.
            draft: Validated invoice draft.

        Returns:
            InvoiceRow: The stored invoice row.

        Raises:
            NotFoundError: If the client is not one of the user's.
        """
        if await self.get_client(user_id, draft.client_id) is None:
            raise NotFoundError("Client not found")

        items: list[InvoiceLineItem] = [
            {
                "description": item.description,
                "quantity": item.quantity,
                "price": str(item.price),
            }
            for item in draft.items
        ]
        invoice_data = {
            "user_id": str(user_id),
            "client_id": str(draft.client_id),
            "number": generate_invoice_number(),
            "date": draft.date.isoformat(),
            "due_date": draft.due_date.isoformat(),
            "items": items,
            "total": str(draft.total),
            "currency": self.settings.invoice_currency,
        }

        response = await execute(
            self.client.table("invoices").insert(invoice_data),
            "create invoice",
        )

        row = first_row(response.data)
        if row is None:
            raise BackendError("Invoice insert returned no row")

        logger.info("Invoice %s created for client %s", row.get("number"), draft.client_id)
        return row
