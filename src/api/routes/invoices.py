"""Invoice API routes."""

from uuid import UUID

from fastapi import APIRouter, status

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import NotFoundError
from src.schemas.invoice import (
    ClientOption,
    InvoiceDraft,
    InvoiceItem,
    InvoiceOptions,
    InvoicePreview,
    InvoiceResponse,
    ProductOption,
)
from src.services.invoice_service import InvoiceService, line_from_product

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get(
    "/options",
    response_model=InvoiceOptions,
    summary="Invoice form options",
    description="Clients and products the user can pick from when creating an invoice.",
)
async def get_invoice_options(user: CurrentUser) -> InvoiceOptions:
    """Load clients and products for the invoice form."""
    service = InvoiceService()
    clients = await service.list_clients(user.user_id)
    products = await service.list_products(user.user_id)
    return InvoiceOptions(
        clients=[ClientOption(**row) for row in clients],
        products=[ProductOption(**row) for row in products],
    )


@router.get(
    "/products/{product_id}/line",
    response_model=InvoiceItem,
    summary="Line item from product",
    description="Returns an invoice line prefilled from a product (quantity 1, product price).",
)
async def get_product_line(product_id: UUID, user: CurrentUser) -> InvoiceItem:
    """Build an invoice line from one of the user's products."""
    service = InvoiceService()
    products = await service.list_products(user.user_id)
    for row in products:
        product = ProductOption(**row)
        if product.id == product_id:
            return line_from_product(product)
    raise NotFoundError("Product not found")


@router.post(
    "/preview",
    response_model=InvoicePreview,
    summary="Preview invoice total",
)
async def preview_invoice(draft: InvoiceDraft, user: CurrentUser) -> InvoicePreview:
    """Compute the derived total of a draft without storing it."""
    service = InvoiceService()
    return InvoicePreview(**service.preview(draft))


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
)
async def create_invoice(draft: InvoiceDraft, user: CurrentUser) -> InvoiceResponse:
    """Number and store an invoice.

    Args:
        draft: Invoice date, due date, client and line items.
        user: The authenticated user context.

    Returns:
        InvoiceResponse: The stored invoice.
    """
    service = InvoiceService()
    invoice = await service.create_invoice(user.user_id, draft)
    return InvoiceResponse(**invoice)
