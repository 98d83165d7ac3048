"""Invoice Pydantic schemas for API request/response models."""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from src.core.config import get_settings


def _default_due_date() -> dt.date:
    return dt.date.today() + dt.timedelta(days=get_settings().invoice_due_days)


class ClientOption(BaseModel):
    """Client selectable on an invoice."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Client identifier")
    name: str = Field(description="Client name")


class ProductOption(BaseModel):
    """Product selectable as an invoice line."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Product identifier")
    name: str = Field(description="Product name")
    price: Decimal = Field(ge=0, description="Unit price")
    description: str | None = Field(default=None, description="Product description")


class InvoiceItem(BaseModel):
    """Schema for a single invoice line."""

    description: str = Field(default="", max_length=500, description="Line description")
    quantity: int = Field(default=1, ge=1, description="Quantity")
    price: Decimal = Field(default=Decimal("0"), ge=0, description="Unit price")

    @computed_field
    @property
    def amount(self) -> Decimal:
        """Line total."""
        return self.quantity * self.price


class InvoiceDraft(BaseModel):
    """Invoice as entered by the user, before it is numbered and stored."""

    client_id: UUID = Field(description="Client being invoiced")
    date: dt.date = Field(default_factory=dt.date.today, description="Invoice date")
    due_date: dt.date = Field(default_factory=_default_due_date, description="Payment due date")
    items: list[InvoiceItem] = Field(min_length=1, description="Invoice lines")

    @model_validator(mode="after")
    def check_due_date(self) -> "InvoiceDraft":
        """Due date cannot precede the invoice date."""
        if self.due_date < self.date:
            raise ValueError("due_date must be on or after date")
        return self

    @computed_field
    @property
    def total(self) -> Decimal:
        """Sum of quantity times price over all lines."""
        return sum((item.amount for item in self.items), Decimal("0"))


class InvoiceOptions(BaseModel):
    """Clients and products available to the invoice form."""

    clients: list[ClientOption] = Field(default_factory=list, description="Selectable clients")
    products: list[ProductOption] = Field(default_factory=list, description="Selectable products")


class InvoicePreview(BaseModel):
    """Derived totals for a draft."""

    total: Decimal = Field(description="Invoice total")
    formatted_total: str = Field(description="Total formatted in the invoice currency")


class InvoiceResponse(BaseModel):
    """Schema for stored invoices."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Invoice identifier")
    number: str = Field(description="Invoice number, e.g. INV-123456")
    client_id: UUID = Field(description="Client being invoiced")
    date: dt.date = Field(description="Invoice date")
    due_date: dt.date = Field(description="Payment due date")
    items: list[InvoiceItem] = Field(description="Invoice lines")
    total: Decimal = Field(description="Invoice total")
    currency: str = Field(description="Currency code")
