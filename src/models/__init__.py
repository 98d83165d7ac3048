"""Database model type definitions."""

from src.models.company import (
    COMPANY_PROFILE_COLUMNS,
    CompanyUserRow,
    MemberProfileEmbed,
    MemberRole,
    MembershipStatus,
    ProfileRow,
)
from src.models.invoice import InvoiceLineItem, InvoiceRow

__all__ = [
    "COMPANY_PROFILE_COLUMNS",
    "CompanyUserRow",
    "InvoiceLineItem",
    "InvoiceRow",
    "MemberProfileEmbed",
    "MemberRole",
    "MembershipStatus",
    "ProfileRow",
]
