"""Company and membership Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.models.company import COMPANY_PROFILE_COLUMNS, MemberRole, MembershipStatus


class Company(BaseModel):
    """Company profile as shown on the settings page."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Company identifier (the owner's profile ID)")
    owner_id: UUID = Field(description="Profile ID of the creating user")
    name: str = Field(description="Company name")
    email: str = Field(default="", description="Contact email")
    phone: str = Field(default="", description="Contact phone")
    address: str = Field(default="", description="Billing address")
    tax_id: str = Field(default="", description="Tax / VAT identifier")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")

    @classmethod
    def from_profile(cls, row: dict[str, Any]) -> "Company | None":
        """Build a Company from a profiles row, or None if no company was set up."""
        if not row.get("company_name"):
            return None
        return cls(
            id=row["id"],
            owner_id=row["id"],
            name=row["company_name"],
            email=row.get("company_email") or "",
            phone=row.get("company_phone") or "",
            address=row.get("billing_address") or "",
            tax_id=row.get("tax_number") or "",
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class CompanyUpdate(BaseModel):
    """Partial company update. Only fields that are set are written."""

    name: str | None = Field(default=None, max_length=255, description="Company name")
    email: str | None = Field(default=None, max_length=255, description="Contact email")
    phone: str | None = Field(default=None, max_length=64, description="Contact phone")
    address: str | None = Field(default=None, max_length=500, description="Billing address")
    tax_id: str | None = Field(default=None, max_length=64, description="Tax / VAT identifier")

    def to_profile_columns(self) -> dict[str, str]:
        """Map the provided fields onto profiles column names."""
        fields = self.model_dump(exclude_unset=True, exclude_none=True)
        return {COMPANY_PROFILE_COLUMNS[key]: value for key, value in fields.items()}


class Membership(BaseModel):
    """A user's membership in a company."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Membership record ID")
    company_id: UUID = Field(description="Company ID")
    user_id: UUID = Field(description="Member's user ID")
    email: str | None = Field(default=None, description="Member email")
    display_name: str | None = Field(default=None, description="Member display name")
    role: MemberRole = Field(description="Member's role in the company")
    status: MembershipStatus = Field(description="Membership status")
    created_at: datetime | None = Field(default=None, description="When the membership was created")
    updated_at: datetime | None = Field(default=None, description="Last status change")

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Membership":
        """Build a Membership from a company_users row with an embedded profile."""
        profile = row.get("profiles") or {}
        return cls(
            id=row["id"],
            company_id=row["company_id"],
            user_id=row["user_id"],
            email=profile.get("email") or row.get("email"),
            display_name=profile.get("full_name") or row.get("full_name"),
            role=row["role"],
            status=row["status"],
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class MembershipState(BaseModel):
    """Read-only snapshot of a MembershipStore."""

    company: Company | None = Field(default=None, description="Current company, if any")
    members: list[Membership] = Field(default_factory=list, description="Members and invitations")
    loading: bool = Field(default=False, description="True while a backend call is in flight")
    error: str | None = Field(default=None, description="Last recorded error message")
    is_admin: bool = Field(default=False, description="Whether the caller may manage members")


class InviteRequest(BaseModel):
    """Request schema for inviting a member."""

    email: EmailStr = Field(..., description="Email address to invite")
