"""Company and membership type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict


class MemberRole(str, Enum):
    """Roles a user can hold inside a company."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @property
    def is_admin(self) -> bool:
        """Owners and admins manage members and are never removable."""
        return self in (MemberRole.OWNER, MemberRole.ADMIN)


class MembershipStatus(str, Enum):
    """Membership lifecycle states.

    invited/pending -> active on acceptance. Removal deletes the row.
    """

    INVITED = "invited"
    PENDING = "pending"
    ACTIVE = "active"

    @property
    def is_awaiting_acceptance(self) -> bool:
        return self in (MembershipStatus.INVITED, MembershipStatus.PENDING)


class ProfileRow(TypedDict):
    """profiles table row. Company fields live on the owner's profile."""

    id: str
    email: str | None
    full_name: str | None
    company_name: str | None
    company_email: str | None
    company_phone: str | None
    billing_address: str | None
    tax_number: str | None
    created_at: datetime
    updated_at: datetime


class MemberProfileEmbed(TypedDict):
    """profiles columns embedded into a company_users select."""

    email: str | None
    full_name: str | None


class CompanyUserRow(TypedDict):
    """company_users table row.

    One row per (company_id, user_id).
    """

    id: str
    company_id: str
    user_id: str
    role: str
    status: str
    created_at: datetime
    updated_at: datetime
    profiles: MemberProfileEmbed | None


# Mapping between Company field names and profiles columns
COMPANY_PROFILE_COLUMNS: dict[str, str] = {
    "name": "company_name",
    "email": "company_email",
    "phone": "company_phone",
    "address": "billing_address",
    "tax_id": "tax_number",
}
