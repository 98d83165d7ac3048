"""Company profile and membership queries against Supabase."""

import logging
from typing import Any
from uuid import UUID

from src.api.middleware.error_handler import BackendError
from src.core.supabase import execute, first_row, get_supabase_client
from src.models.company import CompanyUserRow, MemberRole, MembershipStatus, ProfileRow

logger = logging.getLogger(__name__)

MEMBER_COLUMNS = "id, company_id, user_id, role, status, created_at, updated_at, profiles!company_users_user_id_fkey(email, full_name)"


class CompanyService:
    """Service for reading and writing company data and memberships."""

    def __init__(self) -> None:
        """Initialize company service with Supabase client."""
        self.client = get_supabase_client()

    async def get_profile(self, user_id: UUID) -> ProfileRow | None:
        """Get a profiles row by identity ID.

        Args:
            user_id: The auth user ID (also the profile's primary key).

        Returns:
            dict | None: The profile row or None if not found.
        """
        response = await execute(
            self.client.table("profiles")
            .select("*")
            .eq("id", str(user_id))
            .maybe_single(),
            "load profile",
        )

        return response.data if response and response.data else None

    async def update_profile(self, user_id: UUID, columns: dict[str, Any]) -> ProfileRow:
        """Patch company columns on a profile.

        Args:
            user_id: The profile owner's ID.
            columns: profiles columns to write.

        Returns:
            dict: The updated profile row.

        Raises:
            BackendError: If no row was updated.
        """
        response = await execute(
            self.client.table("profiles")
            .update(columns)
            .eq("id", str(user_id)),
            "update company profile",
        )

        row = first_row(response.data)
        if row is None:
            raise BackendError("Company profile update returned no row")
        return row

    async def get_user_membership(self, user_id: UUID) -> CompanyUserRow | None:
        """Get the active membership that scopes a user to a company.

        Args:
            user_id: The user's ID.

        Returns:
            dict | None: The company_users row or None if the user has no company.
        """
        response = await execute(
            self.client.table("company_users")
            .select(MEMBER_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("status", MembershipStatus.ACTIVE.value)
            .order("created_at")
            .limit(1),
            "load membership",
        )

        return first_row(response.data)

    async def list_members(self, company_id: UUID) -> list[CompanyUserRow]:
        """Get all memberships of a company with member profiles.

        Args:
            company_id: The company's ID.

        Returns:
            list[dict]: company_users rows, oldest first.
        """
        response = await execute(
            self.client.table("company_users")
            .select(MEMBER_COLUMNS)
            .eq("company_id", str(company_id))
            .order("created_at"),
            "load members",
        )

        return response.data or []

    async def add_owner(self, company_id: UUID, user_id: UUID) -> CompanyUserRow:
        """Record the creating user as the company's active owner.

        Args:
            company_id: The company's ID.
            user_id: The creating user's ID.

        Returns:
            dict: The created membership row.
        """
        member_data = {
            "company_id": str(company_id),
            "user_id": str(user_id),
            "role": MemberRole.OWNER.value,
            "status": MembershipStatus.ACTIVE.value,
        }

        response = await execute(
            self.client.table("company_users").upsert(member_data, on_conflict="company_id,user_id"),
            "create owner membership",
        )

        row = first_row(response.data)
        if row is None:
            raise BackendError("Owner membership insert returned no row")
        logger.info("Company %s created by %s", company_id, user_id)
        return row

    async def remove_member(self, company_id: UUID, user_id: UUID) -> Any:
        """Remove a member through the remove_company_member procedure.

        Args:
            company_id: The company's ID.
            user_id: The member's user ID.

        Returns:
            The procedure's confirmation payload.
        """
        response = await execute(
            self.client.rpc(
                "remove_company_member",
                {"company_id": str(company_id), "user_id": str(user_id)},
            ),
            "remove member",
        )

        logger.info("Removed member %s from company %s", user_id, company_id)
        return response.data
