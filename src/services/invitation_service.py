"""Invitation procedures against Supabase."""

import logging
from uuid import UUID

from src.api.middleware.error_handler import BackendError
from src.core.supabase import execute, first_row, get_supabase_client
from src.models.company import CompanyUserRow, MemberRole, MembershipStatus
from src.services.company_service import MEMBER_COLUMNS

logger = logging.getLogger(__name__)


class InvitationService:
    """Service for company invitations.

    Invitations are company_users rows in status invited/pending. They are
    created and accepted only through the handle_user_invitation and
    accept_invitation procedures.
    """

    def __init__(self) -> None:
        """Initialize invitation service with Supabase client."""
        self.client = get_supabase_client()

    async def create_invitation(
        self,
        company_id: UUID,
        email: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> CompanyUserRow:
        """Invite an email address to a company.

        Args:
            company_id: The company's ID.
            email: Address to invite.
            role: Role the member receives on acceptance.

        Returns:
            dict: The membership row created by the backend.

        Raises:
            BackendError: If the procedure fails or returns nothing.
        """
        response = await execute(
            self.client.rpc(
                "handle_user_invitation",
                {"company_id": str(company_id), "email": email, "role": role.value},
            ),
            "invite member",
        )

        row = first_row(response.data)
        if row is None:
            raise BackendError("Invitation returned no membership record")

        logger.info("Invited %s to company %s", email, company_id)
        return row

    async def accept_invitation(self, company_id: UUID, user_id: UUID) -> CompanyUserRow:
        """Accept a pending invitation.

        Args:
            company_id: The inviting company's ID.
            user_id: The accepting user's ID.

        Returns:
            dict: The updated membership row.
        """
        response = await execute(
            self.client.rpc(
                "accept_invitation",
                {"company_id": str(company_id), "user_id": str(user_id)},
            ),
            "accept invitation",
        )

        row = first_row(response.data)
        if row is None:
            raise BackendError("Invitation acceptance returned no membership record")

        logger.info("User %s accepted invitation to company %s", user_id, company_id)
        return row

    async def list_user_invitations(self, user_id: UUID) -> list[CompanyUserRow]:
        """List invitations awaiting a user's acceptance.

        Args:
            user_id: The invited user's ID.

        Returns:
            list[dict]: company_users rows in status invited or pending, newest first.
        """
        response = await execute(
            self.client.table("company_users")
            .select(MEMBER_COLUMNS)
            .eq("user_id", str(user_id))
            .in_("status", [MembershipStatus.INVITED.value, MembershipStatus.PENDING.value])
            .order("created_at", desc=True),
            "load invitations",
        )

        return response.data or []
