"""Invitation API routes for the invited user."""

from uuid import UUID

from fastapi import APIRouter

from src.api.deps import Store
from src.schemas.company import Membership

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get(
    "",
    response_model=list[Membership],
    summary="List my invitations",
    description="Returns invitations awaiting the authenticated user's acceptance.",
)
async def list_my_invitations(store: Store) -> list[Membership]:
    """List pending invitations for the current user."""
    return await store.pending_invitations()


@router.post(
    "/{company_id}/accept",
    response_model=Membership,
    summary="Accept invitation",
    description="Accepts an invitation and joins the company.",
)
async def accept_invitation(company_id: UUID, store: Store) -> Membership:
    """Accept an invitation to join a company.

    Args:
        company_id: The inviting company's ID.
        store: Membership store bound to the user.

    Returns:
        Membership: The now-active membership.
    """
    return await store.accept_invitation(company_id)
