"""Company settings API routes: profile form and team members."""

from uuid import UUID

from fastapi import APIRouter, status

from src.api.deps import Store
from src.schemas.company import (
    CompanyUpdate,
    InviteRequest,
    Membership,
    MembershipState,
)

router = APIRouter(prefix="/company", tags=["company"])


@router.get(
    "",
    response_model=MembershipState,
    summary="Get company settings",
    description="Returns the current user's company, its members and whether the user is an admin.",
)
async def get_company(store: Store) -> MembershipState:
    """Load company settings for the authenticated user.

    Args:
        store: Membership store bound to the user.

    Returns:
        MembershipState: Company (or null if none exists yet) and members.
    """
    return await store.fetch()


@router.put(
    "",
    response_model=MembershipState,
    summary="Create or update company",
    description=(
        "Creates the company with the caller as owner if none exists, "
        "otherwise patches only the provided fields."
    ),
)
async def update_company(data: CompanyUpdate, store: Store) -> MembershipState:
    """Save the company profile form.

    Args:
        data: Fields to write.
        store: Membership store bound to the user.

    Returns:
        MembershipState: State after the save.
    """
    await store.update_company(data)
    return store.snapshot()


@router.get(
    "/members",
    response_model=list[Membership],
    summary="List members",
)
async def list_members(store: Store) -> list[Membership]:
    """List members and outstanding invitations of the user's company."""
    state = await store.fetch()
    return state.members


@router.post(
    "/members/invite",
    response_model=MembershipState,
    status_code=status.HTTP_201_CREATED,
    summary="Invite member",
    description="Invites an email address to the company. Admins only.",
)
async def invite_member(data: InviteRequest, store: Store) -> MembershipState:
    """Invite a member by email.

    Args:
        data: Invitation request with email.
        store: Membership store bound to the user.

    Returns:
        MembershipState: State including the new invitation.
    """
    await store.invite_member(data.email)
    return store.snapshot()


@router.delete(
    "/members/{user_id}",
    response_model=MembershipState,
    summary="Remove member",
    description="Removes a member or revokes an invitation. Owners and admins cannot be removed.",
)
async def remove_member(user_id: UUID, store: Store) -> MembershipState:
    """Remove a member.

    Args:
        user_id: The member's user ID.
        store: Membership store bound to the user.

    Returns:
        MembershipState: State after removal.
    """
    await store.remove_member(user_id)
    return store.snapshot()
