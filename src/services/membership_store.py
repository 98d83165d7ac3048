"""Membership store: company profile and team state for the signed-in user.

State held here is a projection of backend state. Every mutation goes to
Supabase first and the store then re-fetches the canonical company and
member list; local lists are never patched by hand.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from src.api.middleware.error_handler import (
    APIError,
    BackendError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from src.models.company import MemberRole, MembershipStatus
from src.schemas.auth import UserContext
from src.schemas.company import Company, CompanyUpdate, Membership, MembershipState
from src.services.company_service import CompanyService
from src.services.invitation_service import InvitationService
from src.services.session_provider import SessionProvider

logger = logging.getLogger(__name__)

# Locks live only while some store holds or awaits them.
_company_locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()


def company_lock(company_id: UUID) -> asyncio.Lock:
    """Mutation lock shared by every store working on one company."""
    lock = _company_locks.get(company_id)
    if lock is None:
        lock = asyncio.Lock()
        _company_locks[company_id] = lock
    return lock


@dataclass
class _Snapshot:
    company: Company | None = None
    members: list[Membership] = field(default_factory=list)
    is_admin: bool = False


def _parse_memberships(rows: list[dict[str, Any]]) -> list[Membership]:
    try:
        return [Membership.from_row(row) for row in rows]
    except (KeyError, PydanticValidationError) as e:
        raise BackendError("Unexpected membership data from backend") from e


def _parse_company(profile: dict[str, Any] | None) -> Company | None:
    if not profile:
        return None
    try:
        return Company.from_profile(profile)
    except (KeyError, PydanticValidationError) as e:
        raise BackendError("Unexpected company data from backend") from e


def _parse_update(fields: CompanyUpdate | dict[str, Any]) -> CompanyUpdate:
    if isinstance(fields, CompanyUpdate):
        return fields
    try:
        return CompanyUpdate(**fields)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "details"
        raise ValidationError(f"Invalid company {location}: {first['msg']}") from e


def derive_is_admin(company: Company | None, members: list[Membership], user_id: UUID) -> bool:
    """True iff the user created the company or holds an active owner/admin membership."""
    if company is None:
        return False
    if company.owner_id == user_id:
        return True
    return any(
        m.user_id == user_id and m.role.is_admin and m.status == MembershipStatus.ACTIVE
        for m in members
    )


class MembershipStore:
    """Company and membership state scoped to the session's identity.

    Mutations take the company's shared lock, so stores in different requests
    never interleave writes to one company. Fetches are not locked: each one
    builds a complete snapshot and swaps it in, so whichever settles last wins.
    """

    def __init__(
        self,
        session: SessionProvider,
        company_service: CompanyService | None = None,
        invitation_service: InvitationService | None = None,
    ) -> None:
        self.session = session
        self.company_service = company_service or CompanyService()
        self.invitation_service = invitation_service or InvitationService()

        self.company: Company | None = None
        self.members: list[Membership] = []
        self.error: str | None = None
        self.is_admin = False

        self._in_flight = 0
        self._loaded = False
        self._refresh_task: asyncio.Task | None = None
        self._user_id = session.current_user.user_id if session.current_user else None
        self._unsubscribe = session.subscribe(self._on_identity_change)

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def snapshot(self) -> MembershipState:
        """Current state as a serializable model."""
        return MembershipState(
            company=self.company,
            members=list(self.members),
            loading=self.loading,
            error=self.error,
            is_admin=self.is_admin,
        )

    async def close(self) -> None:
        """Stop following the session and cancel any pending refresh."""
        self._unsubscribe()
        task = self._refresh_task
        self._refresh_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    # Identity

    def _on_identity_change(self, user: UserContext | None) -> None:
        new_id = user.user_id if user else None
        if new_id == self._user_id:
            return

        self._user_id = new_id
        self._apply_empty()
        self.error = None

        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None

        if user is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the next fetch() loads the new identity's data.
            return
        self._refresh_task = loop.create_task(self._refresh())

    async def _refresh(self) -> None:
        try:
            await self.fetch()
        except APIError:
            # Already recorded in self.error by fetch().
            pass

    def _require_identity(self) -> UserContext:
        user = self.session.current_user
        if user is None:
            raise PreconditionError("Sign in to manage your company")
        return user

    # Loading

    async def _load(self, user: UserContext) -> _Snapshot:
        membership = await self.company_service.get_user_membership(user.user_id)
        try:
            company_id = UUID(str(membership["company_id"])) if membership else user.user_id
        except (KeyError, ValueError) as e:
            raise BackendError("Unexpected membership data from backend") from e

        company = _parse_company(await self.company_service.get_profile(company_id))
        if company is None:
            return _Snapshot()

        members = _parse_memberships(await self.company_service.list_members(company.id))
        return _Snapshot(
            company=company,
            members=members,
            is_admin=derive_is_admin(company, members, user.user_id),
        )

    def _apply(self, user: UserContext, snapshot: _Snapshot) -> None:
        if user.user_id != self._user_id:
            logger.debug("Discarding snapshot for previous identity %s", user.user_id)
            return
        self.company = snapshot.company
        self.members = snapshot.members
        self.is_admin = snapshot.is_admin
        self._loaded = True

    def _apply_empty(self) -> None:
        self.company = None
        self.members = []
        self.is_admin = False
        self._loaded = False

    async def fetch(self) -> MembershipState:
        """Load company and members for the current identity.

        On failure the previous state stays in place and the message is
        recorded in `error` before the exception propagates.
        """
        user = self.session.current_user
        if user is None:
            self._apply_empty()
            return self.snapshot()

        self._in_flight += 1
        self.error = None
        try:
            snapshot = await self._load(user)
            self._apply(user, snapshot)
        except APIError as e:
            self.error = e.message
            logger.warning("Company fetch failed: %s", e.message)
            raise
        finally:
            self._in_flight -= 1

        return self.snapshot()

    async def _ensure_loaded(self, user: UserContext) -> None:
        if not self._loaded:
            self._apply(user, await self._load(user))

    async def _reconcile(self, user: UserContext) -> None:
        """Re-fetch canonical state after a backend mutation settles."""
        try:
            self._apply(user, await self._load(user))
        except APIError as e:
            self.error = f"Saved, but refreshing company data failed: {e.message}"
            logger.warning("Reconcile after mutation failed: %s", e.message)

    # Mutations

    @asynccontextmanager
    async def _mutation(self, action: str, company_id: UUID | None = None) -> AsyncIterator[UserContext]:
        """Run a mutation under the company's lock against freshly loaded state.

        Without an explicit company the store's own company is used, or the
        caller's id when there is none yet (a new company takes the creator's id).
        """
        self.error = None
        self._in_flight += 1
        try:
            user = self._require_identity()
            if company_id is None:
                await self._ensure_loaded(user)
                company_id = self.company.id if self.company else user.user_id
            async with company_lock(company_id):
                self._apply(user, await self._load(user))
                yield user
        except APIError as e:
            self.error = e.message
            logger.warning("Failed to %s: %s", action, e.message)
            raise
        except Exception as e:
            self.error = str(e) or "An error occurred"
            logger.error("Failed to %s: %s", action, e)
            raise
        finally:
            self._in_flight -= 1

    def _owner_row_missing(self, user: UserContext) -> bool:
        return (
            self.company is not None
            and self.company.owner_id == user.user_id
            and not any(m.user_id == user.user_id and m.role == MemberRole.OWNER for m in self.members)
        )

    async def update_company(self, fields: CompanyUpdate | dict[str, Any]) -> Company:
        """Create the company on first save, otherwise patch the given fields.

        A save by the creator also restores a missing owner membership, so a
        creation that failed halfway is completed by retrying it.

        Raises:
            ValidationError: If name or email is missing on creation, or a field is blanked.
            PreconditionError: If the caller may not edit an existing company.
        """
        async with self._mutation("update company") as user:
            update = _parse_update(fields)

            if self.company is None:
                # Contact email defaults to the creator's own address.
                if "email" not in update.model_fields_set and user.email:
                    update = update.model_copy(update={"email": user.email})
                missing = [name for name in ("name", "email") if not (getattr(update, name) or "").strip()]
                if missing:
                    raise ValidationError(f"Company {' and '.join(missing)} required")
                columns = update.to_profile_columns()
                try:
                    await self.company_service.update_profile(user.user_id, columns)
                    await self.company_service.add_owner(user.user_id, user.user_id)
                finally:
                    await self._reconcile(user)
            else:
                if not self.is_admin:
                    raise PreconditionError("Only company admins can update company details")
                blank = [
                    name
                    for name in ("name", "email")
                    if name in update.model_fields_set and not (getattr(update, name) or "").strip()
                ]
                if blank:
                    raise ValidationError(f"Company {' and '.join(blank)} cannot be empty")
                columns = update.to_profile_columns()
                owner_missing = self._owner_row_missing(user)
                if columns or owner_missing:
                    try:
                        if columns:
                            await self.company_service.update_profile(self.company.owner_id, columns)
                        if owner_missing:
                            logger.info("Restoring owner membership for company %s", self.company.id)
                            await self.company_service.add_owner(self.company.id, user.user_id)
                    finally:
                        await self._reconcile(user)

            if self.company is None:
                raise BackendError("Company was saved but could not be loaded")
            return self.company

    async def invite_member(self, email: str) -> Membership:
        """Invite an email address to the company.

        Returns:
            Membership: The invitation record created by the backend.

        Raises:
            PreconditionError: If there is no company or the caller is not an admin.
            ValidationError: If the email is empty or already a member.
        """
        async with self._mutation("invite member") as user:
            if self.company is None:
                raise PreconditionError("Create a company before inviting members")
            if not self.is_admin:
                raise PreconditionError("Only company admins can invite members")

            address = email.strip().lower()
            if not address:
                raise ValidationError("Email is required")
            if any(m.email and m.email.lower() == address for m in self.members):
                raise ValidationError(f"{address} is already a member of this company")

            company_id = self.company.id
            try:
                row = await self.invitation_service.create_invitation(company_id, address)
                invitation = _parse_memberships([row])[0]
                if invitation.company_id != company_id or not invitation.status.is_awaiting_acceptance:
                    raise BackendError("Invitation returned an unexpected membership record")
            finally:
                await self._reconcile(user)

            return invitation

    async def remove_member(self, user_id: UUID) -> None:
        """Remove a member or revoke an invitation.

        Raises:
            PreconditionError: If the caller is not an admin or the target is an owner/admin.
            NotFoundError: If the user has no membership in this company.
        """
        async with self._mutation("remove member") as user:
            if self.company is None:
                raise PreconditionError("No company to remove members from")
            if not self.is_admin:
                raise PreconditionError("Only company admins can remove members")

            target = next((m for m in self.members if m.user_id == user_id), None)
            if target is None:
                raise NotFoundError("Member not found in company")
            if target.role.is_admin:
                raise PreconditionError(f"Cannot remove a company {target.role.value}")

            try:
                await self.company_service.remove_member(self.company.id, user_id)
            finally:
                await self._reconcile(user)

    async def pending_invitations(self) -> list[Membership]:
        """Invitations awaiting the current identity's acceptance."""
        user = self._require_identity()
        rows = await self.invitation_service.list_user_invitations(user.user_id)
        return [m for m in _parse_memberships(rows) if m.status.is_awaiting_acceptance]

    async def accept_invitation(self, company_id: UUID) -> Membership:
        """Accept the current identity's invitation to a company.

        Returns:
            Membership: The now-active membership.

        Raises:
            NotFoundError: If there is no invited/pending membership for that company.
        """
        async with self._mutation("accept invitation", company_id) as user:
            invitations = await self.pending_invitations()
            if not any(m.company_id == company_id for m in invitations):
                raise NotFoundError("No pending invitation for this company")

            try:
                row = await self.invitation_service.accept_invitation(company_id, user.user_id)
                membership = _parse_memberships([row])[0]
                if membership.status != MembershipStatus.ACTIVE:
                    raise BackendError("Invitation acceptance did not activate the membership")
            finally:
                await self._reconcile(user)

            return membership
