"""Shared test helpers: signing key, test identities and an in-memory backend."""

import asyncio
import os
import time
import uuid
from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.algorithms import ECAlgorithm

# Throwaway ES256 key pair used to sign test tokens
TEST_PRIVATE_KEY = ec.generate_private_key(ec.SECP256R1())
TEST_PUBLIC_JWK = ECAlgorithm.to_jwk(TEST_PRIVATE_KEY.public_key())

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ["SUPABASE_SIGNING_KEY_JWK"] = TEST_PUBLIC_JWK

OWNER_ID = uuid.UUID("550e8400-e29b-41d4-a716-446655440000")
MEMBER_ID = uuid.UUID("660e8400-e29b-41d4-a716-446655440000")
OUTSIDER_ID = uuid.UUID("770e8400-e29b-41d4-a716-446655440000")


def create_test_token(
    sub: str = str(OWNER_ID),
    email: str | None = "owner@acme.test",
    exp_offset: int = 3600,
    private_key: Any = None,
    **claims: Any,
) -> str:
    """Create an ES256-signed test JWT.

    Args:
        sub: Subject (user ID).
        email: User email.
        exp_offset: Seconds from now for expiration (negative for expired).
        private_key: Signing key; defaults to the key matching the configured JWK.
        **claims: Extra or overriding claims.

    Returns:
        str: Encoded JWT token.
    """
    now = int(time.time())
    payload = {
        "sub": sub,
        "email": email,
        "role": "authenticated",
        "exp": now + exp_offset,
        "iat": now,
        "aud": "authenticated",
        "user_metadata": {"full_name": "Test User"},
    }
    payload.update(claims)
    return jwt.encode(payload, private_key or TEST_PRIVATE_KEY, algorithm="ES256")


class FakeBackend:
    """In-memory stand-in for CompanyService and InvitationService.

    Implements the same coroutine methods over plain dicts. `gates` lets a
    test hold list_members() open to interleave concurrent calls.
    """

    def __init__(self) -> None:
        self.profiles: dict[str, dict[str, Any]] = {}
        self.company_users: list[dict[str, Any]] = []
        self.users_by_email: dict[str, str] = {}
        self.calls: list[str] = []
        self.gates: list[asyncio.Event] = []
        self.fail_on: set[str] = set()

    # Seeding helpers

    def add_user(self, user_id: uuid.UUID, email: str, full_name: str | None = None) -> None:
        self.users_by_email[email] = str(user_id)
        self.profiles.setdefault(
            str(user_id),
            {"id": str(user_id), "email": email, "full_name": full_name, "company_name": None},
        )

    def add_company(self, owner_id: uuid.UUID, name: str = "Acme", email: str = "billing@acme.test") -> None:
        self.profiles[str(owner_id)].update(
            {
                "company_name": name,
                "company_email": email,
                "company_phone": "+1 555 0100",
                "billing_address": "1 Main St",
                "tax_number": "US123",
            }
        )
        self.add_membership(owner_id, owner_id, role="owner", status="active")

    def add_membership(
        self,
        company_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str = "member",
        status: str = "active",
    ) -> dict[str, Any]:
        row = {
            "id": str(uuid.uuid4()),
            "company_id": str(company_id),
            "user_id": str(user_id),
            "role": role,
            "status": status,
            "created_at": f"2024-01-01T00:00:{len(self.company_users):02d}Z",
            "updated_at": "2024-01-01T00:00:00Z",
        }
        self.company_users.append(row)
        return row

    def _with_profile(self, row: dict[str, Any]) -> dict[str, Any]:
        profile = self.profiles.get(row["user_id"], {})
        return {**row, "profiles": {"email": profile.get("email"), "full_name": profile.get("full_name")}}

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            from src.api.middleware.error_handler import BackendError

            raise BackendError(f"Failed to {name}")

    # CompanyService

    async def get_profile(self, user_id: uuid.UUID) -> dict[str, Any] | None:
        self._check("get_profile")
        row = self.profiles.get(str(user_id))
        return dict(row) if row else None

    async def update_profile(self, user_id: uuid.UUID, columns: dict[str, Any]) -> dict[str, Any]:
        self._check("update_profile")
        self.profiles[str(user_id)].update(columns)
        return dict(self.profiles[str(user_id)])

    async def get_user_membership(self, user_id: uuid.UUID) -> dict[str, Any] | None:
        self._check("get_user_membership")
        for row in self.company_users:
            if row["user_id"] == str(user_id) and row["status"] == "active":
                return self._with_profile(row)
        return None

    async def list_members(self, company_id: uuid.UUID) -> list[dict[str, Any]]:
        self._check("list_members")
        rows = [self._with_profile(r) for r in self.company_users if r["company_id"] == str(company_id)]
        if self.gates:
            await self.gates.pop(0).wait()
        return rows

    async def add_owner(self, company_id: uuid.UUID, user_id: uuid.UUID) -> dict[str, Any]:
        self._check("add_owner")
        for row in self.company_users:
            if row["company_id"] == str(company_id) and row["user_id"] == str(user_id):
                row.update({"role": "owner", "status": "active"})
                return dict(row)
        return self.add_membership(company_id, user_id, role="owner", status="active")

    async def remove_member(self, company_id: uuid.UUID, user_id: uuid.UUID) -> Any:
        self._check("remove_member")
        self.company_users = [
            r for r in self.company_users
            if not (r["company_id"] == str(company_id) and r["user_id"] == str(user_id))
        ]
        return True

    # InvitationService

    async def create_invitation(self, company_id: uuid.UUID, email: str, role: Any = None) -> dict[str, Any]:
        self._check("create_invitation")
        # Suspend like a network round trip so concurrent callers can interleave
        await asyncio.sleep(0)
        user_id = self.users_by_email.get(email)
        if user_id is None:
            user_id = str(uuid.uuid4())
            self.add_user(uuid.UUID(user_id), email)
        return self.add_membership(company_id, uuid.UUID(user_id), role="member", status="invited")

    async def accept_invitation(self, company_id: uuid.UUID, user_id: uuid.UUID) -> dict[str, Any]:
        self._check("accept_invitation")
        for row in self.company_users:
            if row["company_id"] == str(company_id) and row["user_id"] == str(user_id):
                row["status"] = "active"
                return dict(row)
        raise AssertionError("accept_invitation called without an invitation")

    async def list_user_invitations(self, user_id: uuid.UUID) -> list[dict[str, Any]]:
        self._check("list_user_invitations")
        return [
            self._with_profile(r)
            for r in self.company_users
            if r["user_id"] == str(user_id) and r["status"] in ("invited", "pending")
        ]
