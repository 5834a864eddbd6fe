"""Signed Metabase SSO tokens scoped to a tenant's group.

The token's ``groups`` claim must name a group that exists in Metabase and is
permissioned for the tenant's folder, otherwise the embedded dashboard shows
no data. Issue tokens only after the tenant has been resolved.
"""

import time
from typing import Any, Mapping, Optional

import jwt

from metabase_tenancy.provisioning.config import parse_tenant_id

ALGORITHM = "HS256"


class TokenIssuer:
    """Builds and signs the tenant-scoped claim set."""

    def __init__(
        self,
        secret: str,
        group_name_prefix: str = "Tenant_",
        ttl_seconds: int = 86400,
        default_first_name: str = "User",
        default_last_name: str = "Soffront",
    ):
        self.secret = secret
        self.group_name_prefix = group_name_prefix
        self.ttl_seconds = ttl_seconds
        self.default_first_name = default_first_name
        self.default_last_name = default_last_name

    def build_claims(
        self,
        tenant_id: Any,
        email: Optional[str],
        profile: Optional[Mapping[str, Any]] = None,
        now: Optional[int] = None,
    ) -> dict[str, Any]:
        tenant_id = parse_tenant_id(tenant_id)
        profile = profile or {}
        issued_at = int(time.time()) if now is None else int(now)
        return {
            "email": email,
            "email_id": email,
            "first_name": profile.get("first_name") or self.default_first_name,
            "last_name": profile.get("last_name") or self.default_last_name,
            "groups": [f"{self.group_name_prefix}{tenant_id}"],
            "project_id": tenant_id,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }

    def issue_token(
        self,
        tenant_id: Any,
        email: Optional[str],
        profile: Optional[Mapping[str, Any]] = None,
        now: Optional[int] = None,
    ) -> str:
        claims = self.build_claims(tenant_id, email, profile, now=now)
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def decode_token(self, token: str, verify_exp: bool = True) -> dict[str, Any]:
        """Verify a token's signature (and expiry) and return its claims.

        Raises ``jwt.InvalidTokenError`` subclasses on failure.
        """
        return jwt.decode(
            token,
            self.secret,
            algorithms=[ALGORITHM],
            options={"verify_exp": verify_exp},
        )
