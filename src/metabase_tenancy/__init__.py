"""Metabase-Tenancy: per-tenant Metabase dashboard provisioning and SSO tokens."""

from metabase_tenancy.metabase.client import MetabaseClient
from metabase_tenancy.provisioning.config import ProvisioningConfig, parse_tenant_id
from metabase_tenancy.tokens.issuer import TokenIssuer

__all__ = [
    "MetabaseClient",
    "ProvisioningConfig",
    "TokenIssuer",
    "parse_tenant_id",
]
__version__ = "0.1.0"
