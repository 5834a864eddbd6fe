"""Dependency injection singletons for Metabase-Tenancy."""

from metabase_tenancy.common.config import get_settings
from metabase_tenancy.common.database import DatabaseManager
from metabase_tenancy.mappings.service import MappingService
from metabase_tenancy.metabase.client import MetabaseClient
from metabase_tenancy.metabase.graph import GraphEditor
from metabase_tenancy.provisioning.config import ProvisioningConfig
from metabase_tenancy.provisioning.dashboards import DashboardProvisioner
from metabase_tenancy.provisioning.folders import CollectionResolver
from metabase_tenancy.provisioning.groups import TenantGroupResolver
from metabase_tenancy.provisioning.service import ResolutionService
from metabase_tenancy.tokens.issuer import TokenIssuer

_db: DatabaseManager | None = None
_metabase: MetabaseClient | None = None
_resolution: ResolutionService | None = None
_issuer: TokenIssuer | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_metabase_client() -> MetabaseClient:
    global _metabase
    if _metabase is None:
        settings = get_settings()
        _metabase = MetabaseClient(
            settings.metabase_url,
            settings.metabase_api_key,
            timeout=settings.metabase_timeout,
        )
    return _metabase


def build_resolution_service(
    db: DatabaseManager,
    client: MetabaseClient,
    config: ProvisioningConfig,
    graph_write_attempts: int = 3,
) -> ResolutionService:
    """Wire the resolver chain around one client and one graph editor."""
    mappings = MappingService()
    editor = GraphEditor(client, max_attempts=graph_write_attempts)
    groups = TenantGroupResolver(client, editor, config)
    folders = CollectionResolver(db, mappings, groups, client, editor, config)
    provisioner = DashboardProvisioner(client, folders, config)
    return ResolutionService(db, mappings, provisioner, client, config)


def get_resolution_service() -> ResolutionService:
    global _resolution
    if _resolution is None:
        settings = get_settings()
        _resolution = build_resolution_service(
            get_db(),
            get_metabase_client(),
            ProvisioningConfig.from_settings(settings),
            graph_write_attempts=settings.graph_write_attempts,
        )
    return _resolution


def get_token_issuer() -> TokenIssuer:
    global _issuer
    if _issuer is None:
        settings = get_settings()
        _issuer = TokenIssuer(
            settings.metabase_secret,
            group_name_prefix=settings.group_name_prefix,
            ttl_seconds=settings.token_ttl,
            default_first_name=settings.token_default_first_name,
            default_last_name=settings.token_default_last_name,
        )
    return _issuer


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _metabase, _resolution, _issuer
    _db = None
    _metabase = None
    _resolution = None
    _issuer = None
