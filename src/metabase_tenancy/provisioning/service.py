"""ResolutionService — idempotent tenant dashboard resolution."""

import logging
from typing import Any, Optional

from metabase_tenancy.common.database import DatabaseManager
from metabase_tenancy.common.exceptions import MappingNotFoundError, MetabaseError
from metabase_tenancy.mappings.models import TenantMappingModel
from metabase_tenancy.mappings.service import MappingService
from metabase_tenancy.metabase.client import MetabaseClient
from metabase_tenancy.provisioning.config import ProvisioningConfig, parse_tenant_id
from metabase_tenancy.provisioning.dashboards import DashboardProvisioner
from metabase_tenancy.provisioning.locks import KeyedLock

logger = logging.getLogger(__name__)


class ResolutionService:
    """Resolves (tenant, module) to a dashboard id, provisioning it exactly once.

    Steps:
    1. Return the stored dashboard id if the tenant already has one for the module
    2. Otherwise, holding the tenant's lock, re-check and provision
       (group -> folder -> permissions -> dashboard copy)
    3. Store the id with an insert-if-absent; if another writer stored first,
       its id wins and the new copy is logged as orphaned
    """

    def __init__(
        self,
        db: DatabaseManager,
        mappings: MappingService,
        provisioner: DashboardProvisioner,
        client: MetabaseClient,
        config: ProvisioningConfig,
    ):
        self.db = db
        self.mappings = mappings
        self.provisioner = provisioner
        self.client = client
        self.config = config
        self._tenant_locks = KeyedLock()

    async def resolve(self, tenant_id: Any, module_name: Optional[str] = None) -> int:
        tenant_id = parse_tenant_id(tenant_id)
        module_name = module_name or self.config.default_module

        existing = await self._stored_dashboard(tenant_id, module_name)
        if existing is not None:
            logger.info("Found existing %s dashboard: %s", module_name, existing)
            return existing

        async with self._tenant_locks.hold(tenant_id):
            existing = await self._stored_dashboard(tenant_id, module_name)
            if existing is not None:
                return existing

            dashboard_id = await self.provisioner.provision(tenant_id, module_name)
            async with self.db.get_session() as session:
                stored = await self.mappings.record_dashboard(
                    session, tenant_id, module_name, dashboard_id
                )

        if stored != dashboard_id:
            logger.warning(
                "%s dashboard for Project %s was stored concurrently as %s; "
                "dashboard %s is orphaned",
                module_name, tenant_id, stored, dashboard_id,
                extra={"tenant_id": tenant_id, "orphaned_dashboard_id": dashboard_id},
            )
        return stored

    async def _stored_dashboard(self, tenant_id: int, module_name: str) -> Optional[int]:
        async with self.db.get_session() as session:
            mapping = await self.mappings.get(session, tenant_id)
        if mapping is None:
            return None
        return mapping.dashboards.get(module_name)

    # ── Mapping administration ──

    async def get_mapping(self, tenant_id: Any) -> Optional[TenantMappingModel]:
        tenant_id = parse_tenant_id(tenant_id)
        async with self.db.get_session() as session:
            return await self.mappings.get(session, tenant_id)

    async def list_mappings(self) -> list[TenantMappingModel]:
        async with self.db.get_session() as session:
            return await self.mappings.list_mappings(session)

    async def count_mappings(self) -> int:
        async with self.db.get_session() as session:
            return await self.mappings.count(session)

    async def delete_mapping(self, tenant_id: Any) -> TenantMappingModel:
        """Forget a tenant. The next resolve provisions it from scratch.

        With ``cascade_remote_delete`` the tenant's collection and group are
        deleted in Metabase first; a failure there leaves the local record in
        place so the delete can be retried.
        """
        tenant_id = parse_tenant_id(tenant_id)
        async with self.db.get_session() as session:
            mapping = await self.mappings.get(session, tenant_id)
        if mapping is None:
            raise MappingNotFoundError()

        if self.config.cascade_remote_delete:
            await self._delete_remote(mapping)

        async with self.db.get_session() as session:
            deleted = await self.mappings.delete(session, tenant_id)
        if deleted is None:
            raise MappingNotFoundError()
        logger.info("Deleted mapping for Project %s", tenant_id)
        return deleted

    async def _delete_remote(self, mapping: TenantMappingModel) -> None:
        if mapping.folder_id is not None:
            await _ignore_missing(self.client.delete_collection(mapping.folder_id))
        if mapping.group_id is not None:
            await _ignore_missing(self.client.delete_group(mapping.group_id))
        logger.info(
            "Deleted Metabase folder %s and group %s for Project %s",
            mapping.folder_id, mapping.group_id, mapping.tenant_id,
        )


async def _ignore_missing(call) -> None:
    try:
        await call
    except MetabaseError as e:
        if e.status_code != 404:
            raise
