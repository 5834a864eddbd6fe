"""Copies a module's template dashboard into a tenant's folder."""

import logging

from metabase_tenancy.metabase.client import MetabaseClient
from metabase_tenancy.provisioning.config import ProvisioningConfig
from metabase_tenancy.provisioning.folders import CollectionResolver

logger = logging.getLogger(__name__)


class DashboardProvisioner:

    def __init__(
        self,
        client: MetabaseClient,
        folders: CollectionResolver,
        config: ProvisioningConfig,
    ):
        self.client = client
        self.folders = folders
        self.config = config

    async def provision(self, tenant_id: int, module_name: str) -> int:
        """Deep-copy the module template into the tenant folder. Returns the new dashboard id.

        The caller is responsible for persisting the id.
        """
        template_id = self.config.template_for(module_name)
        logger.info("Provisioning %s for Project %s", module_name, tenant_id)

        folder = await self.folders.ensure_folder(tenant_id)
        copy = await self.client.copy_dashboard(
            template_id,
            name=self.config.dashboard_name(module_name),
            description=self.config.dashboard_description(tenant_id, module_name),
            collection_id=folder.folder_id,
            deep_copy=True,
        )
        dashboard_id = copy["id"]
        logger.info(
            "Dashboard %s (%s) created in Folder %s",
            dashboard_id, module_name, folder.folder_id,
        )
        return dashboard_id
