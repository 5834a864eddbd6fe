"""Tenant collection (folder) resolution."""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional

from metabase_tenancy.common.database import DatabaseManager
from metabase_tenancy.mappings.service import MappingService
from metabase_tenancy.metabase.client import MetabaseClient
from metabase_tenancy.metabase.graph import GraphEditor, grant_collection_access
from metabase_tenancy.provisioning.config import ProvisioningConfig
from metabase_tenancy.provisioning.groups import GroupResolution, TenantGroupResolver

logger = logging.getLogger(__name__)


@dataclass
class FolderResolution:
    folder_id: int
    group_id: Optional[int]
    reused: bool
    group: Optional[GroupResolution] = None


class CollectionResolver:
    """Ensures a tenant has a collection under the root folder only its group can see."""

    def __init__(
        self,
        db: DatabaseManager,
        mappings: MappingService,
        groups: TenantGroupResolver,
        client: MetabaseClient,
        editor: GraphEditor,
        config: ProvisioningConfig,
    ):
        self.db = db
        self.mappings = mappings
        self.groups = groups
        self.client = client
        self.editor = editor
        self.config = config

    async def ensure_folder(self, tenant_id: int) -> FolderResolution:
        async with self.db.get_session() as session:
            mapping = await self.mappings.get(session, tenant_id)
        if mapping is not None and mapping.folder_id is not None:
            logger.info(
                "Reusing existing folder %s for Project %s", mapping.folder_id, tenant_id
            )
            return FolderResolution(
                folder_id=mapping.folder_id, group_id=mapping.group_id, reused=True
            )

        group = await self.groups.ensure_group(tenant_id)

        collection = await self.client.create_collection(
            name=self.config.folder_name(tenant_id),
            description=self.config.folder_description(tenant_id),
            parent_id=self.config.root_collection_id,
            color=self.config.collection_color,
        )
        folder_id = collection["id"]
        logger.info("Created new folder %s for Project %s", folder_id, tenant_id)

        await self.editor.edit_collection_permissions(
            partial(
                grant_collection_access,
                collection_id=folder_id,
                group_id=group.group_id,
                revoke_group_id=self.config.all_users_group_id,
            )
        )
        logger.info(
            "Set permissions for collection %s, group %s", folder_id, group.group_id
        )

        async with self.db.get_session() as session:
            mapping = await self.mappings.record_folder(
                session, tenant_id, folder_id=folder_id, group_id=group.group_id
            )
        if mapping.folder_id != folder_id:
            logger.warning(
                "Project %s already had folder %s; collection %s is orphaned",
                tenant_id, mapping.folder_id, folder_id,
                extra={"tenant_id": tenant_id, "orphaned_collection_id": folder_id},
            )
        return FolderResolution(
            folder_id=mapping.folder_id,
            group_id=mapping.group_id,
            reused=False,
            group=group,
        )
