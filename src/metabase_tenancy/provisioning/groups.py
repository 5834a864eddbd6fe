"""Tenant group resolution and template permission cloning."""

import enum
import logging
from dataclasses import dataclass
from functools import partial

from metabase_tenancy.common.exceptions import MetabaseError
from metabase_tenancy.metabase.client import MetabaseClient
from metabase_tenancy.metabase.graph import GraphEditor, copy_group_permissions
from metabase_tenancy.provisioning.config import ProvisioningConfig

logger = logging.getLogger(__name__)


class StepOutcome(str, enum.Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class GroupResolution:
    group_id: int
    created: bool
    permissions: StepOutcome = StepOutcome.SKIPPED
    sandboxing: StepOutcome = StepOutcome.SKIPPED


class TenantGroupResolver:
    """Ensures every tenant has its own Metabase group, permissioned like the template."""

    def __init__(
        self,
        client: MetabaseClient,
        editor: GraphEditor,
        config: ProvisioningConfig,
    ):
        self.client = client
        self.editor = editor
        self.config = config

    async def ensure_group(self, tenant_id: int) -> GroupResolution:
        """Find or create the tenant's group, then clone template permissions onto it.

        Cloning runs for new groups, and for existing ones when
        ``resync_template_permissions`` is on. A failed permission graph write
        propagates; failed sandbox cloning is logged and reported in the result.
        """
        name = self.config.group_name(tenant_id)
        groups = await self.client.list_groups()
        existing = next((g for g in groups if g.get("name") == name), None)

        if existing is not None:
            resolution = GroupResolution(group_id=existing["id"], created=False)
            if self.config.resync_template_permissions:
                await self._apply_template(resolution)
        else:
            group = await self.client.create_group(name)
            resolution = GroupResolution(group_id=group["id"], created=True)
            await self._apply_template(resolution)

        logger.info(
            "%s group %s (ID: %s) for tenant %s",
            "Created" if resolution.created else "Found",
            name, resolution.group_id, tenant_id,
            extra={
                "tenant_id": tenant_id,
                "group_id": resolution.group_id,
                "permissions": resolution.permissions.value,
                "sandboxing": resolution.sandboxing.value,
            },
        )
        return resolution

    async def _apply_template(self, resolution: GroupResolution) -> None:
        template = self.config.template_group_id
        if template is None or template == resolution.group_id:
            return
        resolution.permissions = await self.clone_permissions(template, resolution.group_id)
        resolution.sandboxing = await self.clone_sandboxes(template, resolution.group_id)

    async def clone_permissions(self, source_group_id: int, target_group_id: int) -> StepOutcome:
        written = await self.editor.edit_permissions(
            partial(
                copy_group_permissions,
                source_group_id=source_group_id,
                target_group_id=target_group_id,
            )
        )
        return StepOutcome.SUCCEEDED if written else StepOutcome.SKIPPED

    async def clone_sandboxes(self, source_group_id: int, target_group_id: int) -> StepOutcome:
        """Replace the target group's sandboxing rules with copies of the source group's.

        Best effort: Metabase failures are logged and reported as FAILED.
        """
        if source_group_id == target_group_id:
            return StepOutcome.SKIPPED
        try:
            rules = await self.client.list_sandboxes()
            for rule in rules:
                if rule.get("group_id") == target_group_id:
                    await self.client.delete_sandbox(rule["id"])
            for rule in rules:
                if rule.get("group_id") == source_group_id:
                    await self.client.create_sandbox(
                        group_id=target_group_id,
                        table_id=rule["table_id"],
                        card_id=rule.get("card_id"),
                        attribute_remappings=rule.get("attribute_remappings"),
                    )
        except MetabaseError:
            logger.exception(
                "Failed to clone sandboxing rules from group %s to %s",
                source_group_id, target_group_id,
            )
            return StepOutcome.FAILED
        return StepOutcome.SUCCEEDED
