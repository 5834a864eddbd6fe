"""Mapping store — durable tenant -> (group, folder, dashboards) records."""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from metabase_tenancy.common.database import insert_if_absent
from metabase_tenancy.common.models import utcnow
from metabase_tenancy.mappings.models import TenantDashboardModel, TenantMappingModel


class MappingService:
    """Tenant mapping persistence operations.

    Every write is either an insert-if-absent or a conditional update, so
    concurrent writers for the same tenant can never overwrite a folder or a
    module's dashboard once stored.
    """

    async def get(
        self, session: AsyncSession, tenant_id: int
    ) -> TenantMappingModel | None:
        result = await session.execute(
            select(TenantMappingModel)
            .where(TenantMappingModel.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def record_folder(
        self,
        session: AsyncSession,
        tenant_id: int,
        folder_id: int,
        group_id: int,
    ) -> TenantMappingModel:
        """Store the tenant's folder and group unless a folder is already stored.

        Returns the mapping as persisted; its ``folder_id`` differs from the
        argument when another writer got there first.
        """
        inserted = await insert_if_absent(
            session,
            TenantMappingModel,
            {"tenant_id": tenant_id, "folder_id": folder_id, "group_id": group_id},
            index_elements=["tenant_id"],
        )
        if not inserted:
            await session.execute(
                update(TenantMappingModel)
                .where(
                    TenantMappingModel.tenant_id == tenant_id,
                    TenantMappingModel.folder_id.is_(None),
                )
                .values(folder_id=folder_id, group_id=group_id, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        return await self.get(session, tenant_id)

    async def record_dashboard(
        self,
        session: AsyncSession,
        tenant_id: int,
        module_name: str,
        dashboard_id: int,
    ) -> int:
        """Store ``module_name -> dashboard_id`` if the module has no dashboard yet.

        Returns the dashboard id that is stored after the call.
        """
        await insert_if_absent(
            session,
            TenantMappingModel,
            {"tenant_id": tenant_id},
            index_elements=["tenant_id"],
        )
        inserted = await insert_if_absent(
            session,
            TenantDashboardModel,
            {
                "tenant_id": tenant_id,
                "module_name": module_name,
                "dashboard_id": dashboard_id,
            },
            index_elements=["tenant_id", "module_name"],
        )
        if inserted:
            await session.execute(
                update(TenantMappingModel)
                .where(TenantMappingModel.tenant_id == tenant_id)
                .values(updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        stored = await session.scalar(
            select(TenantDashboardModel.dashboard_id).where(
                TenantDashboardModel.tenant_id == tenant_id,
                TenantDashboardModel.module_name == module_name,
            )
        )
        return stored

    async def list_mappings(self, session: AsyncSession) -> list[TenantMappingModel]:
        result = await session.execute(
            select(TenantMappingModel).order_by(TenantMappingModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def delete(
        self, session: AsyncSession, tenant_id: int
    ) -> TenantMappingModel | None:
        """Delete a tenant's mapping and its dashboard entries. Returns the deleted record."""
        mapping = await self.get(session, tenant_id)
        if mapping is None:
            return None
        await session.delete(mapping)
        await session.flush()
        return mapping

    async def count(self, session: AsyncSession) -> int:
        result = await session.execute(
            select(func.count()).select_from(TenantMappingModel)
        )
        return result.scalar_one()
