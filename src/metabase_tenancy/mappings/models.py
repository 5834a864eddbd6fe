"""SQLAlchemy models for tenant -> Metabase resource mappings."""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from metabase_tenancy.common.models import Base, TimestampMixin, utcnow


class TenantMappingModel(Base, TimestampMixin):
    __tablename__ = "tenant_mappings"

    tenant_id: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    group_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    folder_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    dashboard_entries: Mapped[list["TenantDashboardModel"]] = relationship(
        back_populates="mapping",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TenantDashboardModel.created_at",
    )

    @property
    def dashboards(self) -> dict[str, int]:
        """Module name -> dashboard id."""
        return {d.module_name: d.dashboard_id for d in self.dashboard_entries}


class TenantDashboardModel(Base):
    """One provisioned dashboard per (tenant, module); never overwritten."""

    __tablename__ = "tenant_dashboards"

    tenant_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("tenant_mappings.tenant_id", ondelete="CASCADE"),
        primary_key=True,
    )
    module_name: Mapped[str] = mapped_column(String(100), primary_key=True)
    dashboard_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    mapping: Mapped[TenantMappingModel] = relationship(
        back_populates="dashboard_entries"
    )
