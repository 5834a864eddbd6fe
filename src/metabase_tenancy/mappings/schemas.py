"""Pydantic schemas for mapping endpoints."""

from datetime import datetime
from typing import Optional

from metabase_tenancy.common.schemas import CamelModel


class MappingResponse(CamelModel):
    project_id: int
    folder_id: Optional[int] = None
    group_id: Optional[int] = None
    dashboards: dict[str, int] = {}
    created_at: datetime
    updated_at: datetime


class MappingListResponse(CamelModel):
    count: int
    mappings: list[MappingResponse]


class MappingDeleteResponse(CamelModel):
    message: str = "Deleted successfully"
    project_id: int
