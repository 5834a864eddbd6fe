"""Mapping administration router — requires admin API key."""

from fastapi import APIRouter, Depends, HTTPException

from metabase_tenancy.common.exceptions import (
    InvalidTenantIdError,
    MappingNotFoundError,
    MetabaseError,
)
from metabase_tenancy.common.schemas import ErrorResponse
from metabase_tenancy.common.security import require_api_key
from metabase_tenancy.mappings.models import TenantMappingModel
from metabase_tenancy.mappings.schemas import (
    MappingDeleteResponse,
    MappingListResponse,
    MappingResponse,
)

router = APIRouter(prefix="/api/dashboard-mapping", tags=["mappings"])


def _get_service():
    from metabase_tenancy.deps import get_resolution_service
    return get_resolution_service()


def _to_response(m: TenantMappingModel) -> MappingResponse:
    return MappingResponse(
        project_id=m.tenant_id,
        folder_id=m.folder_id,
        group_id=m.group_id,
        dashboards=m.dashboards,
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


@router.get("", response_model=MappingListResponse)
async def list_mappings(_=Depends(require_api_key)):
    mappings = await _get_service().list_mappings()
    return MappingListResponse(
        count=len(mappings),
        mappings=[_to_response(m) for m in mappings],
    )


@router.delete("/{project_id}", response_model=MappingDeleteResponse)
async def delete_mapping(project_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    try:
        deleted = await svc.delete_mapping(project_id)
    except InvalidTenantIdError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except MappingNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except MetabaseError as e:
        raise HTTPException(
            status_code=502,
            detail=ErrorResponse(
                error=e.message, code=e.code, upstream=e.payload
            ).model_dump(),
        )
    return MappingDeleteResponse(project_id=deleted.tenant_id)
