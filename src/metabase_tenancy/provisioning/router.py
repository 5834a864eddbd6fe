"""Dashboard resolution and Metabase SSO endpoints."""

import logging

from fastapi import APIRouter, HTTPException

from metabase_tenancy.common.exceptions import (
    InvalidTenantIdError,
    MetabaseError,
    UnknownModuleError,
)
from metabase_tenancy.common.schemas import ErrorResponse
from metabase_tenancy.provisioning.schemas import (
    DashboardIdRequest,
    DashboardIdResponse,
    SSORequest,
    SSOResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["provisioning"])


def _get_service():
    from metabase_tenancy.deps import get_resolution_service
    return get_resolution_service()


def _get_issuer():
    from metabase_tenancy.deps import get_token_issuer
    return get_token_issuer()


async def _resolve(body: DashboardIdRequest) -> int:
    svc = _get_service()
    try:
        return await svc.resolve(body.project_id, body.module)
    except (InvalidTenantIdError, UnknownModuleError) as e:
        raise HTTPException(status_code=400, detail=e.message)
    except MetabaseError as e:
        raise HTTPException(
            status_code=502,
            detail=ErrorResponse(
                error=e.message, code=e.code, upstream=e.payload
            ).model_dump(),
        )


@router.post("/api/dashboard-id", response_model=DashboardIdResponse)
async def get_dashboard_id(body: DashboardIdRequest):
    dashboard_id = await _resolve(body)
    return DashboardIdResponse(dashboard_id=dashboard_id)


@router.post("/sso/metabase", response_model=SSOResponse)
async def metabase_sso(body: SSORequest):
    """Resolve the tenant's dashboard, then sign an SSO token for its group."""
    dashboard_id = await _resolve(body)
    token = _get_issuer().issue_token(body.project_id, body.email_id, body.profile)
    return SSOResponse(jwt=token, dashboard_id=dashboard_id)
