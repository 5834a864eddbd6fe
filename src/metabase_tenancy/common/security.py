"""API key authentication dependencies."""

from fastapi import Header, HTTPException


async def require_api_key(
    x_tenancy_api_key: str = Header(..., alias="X-Tenancy-Api-Key"),
) -> str:
    """FastAPI dependency that validates admin API key from header."""
    from metabase_tenancy.common.config import get_settings

    settings = get_settings()
    if x_tenancy_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return x_tenancy_api_key
