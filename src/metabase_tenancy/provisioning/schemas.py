"""Pydantic schemas for dashboard resolution and SSO endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from metabase_tenancy.common.schemas import CamelModel


class DashboardIdRequest(BaseModel):
    """``project_id`` is left unvalidated here so booleans and malformed ids reach
    the service untouched and surface as 400s.
    """

    project_id: Any = None
    module_name: Optional[str] = None
    dashboard_type: Optional[str] = None

    @property
    def module(self) -> Optional[str]:
        return self.module_name or self.dashboard_type


class DashboardIdResponse(CamelModel):
    dashboard_id: int


class SSORequest(DashboardIdRequest):
    """Anything beyond the known fields is treated as the user's profile."""

    model_config = ConfigDict(extra="allow")

    email_id: Optional[str] = None

    @property
    def profile(self) -> dict:
        return dict(self.model_extra or {})


class SSOResponse(CamelModel):
    jwt: str
    dashboard_id: int
