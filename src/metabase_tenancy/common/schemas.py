"""Shared Pydantic schemas for Metabase-Tenancy."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response model serialised with camelCase keys, as the embedding frontend expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(CamelModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "metabase-tenancy"
    db_state: str = "Disconnected"
    projects_count: int = 0


class ErrorResponse(BaseModel):
    error: str
    code: str
    upstream: Any = None
