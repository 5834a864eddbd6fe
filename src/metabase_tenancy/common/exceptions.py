"""Metabase-Tenancy exception hierarchy."""

from typing import Any, Optional


class TenancyError(Exception):
    """Base exception for all tenancy errors."""

    def __init__(self, message: str = "", code: str = "TENANCY_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidTenantIdError(TenancyError):
    """Raised when a tenant (project) id is missing or not a positive integer."""

    def __init__(self, message: str = "Invalid project id"):
        super().__init__(message, code="INVALID_TENANT")


class UnknownModuleError(TenancyError):
    """Raised when a module name has no configured template dashboard."""

    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f"Invalid module: {module_name}", code="INVALID_MODULE")


class MappingNotFoundError(TenancyError):
    """Raised when a tenant has no stored mapping."""

    def __init__(self, message: str = "Project not found"):
        super().__init__(message, code="NOT_FOUND")


class MetabaseError(TenancyError):
    """Raised when a Metabase API call fails.

    ``status_code`` is None for transport failures and timeouts; ``payload``
    holds the upstream response body when there was one.
    """

    def __init__(
        self,
        message: str = "Metabase request failed",
        status_code: Optional[int] = None,
        payload: Any = None,
    ):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message, code="REMOTE_ERROR")
