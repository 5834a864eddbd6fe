"""Immutable provisioning configuration and deterministic naming."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from metabase_tenancy.common.config import TenancySettings
from metabase_tenancy.common.exceptions import InvalidTenantIdError, UnknownModuleError


@dataclass(frozen=True)
class ProvisioningConfig:
    """Static deployment layout injected into the resolvers."""

    module_templates: Mapping[str, int] = field(default_factory=dict)
    root_collection_id: Optional[int] = None
    collection_color: str = "#509EE3"
    all_users_group_id: Optional[int] = 1
    template_group_id: Optional[int] = None
    resync_template_permissions: bool = True
    cascade_remote_delete: bool = False
    default_module: str = "Management"
    group_name_prefix: str = "Tenant_"

    def __post_init__(self):
        object.__setattr__(
            self, "module_templates", MappingProxyType(dict(self.module_templates))
        )

    @classmethod
    def from_settings(cls, settings: TenancySettings) -> "ProvisioningConfig":
        return cls(
            module_templates=settings.module_templates,
            root_collection_id=settings.root_collection_id,
            collection_color=settings.collection_color,
            all_users_group_id=settings.all_users_group_id,
            template_group_id=settings.template_group_id,
            resync_template_permissions=settings.resync_template_permissions,
            cascade_remote_delete=settings.cascade_remote_delete,
            default_module=settings.default_module,
            group_name_prefix=settings.group_name_prefix,
        )

    def template_for(self, module_name: str) -> int:
        """Template dashboard id for a module; unknown modules are an input error."""
        try:
            return self.module_templates[module_name]
        except KeyError:
            raise UnknownModuleError(module_name) from None

    def group_name(self, tenant_id: int) -> str:
        return f"{self.group_name_prefix}{tenant_id}"

    @staticmethod
    def folder_name(tenant_id: int) -> str:
        return f"Project {tenant_id}"

    @staticmethod
    def folder_description(tenant_id: int) -> str:
        return f"Dashboard collection for project {tenant_id}"

    @staticmethod
    def dashboard_name(module_name: str) -> str:
        return f"{module_name} Dashboard"

    @staticmethod
    def dashboard_description(tenant_id: int, module_name: str) -> str:
        return f"{module_name} dashboard for Project {tenant_id}"


# Largest id a BIGINT column can hold.
MAX_TENANT_ID = 2**63 - 1


def parse_tenant_id(value) -> int:
    """Coerce a request's project id to a positive int.

    Accepts ints and decimal-digit strings (surrounding whitespace allowed).
    Ids must fit a signed 64-bit column.
    """
    if isinstance(value, bool):
        raise InvalidTenantIdError()
    if isinstance(value, int):
        tenant_id = value
    elif isinstance(value, float) and value.is_integer():
        tenant_id = int(value)
    elif isinstance(value, str) and value.strip().isdecimal():
        tenant_id = int(value.strip())
    else:
        raise InvalidTenantIdError()
    if not 0 < tenant_id <= MAX_TENANT_ID:
        raise InvalidTenantIdError()
    return tenant_id
