"""Shared test fixtures for Metabase-Tenancy."""

import asyncio
import copy

import pytest
from httpx import ASGITransport, AsyncClient

from metabase_tenancy.common.config import TenancySettings
from metabase_tenancy.common.database import DatabaseManager
from metabase_tenancy.common.exceptions import MetabaseError
from metabase_tenancy.provisioning.config import ProvisioningConfig


API_KEY = "test-admin-api-key"
METABASE_SECRET = "test-metabase-embedding-secret-0123456789"
TEMPLATE_GROUP_ID = 5
ALL_USERS_GROUP_ID = 1
ROOT_COLLECTION_ID = 162
MODULE_TEMPLATES = {"Sales": 71, "Marketing": 176, "Operations": 106}

TEMPLATE_PERMISSIONS = {
    "2": {"view-data": "unrestricted", "create-queries": "query-builder"},
}


class FakeMetabase:
    """In-memory stand-in for MetabaseClient that records every call.

    Graph writes carry a revision like the real API: a PUT whose revision is
    not the current one is rejected with 409.
    """

    def __init__(self):
        self.calls: list[tuple[str, tuple]] = []
        self.failures: dict[str, Exception] = {}
        self.groups = [
            {"id": ALL_USERS_GROUP_ID, "name": "All Users"},
            {"id": 2, "name": "Administrators"},
            {"id": TEMPLATE_GROUP_ID, "name": "Tenant Template"},
        ]
        self.permissions = {
            "revision": 1,
            "groups": {
                str(ALL_USERS_GROUP_ID): {"2": {"view-data": "blocked"}},
                "2": {"2": {"view-data": "unrestricted"}},
                str(TEMPLATE_GROUP_ID): copy.deepcopy(TEMPLATE_PERMISSIONS),
            },
        }
        self.collection_graph = {
            "revision": 1,
            "groups": {
                str(ALL_USERS_GROUP_ID): {"root": "read", str(ROOT_COLLECTION_ID): "read"},
                "2": {"root": "write"},
            },
        }
        self.sandboxes = [
            {"id": 1, "group_id": TEMPLATE_GROUP_ID, "table_id": 10, "card_id": None,
             "attribute_remappings": {"project_id": ["dimension", ["field", 100, None]]}},
            {"id": 2, "group_id": TEMPLATE_GROUP_ID, "table_id": 11, "card_id": 33,
             "attribute_remappings": {"project_id": ["variable", ["template-tag", "pid"]]}},
            {"id": 3, "group_id": 2, "table_id": 12, "card_id": None,
             "attribute_remappings": {}},
        ]
        self.collections: dict[int, dict] = {}
        self.dashboards: dict[int, dict] = {}
        self._next_id = 1000

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    async def _call(self, name: str, *args) -> None:
        self.calls.append((name, args))
        # Yield so concurrent workflows interleave the way real I/O would.
        await asyncio.sleep(0)
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def aclose(self) -> None:
        pass

    # ── Groups ──

    async def list_groups(self):
        await self._call("list_groups")
        return copy.deepcopy(self.groups)

    async def create_group(self, name):
        await self._call("create_group", name)
        group = {"id": self._new_id(), "name": name}
        self.groups.append(group)
        return dict(group)

    async def delete_group(self, group_id):
        await self._call("delete_group", group_id)
        if not any(g["id"] == group_id for g in self.groups):
            raise MetabaseError("Not found.", status_code=404, payload="Not found.")
        self.groups = [g for g in self.groups if g["id"] != group_id]

    # ── Graphs ──

    async def get_permissions_graph(self):
        await self._call("get_permissions_graph")
        return copy.deepcopy(self.permissions)

    async def put_permissions_graph(self, graph):
        await self._call("put_permissions_graph", graph)
        self.permissions = self._write_graph(self.permissions, graph)
        return copy.deepcopy(self.permissions)

    async def get_collection_graph(self):
        await self._call("get_collection_graph")
        return copy.deepcopy(self.collection_graph)

    async def put_collection_graph(self, graph):
        await self._call("put_collection_graph", graph)
        self.collection_graph = self._write_graph(self.collection_graph, graph)
        return copy.deepcopy(self.collection_graph)

    @staticmethod
    def _write_graph(current, graph):
        if graph.get("revision") != current["revision"]:
            raise MetabaseError(
                "Looks like someone else edited the permissions",
                status_code=409,
                payload={"message": "Looks like someone else edited the permissions"},
            )
        written = copy.deepcopy(graph)
        written["revision"] = current["revision"] + 1
        return written

    # ── Sandboxes ──

    async def list_sandboxes(self):
        await self._call("list_sandboxes")
        return copy.deepcopy(self.sandboxes)

    async def create_sandbox(self, group_id, table_id, card_id=None, attribute_remappings=None):
        await self._call("create_sandbox", group_id, table_id)
        rule = {
            "id": self._new_id(),
            "group_id": group_id,
            "table_id": table_id,
            "card_id": card_id,
            "attribute_remappings": attribute_remappings or {},
        }
        self.sandboxes.append(rule)
        return dict(rule)

    async def delete_sandbox(self, sandbox_id):
        await self._call("delete_sandbox", sandbox_id)
        self.sandboxes = [r for r in self.sandboxes if r["id"] != sandbox_id]

    # ── Collections and dashboards ──

    async def create_collection(self, name, description, parent_id=None, color="#509EE3"):
        await self._call("create_collection", name)
        collection = {
            "id": self._new_id(),
            "name": name,
            "description": description,
            "parent_id": parent_id,
            "color": color,
        }
        self.collections[collection["id"]] = collection
        return dict(collection)

    async def delete_collection(self, collection_id):
        await self._call("delete_collection", collection_id)
        if self.collections.pop(collection_id, None) is None:
            raise MetabaseError("Not found.", status_code=404, payload="Not found.")

    async def copy_dashboard(self, template_id, name, description, collection_id, deep_copy=True):
        await self._call("copy_dashboard", template_id, collection_id)
        dashboard = {
            "id": self._new_id(),
            "template_id": template_id,
            "name": name,
            "description": description,
            "collection_id": collection_id,
            "is_deep_copy": deep_copy,
        }
        self.dashboards[dashboard["id"]] = dashboard
        return dict(dashboard)


def make_settings(**overrides) -> TenancySettings:
    defaults = {
        "db_url": "sqlite+aiosqlite://",
        "metabase_secret": METABASE_SECRET,
        "api_key": API_KEY,
    }
    defaults.update(overrides)
    return TenancySettings(**defaults)


def make_config(**overrides) -> ProvisioningConfig:
    defaults = {
        "module_templates": MODULE_TEMPLATES,
        "root_collection_id": ROOT_COLLECTION_ID,
        "all_users_group_id": ALL_USERS_GROUP_ID,
        "template_group_id": TEMPLATE_GROUP_ID,
    }
    defaults.update(overrides)
    return ProvisioningConfig(**defaults)


@pytest.fixture
def metabase():
    return FakeMetabase()


@pytest.fixture
def provisioning_config():
    return make_config()


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
async def db():
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
async def file_db(tmp_path):
    """File-backed DB: every session gets its own connection, as in production."""
    manager = DatabaseManager(
        make_settings(db_url=f"sqlite+aiosqlite:///{tmp_path / 'tenancy.db'}")
    )
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def resolution(db, metabase, provisioning_config):
    from metabase_tenancy.deps import build_resolution_service
    return build_resolution_service(db, metabase, provisioning_config)


@pytest.fixture
def app(metabase, monkeypatch):
    """Create a test app with in-memory DB and a fake Metabase."""
    monkeypatch.setenv("TENANCY_DB_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("TENANCY_API_KEY", API_KEY)
    monkeypatch.setenv("TENANCY_METABASE_SECRET", METABASE_SECRET)
    monkeypatch.setenv("TENANCY_TEMPLATE_GROUP_ID", str(TEMPLATE_GROUP_ID))

    # Clear caches and singletons so new env vars take effect
    from metabase_tenancy.common.config import get_settings
    get_settings.cache_clear()

    from metabase_tenancy import deps
    deps.reset_singletons()
    deps._metabase = metabase

    from metabase_tenancy.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from metabase_tenancy.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def admin_headers():
    return {"X-Tenancy-Api-Key": API_KEY}
