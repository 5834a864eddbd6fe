"""Permission graph edits.

Metabase exposes data permissions and collection permissions as two global
documents that can only be replaced wholesale. The mutation helpers below are
pure functions over the decoded graph; :class:`GraphEditor` applies them as a
serialised read-modify-write so two tenants being provisioned at once cannot
discard each other's changes.
"""

import asyncio
import copy
import logging
from typing import Any, Awaitable, Callable

from metabase_tenancy.common.exceptions import MetabaseError
from metabase_tenancy.metabase.client import MetabaseClient

logger = logging.getLogger(__name__)

GraphMutation = Callable[[dict[str, Any]], bool]

COLLECTION_WRITE = "write"
COLLECTION_NONE = "none"


def copy_group_permissions(
    graph: dict[str, Any], source_group_id: int, target_group_id: int
) -> bool:
    """Replace the target group's permission subtree with a deep copy of the source's.

    Returns False (graph untouched) when source and target are the same group
    or the source group has no entry in the graph.
    """
    groups = graph.setdefault("groups", {})
    source_key, target_key = str(source_group_id), str(target_group_id)
    if source_key == target_key:
        return False
    if source_key not in groups:
        logger.warning(
            "Template group %s not in permission graph; nothing to clone",
            source_group_id,
        )
        return False
    groups[target_key] = copy.deepcopy(groups[source_key])
    return True


def grant_collection_access(
    graph: dict[str, Any],
    collection_id: int,
    group_id: int,
    revoke_group_id: int | None = None,
) -> bool:
    """Give ``group_id`` curate access to a collection and revoke ``revoke_group_id``'s.

    The revoked group (normally "All Users") is the configured
    ``all_users_group_id``, not looked up by name; the collection graph carries
    only group ids. It is only touched when it already appears in the graph.
    """
    groups = graph.setdefault("groups", {})
    collection_key = str(collection_id)
    groups.setdefault(str(group_id), {})[collection_key] = COLLECTION_WRITE
    if revoke_group_id is not None and str(revoke_group_id) in groups:
        groups[str(revoke_group_id)][collection_key] = COLLECTION_NONE
    return True


class GraphEditor:
    """Serialises read-modify-write cycles on the Metabase permission graphs.

    One lock per process covers both graphs. Writes carry the graph
    ``revision`` Metabase handed out; if Metabase rejects the write with 409
    (someone else wrote in between) the graph is re-read and the mutation
    re-applied, up to ``max_attempts`` times.
    """

    def __init__(self, client: MetabaseClient, max_attempts: int = 3):
        self.client = client
        self.max_attempts = max(1, max_attempts)
        self._lock = asyncio.Lock()

    async def edit_permissions(self, mutate: GraphMutation) -> bool:
        return await self._edit(
            "permissions",
            self.client.get_permissions_graph,
            self.client.put_permissions_graph,
            mutate,
        )

    async def edit_collection_permissions(self, mutate: GraphMutation) -> bool:
        return await self._edit(
            "collection",
            self.client.get_collection_graph,
            self.client.put_collection_graph,
            mutate,
        )

    async def _edit(
        self,
        name: str,
        fetch: Callable[[], Awaitable[dict[str, Any]]],
        store: Callable[[dict[str, Any]], Awaitable[Any]],
        mutate: GraphMutation,
    ) -> bool:
        """Returns True if a changed graph was written."""
        async with self._lock:
            for attempt in range(1, self.max_attempts + 1):
                graph = await fetch()
                if not mutate(graph):
                    return False
                try:
                    await store(graph)
                    return True
                except MetabaseError as e:
                    if e.status_code != 409 or attempt == self.max_attempts:
                        raise
                    logger.warning(
                        "%s graph revision %s is stale, retrying (%d/%d)",
                        name, graph.get("revision"), attempt, self.max_attempts,
                    )
        return False
