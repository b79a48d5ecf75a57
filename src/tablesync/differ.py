"""Diff engine for table reconciliation.

Compares the desired table configuration against the observed table to
produce the provider-legal set of changes: secondary index mutations,
stream toggles and replica set changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import BILLING_MODE, DesiredTableConfig, Replica, SecondaryIndex, StreamSpec
from .observer import Absent, Observation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global secondary indexes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IndexUpdate:
    """
    Index mutations for a single UpdateTable call.

    DynamoDB accepts at most one index creation and one deletion per call;
    anything beyond that is listed in ``deferred_*`` for a later run.
    """

    create: SecondaryIndex | None = None
    delete: str | None = None
    deferred_creates: tuple[str, ...] = ()
    deferred_deletes: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.create is None and self.delete is None

    def to_api(self) -> list[dict[str, Any]] | None:
        """``GlobalSecondaryIndexUpdates`` value, or None when nothing changes."""
        if self.is_empty:
            return None
        updates: list[dict[str, Any]] = []
        if self.create is not None:
            updates.append({"Create": self.create.to_api()})
        if self.delete is not None:
            updates.append({"Delete": {"IndexName": self.delete}})
        return updates

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.create is not None:
            result["Create"] = self.create.to_dict()
        if self.delete is not None:
            result["Delete"] = {"indexName": self.delete}
        return result


def diff_indexes(
    previous: Iterable[SecondaryIndex],
    desired: Iterable[SecondaryIndex],
) -> IndexUpdate:
    """Compute index changes by name, keeping list order.

    Args:
        previous: Indexes currently on the table.
        desired: Indexes the configuration asks for.

    Returns:
        IndexUpdate with the first creation and the first deletion.
    """
    previous = list(previous)
    desired = list(desired)
    previous_names = {i.index_name for i in previous}
    desired_names = {i.index_name for i in desired}

    to_create = [i for i in desired if i.index_name not in previous_names]
    to_delete = [i.index_name for i in previous if i.index_name not in desired_names]

    deferred_creates = tuple(i.index_name for i in to_create[1:])
    deferred_deletes = tuple(to_delete[1:])

    if deferred_creates:
        logger.warning(
            "Only index %s will be created: DynamoDB allows one index creation per update. "
            "Deploy again once it is active to create: %s",
            to_create[0].index_name,
            ", ".join(deferred_creates),
        )
    if deferred_deletes:
        logger.warning(
            "Only index %s will be deleted: DynamoDB allows one index deletion per update. "
            "Deploy again once it is gone to delete: %s",
            to_delete[0],
            ", ".join(deferred_deletes),
        )

    return IndexUpdate(
        create=to_create[0] if to_create else None,
        delete=to_delete[0] if to_delete else None,
        deferred_creates=deferred_creates,
        deferred_deletes=deferred_deletes,
    )


# ---------------------------------------------------------------------------
# Streams
# ---------------------------------------------------------------------------


class StreamAction(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"
    NO_CHANGE = "no_change"


@dataclass(frozen=True)
class StreamChange:
    action: StreamAction
    spec: StreamSpec | None = None

    def to_api(self) -> dict[str, Any] | None:
        """``StreamSpecification`` value, or None when it must be omitted."""
        if self.action is StreamAction.DISABLE:
            return {"StreamEnabled": False}
        if self.action is StreamAction.ENABLE and self.spec is not None:
            return self.spec.to_api()
        return None


def diff_stream(previous: StreamSpec | None, desired: StreamSpec | None) -> StreamChange:
    """
    Decide whether the stream must be enabled, disabled, or left alone.

    A previously enabled stream is disabled whenever the desired spec is
    missing or not explicitly enabled.
    """
    was_enabled = previous is not None and previous.enabled
    wants_enabled = desired is not None and desired.enabled

    if was_enabled and not wants_enabled:
        return StreamChange(StreamAction.DISABLE)
    if not was_enabled and wants_enabled:
        return StreamChange(StreamAction.ENABLE, desired)
    return StreamChange(StreamAction.NO_CHANGE)


# ---------------------------------------------------------------------------
# Replicas
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReplicaUpdate:
    to_add: tuple[str, ...] = ()
    to_remove: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove

    def to_api(self) -> list[dict[str, Any]]:
        """``ReplicaUpdates`` value: creations followed by deletions."""
        return [{"Create": {"RegionName": r}} for r in self.to_add] + [
            {"Delete": {"RegionName": r}} for r in self.to_remove
        ]


def diff_replicas(previous: Iterable[Replica], desired: Iterable[Replica]) -> ReplicaUpdate:
    """Compare replica regions as sets; order never matters."""
    previous_regions = sorted({r.region_name for r in previous})
    desired_regions = sorted({r.region_name for r in desired})
    if previous_regions == desired_regions:
        return ReplicaUpdate()
    return ReplicaUpdate(
        to_add=tuple(r for r in desired_regions if r not in previous_regions),
        to_remove=tuple(r for r in previous_regions if r not in desired_regions),
    )


def teardown_replicas(previous: Iterable[Replica]) -> ReplicaUpdate:
    """Delete-only update removing every existing replica."""
    return ReplicaUpdate(to_remove=tuple(sorted({r.region_name for r in previous})))


# ---------------------------------------------------------------------------
# Table plan
# ---------------------------------------------------------------------------


def build_create_request(config: DesiredTableConfig) -> dict[str, Any]:
    """Build CreateTable arguments for ``config``."""
    request: dict[str, Any] = {
        "TableName": config.name,
        "AttributeDefinitions": [a.to_api() for a in config.attribute_definitions],
        "KeySchema": [e.to_api() for e in config.key_schema],
        "BillingMode": BILLING_MODE,
        "StreamSpecification": config.stream.to_api(),
    }
    if config.global_secondary_indexes:
        request["GlobalSecondaryIndexes"] = [i.to_api() for i in config.global_secondary_indexes]
    if config.local_secondary_indexes:
        request["LocalSecondaryIndexes"] = [i.to_api() for i in config.local_secondary_indexes]
    return request


def build_update_request(
    config: DesiredTableConfig,
    index_update: IndexUpdate,
    stream_change: StreamChange,
) -> dict[str, Any] | None:
    """
    Build UpdateTable arguments, or None when there is nothing to change.

    Empty index and no-op stream fields are omitted entirely since DynamoDB
    rejects them.
    """
    index_updates = index_update.to_api()
    stream_spec = stream_change.to_api()
    if index_updates is None and stream_spec is None:
        return None

    request: dict[str, Any] = {
        "TableName": config.name,
        "AttributeDefinitions": [a.to_api() for a in config.attribute_definitions],
        "BillingMode": BILLING_MODE,
    }
    if index_updates is not None:
        request["GlobalSecondaryIndexUpdates"] = index_updates
    if stream_spec is not None:
        request["StreamSpecification"] = stream_spec
    return request


@dataclass(frozen=True)
class TablePlan:
    """Everything a deploy would do, computed without side effects."""

    config: DesiredTableConfig
    exists: bool
    create_request: dict[str, Any] | None = None
    update_request: dict[str, Any] | None = None
    index_update: IndexUpdate = field(default_factory=IndexUpdate)
    stream_change: StreamChange = field(
        default_factory=lambda: StreamChange(StreamAction.NO_CHANGE)
    )
    replica_update: ReplicaUpdate = field(default_factory=ReplicaUpdate)

    @property
    def action(self) -> str:
        if not self.exists:
            return "create"
        if self.update_request is not None:
            return "update"
        return "none"

    @property
    def is_noop(self) -> bool:
        return self.action == "none" and self.replica_update.is_empty

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.config.name,
            "region": self.config.region,
            "action": self.action,
            "indexes": self.index_update.to_dict(),
            "deferredIndexes": {
                "create": list(self.index_update.deferred_creates),
                "delete": list(self.index_update.deferred_deletes),
            },
            "stream": self.stream_change.action.value,
            "replicas": {
                "create": list(self.replica_update.to_add),
                "delete": list(self.replica_update.to_remove),
            },
        }


def plan_table(config: DesiredTableConfig, observation: Observation) -> TablePlan:
    """
    Plan the table-level changes that converge ``observation`` to ``config``.

    Args:
        config: Effective desired configuration.
        observation: Present table state or Absent.

    Returns:
        TablePlan with either a create request or an (optional) update request,
        plus the replica changes to apply afterwards.
    """
    if isinstance(observation, Absent):
        return TablePlan(
            config=config,
            exists=False,
            create_request=build_create_request(config),
            stream_change=diff_stream(None, config.stream),
            replica_update=diff_replicas((), config.replicas),
        )

    table = observation.table
    index_update = diff_indexes(table.global_secondary_indexes, config.global_secondary_indexes)
    stream_change = diff_stream(table.stream, config.stream)
    return TablePlan(
        config=config,
        exists=True,
        update_request=build_update_request(config, index_update, stream_change),
        index_update=index_update,
        stream_change=stream_change,
        replica_update=diff_replicas(table.replicas, config.replicas),
    )
