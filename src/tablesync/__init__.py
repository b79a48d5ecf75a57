"""
tablesync: declarative lifecycle management for a single DynamoDB table.

Reconciles a desired table configuration (attributes, keys, secondary
indexes, change stream and cross-region replicas) against what DynamoDB
reports, and issues the minimal set of control-plane calls to converge them.

Example:
    from tablesync import JsonStateStore, Orchestrator

    store = JsonStateStore(".tablesync/state.json")
    result = Orchestrator().deploy(
        {
            "name": "orders",
            "stream": {"enabled": True},
            "deletionPolicy": "delete",
        },
        store.load(),
        persist=store.save,
    )
    print(result.outputs["arn"])
"""

from importlib.metadata import PackageNotFoundError, version

from .config import load_manifest, resolve_config
from .differ import (
    IndexUpdate,
    ReplicaUpdate,
    StreamAction,
    StreamChange,
    TablePlan,
    diff_indexes,
    diff_replicas,
    diff_stream,
    plan_table,
)
from .exceptions import (
    ConfigImmutabilityError,
    ConfigurationError,
    MissingCredentialsError,
    ProviderOperationError,
    ProvisioningError,
    StreamIdentifierTimeoutError,
    TableSyncError,
    ValidationError,
)
from .models import (
    DeletionPolicy,
    DesiredTableConfig,
    ObservedTableState,
    ReconcileOptions,
)
from .observer import Absent, Present, describe_table
from .orchestrator import DeployResult, Orchestrator, RemoveResult
from .state import JsonStateStore, PersistedState

try:
    __version__ = version("tablesync")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "Absent",
    "ConfigImmutabilityError",
    "ConfigurationError",
    "DeletionPolicy",
    "DeployResult",
    "DesiredTableConfig",
    "IndexUpdate",
    "JsonStateStore",
    "MissingCredentialsError",
    "ObservedTableState",
    "Orchestrator",
    "PersistedState",
    "Present",
    "ProviderOperationError",
    "ProvisioningError",
    "ReconcileOptions",
    "RemoveResult",
    "ReplicaUpdate",
    "StreamAction",
    "StreamChange",
    "StreamIdentifierTimeoutError",
    "TablePlan",
    "TableSyncError",
    "ValidationError",
    "__version__",
    "describe_table",
    "diff_indexes",
    "diff_replicas",
    "diff_stream",
    "load_manifest",
    "plan_table",
    "resolve_config",
]
