"""Sequences observation, table changes, replica sync and persistence.

Deploy:  Absent -> Creating -> Active, or Active -> Updating -> Active,
         then replica sync.
Remove:  Active -> Deleting -> Removed (only with deletionPolicy "delete").

State is threaded explicitly: every operation takes the PersistedState from
the previous run and returns the new one. An optional ``persist`` callback
is invoked as soon as a phase has committed, so a failure later in the run
leaves the last committed state behind for a safe re-run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from . import applier
from .client import make_client
from .config import resolve_config
from .differ import StreamAction, TablePlan, plan_table, teardown_replicas
from .exceptions import ProvisioningError
from .models import DeletionPolicy, ObservedTableState, ReconcileOptions
from .naming import generate_table_name, resolve_region
from .observer import Observation, Present, describe_table
from .state import PersistedState

logger = logging.getLogger(__name__)

Persist = Callable[[PersistedState], None]


@dataclass(frozen=True)
class DeployResult:
    """Outputs and new state of a deploy."""

    outputs: dict[str, Any]
    state: PersistedState
    plan: TablePlan


@dataclass(frozen=True)
class RemoveResult:
    """Outputs and new state of a removal. ``removed`` is False for a no-op."""

    outputs: dict[str, Any]
    state: PersistedState
    removed: bool


class Orchestrator:
    """
    Converges a single DynamoDB table to its desired configuration.

    Runs are synchronous and sequential: every provider call completes
    before the next one is issued. Concurrent runs against the same table
    are not supported.
    """

    def __init__(
        self,
        options: ReconcileOptions | None = None,
        client_factory: Callable[[str, str | None], Any] = make_client,
        name_factory: Callable[[], str] = generate_table_name,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            options: Poll and wait settings (default: ReconcileOptions())
            client_factory: Builds a DynamoDB client from (region, endpoint_url)
            name_factory: Produces a table name when none is configured
        """
        self.options = options or ReconcileOptions()
        self.client_factory = client_factory
        self.name_factory = name_factory

    def _client(self, region: str) -> Any:
        return self.client_factory(region, self.options.endpoint_url)

    def observe(self, name: str, region: str | None = None) -> Observation:
        """Describe table ``name`` in ``region`` (default region when None)."""
        return describe_table(self._client(resolve_region(region)), name)

    def plan(self, raw: dict[str, Any] | None, state: PersistedState) -> TablePlan:
        """Compute what a deploy would do without changing anything."""
        config = resolve_config(raw, state, self.name_factory)
        client = self._client(config.region)
        return plan_table(config, describe_table(client, config.name))

    def deploy(
        self,
        raw: dict[str, Any] | None,
        state: PersistedState,
        persist: Persist | None = None,
    ) -> DeployResult:
        """
        Create or update the table, then reconcile its replicas.

        Args:
            raw: Desired configuration (camelCase keys).
            state: State recorded by the previous run (empty on first deploy).
            persist: Called with the new state once the table phase commits.

        Returns:
            DeployResult with outputs ``{name, arn, region, streamArn}``.

        Raises:
            ConfigurationError: Before any provider call, for bad or conflicting config.
            MissingCredentialsError: If no AWS credentials are available.
            StreamIdentifierTimeoutError: If an enabled stream never reports its ARN.
            ClientError: For any other provider failure.
        """
        config = resolve_config(raw, state, self.name_factory)
        logger.info("Starting deployment of table %s in the %s region", config.name, config.region)

        client = self._client(config.region)
        logger.info("Checking if table %s already exists", config.name)
        observation = describe_table(client, config.name)
        plan = plan_table(config, observation)

        if isinstance(observation, Present):
            logger.info("Table %s already exists. Comparing config changes...", config.name)
            arn, stream_arn = self._update(client, plan, observation.table)
        else:
            logger.info("Table %s does not exist. Creating...", config.name)
            if plan.create_request is None:
                raise ProvisioningError(f"No create request was planned for table {config.name}")
            created = applier.create_table(client, plan.create_request, self.options)
            arn, stream_arn = created.arn, created.stream_arn

        new_state = PersistedState(
            name=config.name,
            arn=arn,
            region=config.region,
            stream_arn=stream_arn,
            deletion_policy=config.deletion_policy,
        )
        if persist is not None:
            persist(new_state)
        logger.info(
            "Table %s was successfully deployed to the %s region", config.name, config.region
        )

        applier.sync_replicas(client, config.name, plan.replica_update, self.options)

        return DeployResult(outputs=new_state.outputs(), state=new_state, plan=plan)

    def _update(
        self, client: Any, plan: TablePlan, table: ObservedTableState
    ) -> tuple[str, str | None]:
        action = plan.stream_change.action

        if plan.update_request is None:
            logger.info("Table %s is up to date", table.name)
            arn = table.arn
            polled = None
        else:
            updated = applier.update_table(
                client,
                plan.update_request,
                self.options,
                poll_stream=action is StreamAction.ENABLE,
            )
            arn = updated.arn
            polled = updated.stream_arn

        if action is StreamAction.ENABLE:
            return arn, polled
        if action is StreamAction.DISABLE or not plan.config.stream.enabled:
            return arn, None
        if table.stream_arn:
            return arn, table.stream_arn
        # Stream enabled by an earlier run whose ARN poll timed out
        return arn, applier.poll_stream_arn(client, table.name, self.options)

    def remove(self, state: PersistedState, persist: Persist | None = None) -> RemoveResult:
        """
        Delete the table recorded in ``state`` when its deletion policy allows it.

        Replicas are removed first, then the table. A table that is already
        gone counts as removed.

        Args:
            state: State recorded by the previous deploy.
            persist: Called with the cleared state once the table is deleted.
        """
        if state.deletion_policy is not DeletionPolicy.DELETE:
            logger.info('Skipping table removal because "deletionPolicy" is not set to "delete"')
            return RemoveResult(outputs={}, state=state, removed=False)

        if not state.name:
            logger.warning("Aborting removal. Table name not found in state")
            return RemoveResult(outputs={}, state=state, removed=False)

        region = resolve_region(state.region)
        logger.info("Removing table %s from the %s region", state.name, region)
        client = self._client(region)

        observation = describe_table(client, state.name)
        if isinstance(observation, Present):
            update = teardown_replicas(observation.table.replicas)
            applier.remove_replicas(client, state.name, update, self.options)
        applier.delete_table(client, state.name)

        outputs = state.outputs()
        cleared = PersistedState.empty()
        if persist is not None:
            persist(cleared)
        logger.info("Table %s was successfully removed from the %s region", state.name, region)
        return RemoveResult(outputs=outputs, state=cleared, removed=True)
