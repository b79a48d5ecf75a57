"""Applies planned table changes to DynamoDB.

Uses boto3 (sync) directly. Each function issues blocking calls in order
and lets provider errors propagate unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError

from .differ import ReplicaUpdate
from .models import ReconcileOptions
from .observer import is_not_found
from .polling import wait_for_active, wait_for_stream_arn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableResult:
    """Identifiers of a table after a create or update."""

    arn: str
    stream_arn: str | None = None


def create_table(
    client: Any,
    request: dict[str, Any],
    options: ReconcileOptions,
) -> TableResult:
    """
    Create a table and capture its ARN and, if enabled, its stream ARN.

    Args:
        client: boto3 DynamoDB client
        request: CreateTable arguments from the differ
        options: Poll settings for the stream ARN
    """
    name = request["TableName"]
    logger.info("Creating table %s", name)
    response = client.create_table(**request)
    description = response["TableDescription"]

    stream_arn = None
    if request.get("StreamSpecification", {}).get("StreamEnabled"):
        stream_arn = description.get("LatestStreamArn") or poll_stream_arn(client, name, options)

    return TableResult(arn=description["TableArn"], stream_arn=stream_arn)


def update_table(
    client: Any,
    request: dict[str, Any],
    options: ReconcileOptions,
    poll_stream: bool,
) -> TableResult:
    """
    Submit a single combined UpdateTable call.

    Args:
        client: boto3 DynamoDB client
        request: UpdateTable arguments from the differ
        options: Poll settings for the stream ARN
        poll_stream: True when the update newly enables the stream
    """
    name = request["TableName"]
    logger.info("Updating table %s", name)
    response = client.update_table(**request)
    description = response["TableDescription"]

    stream_arn = None
    if poll_stream:
        stream_arn = poll_stream_arn(client, name, options)

    return TableResult(arn=description["TableArn"], stream_arn=stream_arn)


def sync_replicas(
    client: Any,
    name: str,
    update: ReplicaUpdate,
    options: ReconcileOptions,
) -> bool:
    """
    Apply replica creations and deletions in one UpdateTable call.

    The table must be ACTIVE before replicas can change, so this waits first.

    Returns:
        True if an update was submitted
    """
    if update.is_empty:
        return False

    wait_for_active(client, name, options.active_wait_delay, options.active_wait_attempts)
    logger.info(
        "Updating replicas of table %s (create: %s, delete: %s)",
        name,
        ", ".join(update.to_add) or "-",
        ", ".join(update.to_remove) or "-",
    )
    client.update_table(TableName=name, ReplicaUpdates=update.to_api())
    return True


def remove_replicas(
    client: Any,
    name: str,
    update: ReplicaUpdate,
    options: ReconcileOptions,
) -> bool:
    """
    Delete every listed replica, then wait for the table to settle.

    A table with live replicas cannot be deleted.

    Returns:
        True if an update was submitted
    """
    if update.is_empty:
        return False

    logger.info("Removing replicas of table %s: %s", name, ", ".join(update.to_remove))
    client.update_table(TableName=name, ReplicaUpdates=update.to_api())
    wait_for_active(client, name, options.active_wait_delay, options.active_wait_attempts)
    return True


def delete_table(client: Any, name: str) -> bool:
    """
    Delete a table, treating an already missing table as success.

    Returns:
        True if a deletion was issued, False if the table was already gone
    """
    try:
        client.delete_table(TableName=name)
    except ClientError as e:
        if not is_not_found(e):
            raise
        logger.info("Table %s was already absent", name)
        return False
    return True


def poll_stream_arn(client: Any, name: str, options: ReconcileOptions) -> str:
    """Wait for the stream ARN of table ``name`` using the configured poll budget."""
    return wait_for_stream_arn(
        client,
        name,
        attempts=options.stream_poll_attempts,
        interval=options.stream_poll_interval,
    )
