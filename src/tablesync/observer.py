"""Observes the provider's current view of a table."""

from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError

from .models import ObservedTableState

NOT_FOUND = "ResourceNotFoundException"


@dataclass(frozen=True)
class Present:
    """The table exists; ``table`` is its normalized description."""

    table: ObservedTableState


@dataclass(frozen=True)
class Absent:
    """The table does not exist."""

    name: str


Observation = Present | Absent


def is_not_found(error: ClientError) -> bool:
    return bool(error.response.get("Error", {}).get("Code") == NOT_FOUND)


def describe_table(client: Any, name: str) -> Observation:
    """
    Describe table ``name``.

    Returns:
        Present with the normalized state, or Absent when the provider
        reports the table does not exist.

    Raises:
        ClientError: For any other provider failure.
    """
    try:
        response = client.describe_table(TableName=name)
    except ClientError as e:
        if is_not_found(e):
            return Absent(name)
        raise
    return Present(ObservedTableState.from_api(response["Table"]))
