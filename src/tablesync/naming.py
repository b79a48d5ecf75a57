"""Table naming and region resolution.

Table and index names must satisfy DynamoDB's table name rules:
- 3 to 255 characters
- Alphanumerics, underscores, hyphens and periods only
"""

import os
import re
import secrets
import string

from .exceptions import ValidationError

GENERATED_NAME_PREFIX = "dynamodb-table-"
"""Prefix of table names synthesized when none is configured."""

GENERATED_SUFFIX_LENGTH = 8

DEFAULT_REGION = "us-east-1"
"""Region used when neither the manifest nor the environment names one."""

REGION_ENV_VAR = "TABLESYNC_REGION"
"""Environment variable for overriding the default region."""

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
REGION_PATTERN = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d+$")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def validate_table_name(name: str) -> None:
    """
    Validate a DynamoDB table name.

    Args:
        name: The user-provided table name

    Raises:
        ValidationError: If the name violates DynamoDB naming rules
    """
    _validate_name("name", name)


def validate_index_name(name: str) -> None:
    """Validate a secondary index name. Indexes follow the table name rules."""
    _validate_name("indexName", name)


def _validate_name(field: str, name: str) -> None:
    if not name:
        raise ValidationError(field, name, "Name cannot be empty")

    if " " in name:
        raise ValidationError(
            field,
            name,
            "Contains spaces. Use hyphens instead (e.g., 'my-table' not 'my table')",
        )

    if not NAME_PATTERN.match(name):
        raise ValidationError(
            field,
            name,
            "Only alphanumeric characters, underscores, hyphens and periods are allowed.",
        )

    if not 3 <= len(name) <= 255:
        raise ValidationError(field, name, "Must be between 3 and 255 characters long.")


def validate_region(region: str) -> None:
    """Validate the shape of an AWS region code (e.g. ``eu-west-1``)."""
    if not region or not REGION_PATTERN.match(region):
        raise ValidationError("region", region, "Not a valid AWS region code.")


def generate_table_name() -> str:
    """Synthesize a unique table name with a random suffix."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(GENERATED_SUFFIX_LENGTH))
    return f"{GENERATED_NAME_PREFIX}{suffix}"


def resolve_region(region: str | None) -> str:
    """Resolve region from explicit arg, env var, or default.

    Resolution order: ``region`` arg → ``TABLESYNC_REGION`` env var → ``"us-east-1"``.

    Args:
        region: Explicit region, or ``None`` to use env/default.

    Returns:
        Validated region code.
    """
    resolved = region or os.environ.get(REGION_ENV_VAR) or DEFAULT_REGION
    validate_region(resolved)
    return resolved
