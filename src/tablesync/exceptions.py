"""Exceptions for tablesync."""

from typing import Any

from botocore.exceptions import ClientError

# Control-plane failures are not wrapped: callers see botocore's ClientError.
ProviderOperationError = ClientError


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class TableSyncError(Exception):
    """
    Base exception for all tablesync errors.

    All exceptions raised by this library inherit from this class,
    allowing callers to catch all library-specific errors with a single
    except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Category Exceptions
# ---------------------------------------------------------------------------


class ConfigurationError(TableSyncError):
    """
    Base exception for desired-configuration errors.

    Raised before any provider call is made.
    """

    pass


class ProvisioningError(TableSyncError):
    """
    Base exception for failures while converging the table.

    This includes missing credentials and stream identifiers that never
    materialized.
    """

    pass


# ---------------------------------------------------------------------------
# Configuration Exceptions
# ---------------------------------------------------------------------------


class ValidationError(ConfigurationError):
    """
    Raised when a configuration value is malformed.

    Attributes:
        field: Name of the offending field
        value: The rejected value
        reason: Human-readable explanation
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class ConfigImmutabilityError(ConfigurationError):
    """
    Raised when the desired name or region conflicts with the persisted identity.

    Changing either would provision a second table rather than update the
    existing one, so the resource must be removed first.

    Attributes:
        field: "name" or "region"
        persisted: Value recorded by a previous deploy
        desired: Value supplied by the current configuration
    """

    def __init__(self, field: str, persisted: str, desired: str) -> None:
        self.field = field
        self.persisted = persisted
        self.desired = desired
        super().__init__(
            f"You cannot change the {field} of a deployed table "
            f"({persisted!r} -> {desired!r}). "
            "Run 'tablesync remove' first, then deploy again."
        )


# ---------------------------------------------------------------------------
# Provisioning Exceptions
# ---------------------------------------------------------------------------


class StreamIdentifierTimeoutError(ProvisioningError):
    """
    Raised when an enabled stream's ARN never appears within the poll budget.

    The table itself is fine; re-running the deploy polls again from scratch.
    """

    def __init__(self, table_name: str, attempts: int) -> None:
        self.table_name = table_name
        self.attempts = attempts
        super().__init__(
            f"Stream ARN for table {table_name} was not available after "
            f"{attempts} attempts. Please re-run the deploy."
        )


class MissingCredentialsError(ProvisioningError):
    """Raised when no usable AWS credentials can be resolved."""

    def __init__(self, region: str | None = None) -> None:
        self.region = region
        super().__init__(
            "AWS credentials not found. Configure them via environment variables, "
            "a shared credentials file, or an instance profile."
        )
