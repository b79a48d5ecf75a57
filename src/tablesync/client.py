"""DynamoDB client construction."""

from typing import Any

import boto3

from .exceptions import MissingCredentialsError


def make_client(region: str, endpoint_url: str | None = None) -> Any:
    """
    Create a boto3 DynamoDB client for ``region``.

    Credentials are resolved up front so a missing configuration fails
    before any request is sent.

    Args:
        region: AWS region the table lives in
        endpoint_url: Optional endpoint URL (for LocalStack or other AWS-compatible services)

    Raises:
        MissingCredentialsError: If boto3 cannot resolve credentials
    """
    session = boto3.Session(region_name=region)
    if session.get_credentials() is None:
        raise MissingCredentialsError(region)

    kwargs: dict[str, Any] = {}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return session.client("dynamodb", **kwargs)
