"""Unit test fixtures using moto and mocked clients."""

import boto3
import pytest
from moto import mock_aws

from tablesync.models import ReconcileOptions


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    # Unset AWS_ENDPOINT_URL to ensure moto intercepts requests
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("TABLESYNC_REGION", raising=False)


@pytest.fixture
def mock_dynamodb(aws_credentials):
    """Mock DynamoDB for tests."""
    with mock_aws():
        yield


@pytest.fixture
def dynamodb_client(mock_dynamodb):
    """boto3 DynamoDB client backed by moto."""
    return boto3.client("dynamodb", region_name="us-east-1")


@pytest.fixture
def fast_options() -> ReconcileOptions:
    """Options that never sleep."""
    return ReconcileOptions(
        stream_poll_attempts=3,
        stream_poll_interval=0,
        active_wait_delay=0,
        active_wait_attempts=1,
    )
