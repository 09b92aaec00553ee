"""
Pytest configuration and shared fixtures for unit tests.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from alblogs.config import clear_settings_cache

LB_NAME = "my-alb"
LB_ARN = (
    "arn:aws:elasticloadbalancing:us-east-1:123456789012:"
    "loadbalancer/app/my-alb/50dc6c495c0c9188"
)


def make_client_error(code: str, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} raised in test"}},
        operation,
    )


def logging_attributes(
    enabled: str = "true", bucket: str = "alb-logs", prefix: str = "prod"
) -> dict:
    """DescribeLoadBalancerAttributes response for S3 access logging."""
    return {
        "Attributes": [
            {"Key": "deletion_protection.enabled", "Value": "false"},
            {"Key": "access_logs.s3.enabled", "Value": enabled},
            {"Key": "access_logs.s3.bucket", "Value": bucket},
            {"Key": "access_logs.s3.prefix", "Value": prefix},
            {"Key": "idle_timeout.timeout_seconds", "Value": "60"},
        ]
    }


@pytest.fixture
def elbv2_client():
    """MagicMock ELBv2 client describing a single logging-enabled ALB."""
    client = MagicMock()
    client.describe_load_balancers.return_value = {
        "LoadBalancers": [{"LoadBalancerName": LB_NAME, "LoadBalancerArn": LB_ARN}]
    }
    client.describe_load_balancer_attributes.return_value = logging_attributes()
    return client


@pytest.fixture
def ref_time():
    """Reference time used across selection tests."""
    return datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep settings lookups away from the developer's environment."""
    for var in (
        "ALBLOGS_CONFIG",
        "ALBLOGS_CACHE_DIR",
        "ALBLOGS_TEMP_DIR",
        "ALBLOGS_FIELDS_FILE",
        "ALBLOGS_MAX_FILES",
        "AWS_PROFILE",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()
