"""
Resolution of load balancer access log locations.

Looks the load balancer up in the metadata cache first and falls back to
the Elastic Load Balancing v2 API:

1. DescribeLoadBalancers by name -> load balancer ARN
2. DescribeLoadBalancerAttributes by ARN -> access log bucket and prefix
3. ARN fields -> account id and region
"""

import logging
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..config.constants import (
    ATTR_LOGGING_BUCKET,
    ATTR_LOGGING_ENABLED,
    ATTR_LOGGING_PREFIX,
)
from ..exceptions import ConfigurationError, DiscoveryAPIError
from .cache import MetadataCache
from .models import LoadBalancerMetadata

logger = logging.getLogger(__name__)


def account_and_region(arn: str) -> tuple[str, str]:
    """
    Extract account id and region from a load balancer ARN.

    arn:aws:elasticloadbalancing:us-east-1:123456789012:loadbalancer/app/name/id

    Raises:
        ConfigurationError: If the ARN does not have six colon-separated fields
    """
    fields = arn.split(":", 5)
    if len(fields) != 6:
        raise ConfigurationError(f"bad ARN format: {arn!r}")
    return fields[4], fields[3]


class MetadataResolver:
    """
    Resolves where a load balancer stores its access logs.

    Args:
        elbv2_client: boto3 "elbv2" client
        cache: Loaded MetadataCache; None disables caching
    """

    def __init__(self, elbv2_client: Any, cache: Optional[MetadataCache] = None):
        self._client = elbv2_client
        self._cache = cache

    def resolve(self, name: str) -> LoadBalancerMetadata:
        """
        Return access log metadata for a load balancer.

        A cache hit never contacts AWS. A freshly discovered entry is
        written to the cache; failing to write it is only logged.

        Raises:
            ConfigurationError: Unknown load balancer, logging disabled,
                no bucket configured or malformed ARN
            DiscoveryAPIError: The ELBv2 API call failed
        """
        if self._cache is None:
            return self.discover(name)

        metadata, cached = self._cache.get_or_resolve(name, self.discover)
        if not cached:
            try:
                self._cache.persist()
            except OSError as e:
                logger.warning(f"Failed to update metadata cache: {e}")
        return metadata

    def discover(self, name: str) -> LoadBalancerMetadata:
        """Discover access log metadata over the ELBv2 API."""
        logger.info(f"Discovering access log location of {name}")
        arn = self._find_arn(name)
        bucket, prefix = self._logging_location(name, arn)
        account, region = account_and_region(arn)
        return LoadBalancerMetadata(
            account=account, region=region, bucket=bucket, prefix=prefix
        )

    def _find_arn(self, name: str) -> str:
        try:
            response = self._client.describe_load_balancers(Names=[name])
        except ClientError as e:
            if _error_code(e) == "LoadBalancerNotFound":
                raise ConfigurationError(
                    "load balancer not found", load_balancer=name
                ) from e
            raise DiscoveryAPIError(
                f"DescribeLoadBalancers failed: {e}", load_balancer=name
            ) from e
        except BotoCoreError as e:
            raise DiscoveryAPIError(
                f"DescribeLoadBalancers failed: {e}", load_balancer=name
            ) from e

        for lb in response.get("LoadBalancers", []):
            if lb.get("LoadBalancerName") == name and lb.get("LoadBalancerArn"):
                return lb["LoadBalancerArn"]

        raise ConfigurationError(
            "cannot figure out load balancer ARN", load_balancer=name
        )

    def _logging_location(self, name: str, arn: str) -> tuple[str, str]:
        try:
            response = self._client.describe_load_balancer_attributes(
                LoadBalancerArn=arn
            )
        except (ClientError, BotoCoreError) as e:
            raise DiscoveryAPIError(
                f"DescribeLoadBalancerAttributes failed: {e}", load_balancer=name
            ) from e

        bucket = ""
        prefix = ""
        for attr in response.get("Attributes", []):
            key = attr.get("Key")
            value = attr.get("Value")
            if key is None or value is None:
                continue
            if key == ATTR_LOGGING_ENABLED and value != "true":
                raise ConfigurationError(
                    "load balancer has S3 logging disabled", load_balancer=name
                )
            if key == ATTR_LOGGING_BUCKET:
                bucket = value
            elif key == ATTR_LOGGING_PREFIX:
                prefix = value

        if not bucket:
            raise ConfigurationError(
                "cannot figure out which S3 bucket is used for logs",
                load_balancer=name,
            )
        return bucket, prefix


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")
