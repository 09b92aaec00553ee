"""Data models for load balancer storage metadata."""

from dataclasses import asdict, dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class LoadBalancerMetadata:
    """
    Where a load balancer delivers its access logs.

    Attributes:
        account: AWS account id owning the load balancer
        region: AWS region of the load balancer
        bucket: S3 bucket receiving access logs
        prefix: Key prefix configured for access logs (may be empty)
    """

    account: str
    region: str
    bucket: str
    prefix: str = ""

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for the JSON cache file."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["LoadBalancerMetadata"]:
        """
        Create from a cache file entry.

        Returns None when the entry is not a mapping or lacks
        any of account, region or bucket as strings.
        """
        if not isinstance(data, dict):
            return None

        values = {}
        for name in ("account", "region", "bucket"):
            value = data.get(name)
            if not isinstance(value, str) or not value:
                return None
            values[name] = value

        prefix = data.get("prefix", "")
        if not isinstance(prefix, str):
            return None

        return cls(prefix=prefix, **values)
