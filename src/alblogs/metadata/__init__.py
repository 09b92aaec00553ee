"""
Load balancer storage metadata: resolution and caching.

Usage:
    from alblogs.metadata import MetadataCache, MetadataResolver

    cache = MetadataCache(settings.cache_file).load()
    resolver = MetadataResolver(boto3.client("elbv2"), cache)
    meta = resolver.resolve("my-alb")
    print(meta.bucket, meta.prefix)
"""

from .cache import MetadataCache
from .models import LoadBalancerMetadata
from .resolver import MetadataResolver, account_and_region

__all__ = [
    "LoadBalancerMetadata",
    "MetadataCache",
    "MetadataResolver",
    "account_and_region",
]
