"""ElastiCache Redis component."""

from .builder import ElastiCacheRedisConfigBuilder, ELASTICACHE_REDIS_CONFIG_SCHEMA
from .component import ElastiCacheRedisComponent
from .creator import ElastiCacheRedisCreator

__all__ = [
    "ElastiCacheRedisConfigBuilder",
    "ELASTICACHE_REDIS_CONFIG_SCHEMA",
    "ElastiCacheRedisComponent",
    "ElastiCacheRedisCreator",
]
