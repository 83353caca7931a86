"""CloudFront distribution component."""

from .builder import CloudFrontDistributionConfigBuilder, CLOUDFRONT_DISTRIBUTION_CONFIG_SCHEMA
from .component import CloudFrontDistributionComponent
from .creator import CloudFrontDistributionCreator

__all__ = [
    "CloudFrontDistributionConfigBuilder",
    "CLOUDFRONT_DISTRIBUTION_CONFIG_SCHEMA",
    "CloudFrontDistributionComponent",
    "CloudFrontDistributionCreator",
]
