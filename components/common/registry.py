"""Registry of component creators keyed by component type."""

import logging
from typing import Any, Dict, List

from constructs import Construct

from .base import BaseComponent
from .contracts import ComponentContext, ComponentSpec
from .creator import ComponentCreator
from .exceptions import ComponentConfigurationError, UnknownComponentTypeError

logger = logging.getLogger(__name__)


class ComponentRegistry:
    """Maps component types to the creators that build them."""

    def __init__(self) -> None:
        self._creators: Dict[str, ComponentCreator] = {}

    def register(self, creator: ComponentCreator) -> None:
        component_type = creator.component_type
        if not component_type:
            raise ComponentConfigurationError(
                f"{type(creator).__name__} does not declare a component_type",
                config_key="component_type"
            )
        if component_type in self._creators:
            raise ComponentConfigurationError(
                f"Component type '{component_type}' is already registered",
                config_key=component_type
            )
        self._creators[component_type] = creator
        logger.debug(f"Registered component type '{component_type}'")

    def get_creator(self, component_type: str) -> ComponentCreator:
        try:
            return self._creators[component_type]
        except KeyError:
            raise UnknownComponentTypeError(component_type, list(self._creators))

    def supports(self, component_type: str) -> bool:
        return component_type in self._creators

    def list_types(self) -> List[str]:
        return sorted(self._creators)

    def describe_all(self) -> List[Dict[str, Any]]:
        return [self._creators[t].describe() for t in self.list_types()]

    def create_component(self,
                         scope: Construct,
                         spec: ComponentSpec,
                         context: ComponentContext) -> BaseComponent:
        return self.get_creator(spec.type).create_component(scope, spec, context)


def default_registry() -> ComponentRegistry:
    """Registry with every component in the catalog registered."""
    # Component packages import this package, so they are loaded on demand
    from components.api_gateway_http import ApiGatewayHttpCreator
    from components.application_load_balancer import ApplicationLoadBalancerCreator
    from components.backstage_portal import BackstagePortalCreator
    from components.cloudfront_distribution import CloudFrontDistributionCreator
    from components.dynamodb_table import DynamoDbTableCreator
    from components.efs_filesystem import EfsFilesystemCreator
    from components.elasticache_redis import ElastiCacheRedisCreator
    from components.glue_job import GlueJobCreator
    from components.sqs_queue import SqsQueueCreator

    registry = ComponentRegistry()
    for creator_class in (
        ApiGatewayHttpCreator,
        ApplicationLoadBalancerCreator,
        BackstagePortalCreator,
        CloudFrontDistributionCreator,
        DynamoDbTableCreator,
        EfsFilesystemCreator,
        ElastiCacheRedisCreator,
        GlueJobCreator,
        SqsQueueCreator,
    ):
        registry.register(creator_class())
    return registry
