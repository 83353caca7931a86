"""Application Load Balancer component."""

from .builder import ApplicationLoadBalancerConfigBuilder, APPLICATION_LOAD_BALANCER_CONFIG_SCHEMA
from .component import ApplicationLoadBalancerComponent
from .creator import ApplicationLoadBalancerCreator

__all__ = [
    "ApplicationLoadBalancerConfigBuilder",
    "APPLICATION_LOAD_BALANCER_CONFIG_SCHEMA",
    "ApplicationLoadBalancerComponent",
    "ApplicationLoadBalancerCreator",
]
