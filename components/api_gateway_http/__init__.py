"""API Gateway HTTP API component."""

from .builder import ApiGatewayHttpConfigBuilder, API_GATEWAY_HTTP_CONFIG_SCHEMA
from .component import ApiGatewayHttpComponent
from .creator import ApiGatewayHttpCreator

__all__ = [
    "ApiGatewayHttpConfigBuilder",
    "API_GATEWAY_HTTP_CONFIG_SCHEMA",
    "ApiGatewayHttpComponent",
    "ApiGatewayHttpCreator",
]
