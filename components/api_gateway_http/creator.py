"""Creator for the api-gateway-http component type."""

from typing import Any, Dict, List

from components.common.capabilities import API_HTTP
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, ApiGatewayHttpConfigBuilder
from .component import ApiGatewayHttpComponent


class ApiGatewayHttpCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "API Gateway HTTP API"
    description = "HTTP API with CORS, URL integrations, throttled stage, access logs and custom domain"
    category = "api"
    aws_service = "APIGatewayV2"
    tags = ["api", "http", "api-gateway"]
    provided_capabilities = [API_HTTP]

    builder_class = ApiGatewayHttpConfigBuilder
    component_class = ApiGatewayHttpComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        if context.is_production and "*" in config["cors"]["allowOrigins"]:
            errors.append("cors.allowOrigins must not contain '*' in production environments")
        if context.is_fedramp:
            framework = context.compliance_framework.value
            if not config["accessLogging"]["enabled"]:
                errors.append(f"accessLogging.enabled must be true for {framework}")
            if not config["monitoring"]["detailedMetrics"]:
                errors.append(f"monitoring.detailedMetrics must be true for {framework}")
            insecure = [origin for origin in config["cors"]["allowOrigins"] if origin.startswith("http://")]
            if insecure:
                errors.append(f"cors.allowOrigins must use https for {framework}: {', '.join(insecure)}")

        errors.extend(AWSResourceValidator.arn_errors(
            (config.get("customDomain") or {}).get("certificateArn"), "customDomain.certificateArn", "acm"
        ))
        return errors
