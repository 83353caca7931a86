"""Creator for the application-load-balancer component type."""

from typing import Any, Dict, List

from components.common.capabilities import NET_LOAD_BALANCER
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, ApplicationLoadBalancerConfigBuilder
from .component import ApplicationLoadBalancerComponent


class ApplicationLoadBalancerCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "Application Load Balancer"
    description = "Application Load Balancer with listeners, target groups, access logs and alarms"
    category = "networking"
    aws_service = "ElasticLoadBalancingV2"
    tags = ["networking", "load-balancer", "alb"]
    provided_capabilities = [NET_LOAD_BALANCER]

    builder_class = ApplicationLoadBalancerConfigBuilder
    component_class = ApplicationLoadBalancerComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        if context.is_fedramp:
            framework = context.compliance_framework.value
            if not config["accessLogs"]["enabled"]:
                errors.append(f"accessLogs.enabled must be true for {framework}")
            for listener in config["listeners"]:
                if listener["protocol"] == "HTTP" and not listener["redirectToHttps"]:
                    errors.append(
                        f"HTTP listener on port {listener['port']} must redirect to HTTPS for {framework}"
                    )
            if not config["dropInvalidHeaderFields"]:
                errors.append(f"dropInvalidHeaderFields must be true for {framework}")
        if context.is_production and not config["deletionProtection"]:
            errors.append("deletionProtection must be enabled in production environments")

        names = [target_group["name"] for target_group in config["targetGroups"]]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            errors.append(f"Duplicate target group names: {', '.join(duplicates)}")

        for index, listener in enumerate(config["listeners"]):
            errors.extend(AWSResourceValidator.arn_errors(
                listener.get("certificateArn"), f"listeners.{index}.certificateArn", "acm"
            ))
        return errors
