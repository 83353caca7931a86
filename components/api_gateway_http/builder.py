"""Configuration builder for API Gateway HTTP APIs."""

from typing import Any, Dict

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "api-gateway-http"

ROUTE_METHODS = ["ANY", "GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

API_GATEWAY_HTTP_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "API Gateway HTTP API configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "apiName": {"type": "string", "minLength": 1, "maxLength": 128},
        "description": {"type": "string", "maxLength": 1024},
        "cors": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "allowOrigins": {"type": "array", "items": {"type": "string"}},
                "allowHeaders": {"type": "array", "items": {"type": "string"}},
                "allowMethods": {"type": "array", "items": {"type": "string", "enum": ROUTE_METHODS}},
                "allowCredentials": {"type": "boolean"},
                "maxAge": {"type": "integer", "minimum": 0, "maximum": 86400},
                "exposeHeaders": {"type": "array", "items": {"type": "string"}},
            },
        },
        "auth": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "jwt": {
                    "type": "object",
                    "additionalProperties": False,
                    "required": ["issuer", "audience"],
                    "properties": {
                        "issuer": {"type": "string", "pattern": "^https://"},
                        "audience": {"type": "array", "items": {"type": "string"}, "minItems": 1},
                        "identitySource": {"type": "array", "items": {"type": "string"}},
                    },
                },
            },
        },
        "routes": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["path", "integration"],
                "properties": {
                    "method": {"type": "string", "enum": ROUTE_METHODS},
                    "path": {"type": "string", "pattern": "^/"},
                    "authorization": {"type": "string", "enum": ["none", "jwt"]},
                    "integration": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["uri"],
                        "properties": {
                            "type": {"type": "string", "enum": ["http-proxy"]},
                            "uri": {"type": "string", "pattern": "^https?://"},
                            "method": {"type": "string", "enum": ROUTE_METHODS},
                        },
                    },
                },
            },
        },
        "stage": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "name": {"type": "string", "pattern": "^(\\$default|[a-zA-Z0-9_-]+)$"},
                "autoDeploy": {"type": "boolean"},
            },
        },
        "throttling": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "rateLimit": {"type": "number", "minimum": 0},
                "burstLimit": {"type": "integer", "minimum": 0},
            },
        },
        "accessLogging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "logGroupName": {"type": "string"},
                "retentionDays": {"type": "integer", "minimum": 1},
                "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
            },
        },
        "customDomain": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "domainName": {"type": "string"},
                "certificateArn": {"type": "string"},
                "basePath": {"type": "string"},
            },
        },
        "disableExecuteApiEndpoint": {"type": "boolean"},
        "monitoring": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "detailedMetrics": {"type": "boolean"},
                "alarms": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "error4xx": alarm_spec_schema(),
                        "error5xx": alarm_spec_schema(),
                        "latencyMs": alarm_spec_schema(),
                    },
                },
            },
        },
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


class ApiGatewayHttpConfigBuilder(ConfigBuilder):
    """Resolves HTTP API configuration."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = API_GATEWAY_HTTP_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "cors": {
                "allowOrigins": ["https://localhost:3000"],
                "allowHeaders": ["Content-Type", "Authorization", "X-Requested-With"],
                "allowMethods": ["GET", "POST", "OPTIONS"],
                "allowCredentials": False,
                "maxAge": 300,
                "exposeHeaders": [],
            },
            "routes": [],
            "stage": {"name": "$default", "autoDeploy": True},
            "throttling": {"rateLimit": 100, "burstLimit": 200},
            "accessLogging": {"enabled": True, "retentionDays": 7, "removalPolicy": "destroy"},
            "disableExecuteApiEndpoint": False,
            "monitoring": {
                "enabled": True,
                "detailedMetrics": False,
                "alarms": {
                    "error4xx": {"enabled": True, "threshold": 50, "evaluationPeriods": 2, "periodMinutes": 5},
                    "error5xx": {"enabled": True, "threshold": 10, "evaluationPeriods": 2, "periodMinutes": 5},
                    "latencyMs": {"enabled": True, "threshold": 5000, "evaluationPeriods": 3, "periodMinutes": 5},
                },
            },
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        config.setdefault("apiName", self.default_resource_name(max_length=128))
        config.setdefault("description", f"HTTP API for {self.context.service_name}/{self.spec.name}")

        cors = config["cors"]
        if cors["allowCredentials"] and "*" in cors["allowOrigins"]:
            raise ComponentConfigurationError(
                "cors.allowCredentials cannot be combined with a wildcard origin",
                config_key="cors.allowOrigins"
            )

        seen = set()
        routes = []
        for index, route in enumerate(config["routes"]):
            route = {"method": "ANY", "authorization": "none", **route}
            route["integration"] = {"type": "http-proxy", "method": "ANY", **route["integration"]}
            route_key = f"{route['method']} {route['path']}"
            if route_key in seen:
                raise ComponentConfigurationError(
                    f"Route '{route_key}' is defined more than once",
                    config_key=f"routes.{index}"
                )
            seen.add(route_key)
            if route["authorization"] == "jwt" and not config.get("auth", {}).get("jwt"):
                raise ComponentConfigurationError(
                    f"Route '{route_key}' uses jwt authorization but auth.jwt is not configured",
                    config_key="auth.jwt"
                )
            routes.append(route)
        config["routes"] = routes

        jwt = config.get("auth", {}).get("jwt")
        if jwt:
            jwt.setdefault("identitySource", ["$request.header.Authorization"])

        custom_domain = config.get("customDomain")
        if custom_domain and custom_domain.get("domainName") and not custom_domain.get("certificateArn"):
            raise ComponentConfigurationError(
                "customDomain.certificateArn is required when customDomain.domainName is set",
                config_key="customDomain.certificateArn"
            )

        access_logging = config["accessLogging"]
        if access_logging["enabled"]:
            access_logging.setdefault("logGroupName", f"/aws/apigateway/{config['apiName']}/access")
        return config
