"""Configuration builder for CloudFront distributions."""

from typing import Any, Dict, List

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "cloudfront-distribution"

HTTP_METHODS = ["GET", "HEAD", "OPTIONS", "PUT", "PATCH", "POST", "DELETE"]

# Method sets CloudFront accepts, keyed by the name used in the component
ALLOWED_METHOD_SETS = {
    "GET_HEAD": {"GET", "HEAD"},
    "GET_HEAD_OPTIONS": {"GET", "HEAD", "OPTIONS"},
    "ALL": set(HTTP_METHODS),
}

CACHED_METHOD_SETS = {
    "GET_HEAD": {"GET", "HEAD"},
    "GET_HEAD_OPTIONS": {"GET", "HEAD", "OPTIONS"},
}

_BEHAVIOR_PROPERTIES = {
    "viewerProtocolPolicy": {"type": "string", "enum": ["allow-all", "redirect-to-https", "https-only"]},
    "allowedMethods": {"type": "array", "items": {"type": "string", "enum": HTTP_METHODS}, "uniqueItems": True},
    "cachedMethods": {"type": "array", "items": {"type": "string", "enum": ["GET", "HEAD", "OPTIONS"]},
                      "uniqueItems": True},
    "compress": {"type": "boolean"},
    "cachePolicyId": {"type": "string"},
    "originRequestPolicyId": {"type": "string"},
}

CLOUDFRONT_DISTRIBUTION_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "CloudFront distribution configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "comment": {"type": "string", "maxLength": 128},
        "origin": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "type": {"type": "string", "enum": ["s3", "alb", "custom"]},
                "s3BucketName": {"type": "string", "pattern": "^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$"},
                "albDnsName": {"type": "string"},
                "customDomainName": {"type": "string"},
                "originPath": {"type": "string", "pattern": "^/"},
                "customHeaders": {"type": "object", "additionalProperties": {"type": "string"}},
            },
        },
        "defaultBehavior": {
            "type": "object",
            "additionalProperties": False,
            "properties": _BEHAVIOR_PROPERTIES,
        },
        "additionalBehaviors": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["pathPattern"],
                "properties": {"pathPattern": {"type": "string", "minLength": 1}, **_BEHAVIOR_PROPERTIES},
            },
        },
        "priceClass": {"type": "string", "enum": ["PriceClass_100", "PriceClass_200", "PriceClass_All"]},
        "defaultRootObject": {"type": "string"},
        "geoRestriction": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "type": {"type": "string", "enum": ["none", "allowlist", "denylist"]},
                "countries": {"type": "array", "items": {"type": "string", "pattern": "^[A-Z]{2}$"}},
            },
        },
        "domain": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "domainNames": {"type": "array", "items": {"type": "string"}},
                "certificateArn": {"type": "string"},
            },
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "bucket": {"type": "string"},
                "prefix": {"type": "string"},
                "includeCookies": {"type": "boolean"},
                "retentionDays": {"type": "integer", "minimum": 1},
            },
        },
        "monitoring": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "alarms": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "error4xx": alarm_spec_schema(),
                        "error5xx": alarm_spec_schema(),
                        "originLatencyMs": alarm_spec_schema(),
                    },
                },
            },
        },
        "webAclId": {"type": "string"},
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


def method_set_name(methods: List[str], sets: Dict[str, set], field: str) -> str:
    """
    Map a list of HTTP methods to the CloudFront method set it names.

    Raises:
        ComponentConfigurationError: If the methods form no supported set
    """
    requested = set(methods)
    for name, members in sets.items():
        if requested == members:
            return name
    supported = "; ".join(", ".join(sorted(members)) for members in sets.values())
    raise ComponentConfigurationError(
        f"{field} must be one of the CloudFront method sets ({supported}), got {sorted(requested)}",
        config_key=field
    )


class CloudFrontDistributionConfigBuilder(ConfigBuilder):
    """Resolves CloudFront distribution configuration."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = CLOUDFRONT_DISTRIBUTION_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "comment": "Managed by platform-components",
            "origin": {"type": "s3", "customHeaders": {}},
            "defaultBehavior": {
                "viewerProtocolPolicy": "allow-all",
                "allowedMethods": ["GET", "HEAD"],
                "cachedMethods": ["GET", "HEAD"],
                "compress": True,
            },
            "additionalBehaviors": [],
            "priceClass": "PriceClass_100",
            "geoRestriction": {"type": "none", "countries": []},
            "domain": {"domainNames": []},
            "logging": {"enabled": False, "includeCookies": False, "retentionDays": 90},
            "monitoring": {
                "enabled": False,
                "alarms": {
                    "error4xx": {"enabled": True, "threshold": 50, "evaluationPeriods": 2, "periodMinutes": 5},
                    "error5xx": {"enabled": True, "threshold": 10, "evaluationPeriods": 2, "periodMinutes": 5},
                    "originLatencyMs": {"enabled": True, "threshold": 5000, "evaluationPeriods": 2,
                                        "periodMinutes": 5},
                },
            },
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        origin = config["origin"]
        if origin["type"] == "s3":
            origin.setdefault("s3BucketName", self.default_resource_name("origin"))
        elif origin["type"] == "alb" and not origin.get("albDnsName"):
            raise ComponentConfigurationError(
                "origin.albDnsName is required when origin.type is 'alb'",
                config_key="origin.albDnsName"
            )
        elif origin["type"] == "custom" and not origin.get("customDomainName"):
            raise ComponentConfigurationError(
                "origin.customDomainName is required when origin.type is 'custom'",
                config_key="origin.customDomainName"
            )

        default_behavior = config["defaultBehavior"]
        self._check_methods(default_behavior, "defaultBehavior")
        behaviors = []
        for index, behavior in enumerate(config["additionalBehaviors"]):
            resolved = {
                "viewerProtocolPolicy": default_behavior["viewerProtocolPolicy"],
                "allowedMethods": ["GET", "HEAD"],
                "cachedMethods": ["GET", "HEAD"],
                "compress": True,
            }
            resolved.update(behavior)
            self._check_methods(resolved, f"additionalBehaviors.{index}")
            behaviors.append(resolved)
        config["additionalBehaviors"] = behaviors

        domain = config["domain"]
        if domain["domainNames"] and not domain.get("certificateArn"):
            raise ComponentConfigurationError(
                "domain.certificateArn is required when domain.domainNames is set",
                config_key="domain.certificateArn"
            )

        if config["geoRestriction"]["type"] != "none" and not config["geoRestriction"]["countries"]:
            raise ComponentConfigurationError(
                "geoRestriction.countries must list at least one country code",
                config_key="geoRestriction.countries"
            )

        logging_config = config["logging"]
        if logging_config["enabled"]:
            logging_config.setdefault("prefix", f"{self.context.service_name}/{self.spec.name}/")
        return config

    @staticmethod
    def _check_methods(behavior: Dict[str, Any], field: str) -> None:
        method_set_name(behavior["allowedMethods"], ALLOWED_METHOD_SETS, f"{field}.allowedMethods")
        method_set_name(behavior["cachedMethods"], CACHED_METHOD_SETS, f"{field}.cachedMethods")
