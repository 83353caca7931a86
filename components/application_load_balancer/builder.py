"""Configuration builder for Application Load Balancers."""

import re
from typing import Any, Dict, List

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "application-load-balancer"

SSL_POLICY_NAMES = ["RECOMMENDED_TLS", "TLS13_RES", "TLS12", "TLS12_EXT", "FORWARD_SECRECY_TLS12_RES"]

_HEALTH_CHECK_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "enabled": {"type": "boolean"},
        "path": {"type": "string", "pattern": "^/"},
        "protocol": {"type": "string", "enum": ["HTTP", "HTTPS"]},
        "port": {"type": "string"},
        "healthyThresholdCount": {"type": "integer", "minimum": 2, "maximum": 10},
        "unhealthyThresholdCount": {"type": "integer", "minimum": 2, "maximum": 10},
        "timeoutSeconds": {"type": "integer", "minimum": 2, "maximum": 120},
        "intervalSeconds": {"type": "integer", "minimum": 5, "maximum": 300},
        "matcher": {"type": "string"},
    },
}

APPLICATION_LOAD_BALANCER_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Application Load Balancer configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "loadBalancerName": {"type": "string", "maxLength": 32},
        "scheme": {"type": "string", "enum": ["internet-facing", "internal"]},
        "ipAddressType": {"type": "string", "enum": ["ipv4", "dualstack"]},
        "vpc": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "vpcId": {"type": "string"},
                "subnetIds": {"type": "array", "items": {"type": "string"}},
                "subnetType": {"type": "string", "enum": ["public", "private"]},
            },
        },
        "securityGroups": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "create": {"type": "boolean"},
                "securityGroupIds": {"type": "array", "items": {"type": "string"}},
                "ingress": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["port"],
                        "properties": {
                            "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                            "cidr": {"type": "string"},
                            "description": {"type": "string"},
                        },
                    },
                },
            },
        },
        "accessLogs": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "bucketName": {"type": "string"},
                "prefix": {"type": "string"},
                "retentionDays": {"type": "integer", "minimum": 1},
                "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
                "connectionLogs": {"type": "boolean"},
            },
        },
        "listeners": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["port"],
                "properties": {
                    "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                    "protocol": {"type": "string", "enum": ["HTTP", "HTTPS"]},
                    "certificateArn": {"type": "string"},
                    "sslPolicy": {"type": "string", "enum": SSL_POLICY_NAMES},
                    "redirectToHttps": {"type": "boolean"},
                    "defaultAction": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["type"],
                        "properties": {
                            "type": {"type": "string", "enum": ["forward", "fixed-response"]},
                            "targetGroup": {"type": "string"},
                            "statusCode": {"type": "integer", "minimum": 200, "maximum": 599},
                            "contentType": {"type": "string"},
                            "messageBody": {"type": "string"},
                        },
                    },
                },
            },
        },
        "targetGroups": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["name", "port"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                    "protocol": {"type": "string", "enum": ["HTTP", "HTTPS"]},
                    "targetType": {"type": "string", "enum": ["instance", "ip", "lambda"]},
                    "healthCheck": _HEALTH_CHECK_SCHEMA,
                    "stickiness": {
                        "type": "object",
                        "additionalProperties": False,
                        "properties": {
                            "enabled": {"type": "boolean"},
                            "durationSeconds": {"type": "integer", "minimum": 1, "maximum": 604800},
                        },
                    },
                    "deregistrationDelaySeconds": {"type": "integer", "minimum": 0, "maximum": 3600},
                },
            },
        },
        "deletionProtection": {"type": "boolean"},
        "idleTimeoutSeconds": {"type": "integer", "minimum": 1, "maximum": 4000},
        "dropInvalidHeaderFields": {"type": "boolean"},
        "monitoring": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "alarms": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "http5xx": alarm_spec_schema(),
                        "targetResponseTime": alarm_spec_schema(),
                        "unhealthyHosts": alarm_spec_schema(),
                        "rejectedConnections": alarm_spec_schema(),
                    },
                },
            },
        },
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


def _sanitise_name(name: str, fallback: str) -> str:
    name = re.sub(r"-+", "-", re.sub(r"[^a-zA-Z0-9-]", "-", name)).strip("-")
    return name[:32].rstrip("-") or fallback


class ApplicationLoadBalancerConfigBuilder(ConfigBuilder):
    """Resolves Application Load Balancer configuration."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = APPLICATION_LOAD_BALANCER_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "scheme": "internet-facing",
            "ipAddressType": "ipv4",
            "vpc": {"subnetIds": [], "subnetType": "public"},
            "securityGroups": {
                "create": True,
                "securityGroupIds": [],
                "ingress": [
                    {"port": 80, "cidr": "0.0.0.0/0", "description": "Allow HTTP"},
                    {"port": 443, "cidr": "0.0.0.0/0", "description": "Allow HTTPS"},
                ],
            },
            "accessLogs": {"enabled": False, "retentionDays": 30, "removalPolicy": "destroy",
                           "connectionLogs": False},
            "listeners": [{"port": 80, "protocol": "HTTP", "redirectToHttps": False}],
            "targetGroups": [],
            "deletionProtection": False,
            "idleTimeoutSeconds": 60,
            "dropInvalidHeaderFields": True,
            "monitoring": {
                "enabled": False,
                "alarms": {
                    "http5xx": {"enabled": True, "threshold": 10, "evaluationPeriods": 2, "periodMinutes": 5},
                    "targetResponseTime": {"enabled": True, "threshold": 2, "evaluationPeriods": 3,
                                           "periodMinutes": 5},
                    "unhealthyHosts": {"enabled": True, "threshold": 1, "evaluationPeriods": 2, "periodMinutes": 5},
                    "rejectedConnections": {"enabled": True, "threshold": 1, "evaluationPeriods": 2,
                                            "periodMinutes": 5},
                },
            },
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        config["loadBalancerName"] = _sanitise_name(
            config.get("loadBalancerName") or self.default_resource_name(max_length=32), "alb"
        )

        for rule in config["securityGroups"]["ingress"]:
            rule.setdefault("cidr", "0.0.0.0/0")
            rule.setdefault("description", f"Allow TCP {rule['port']}")
        if not config["securityGroups"]["create"] and not config["securityGroups"]["securityGroupIds"]:
            raise ComponentConfigurationError(
                "securityGroups.securityGroupIds is required when securityGroups.create is false",
                config_key="securityGroups.securityGroupIds"
            )

        access_logs = config["accessLogs"]
        access_logs.setdefault("prefix", config["loadBalancerName"])
        access_logs["prefix"] = access_logs["prefix"].strip("/")

        target_groups = []
        for target_group in config["targetGroups"]:
            resolved = {
                "protocol": "HTTP",
                "targetType": "instance",
                "stickiness": {"enabled": False},
                "deregistrationDelaySeconds": 300,
            }
            resolved.update(target_group)
            resolved["name"] = _sanitise_name(target_group["name"], "targets")
            health_check = {
                "enabled": True,
                "path": "/",
                "protocol": resolved["protocol"],
                "healthyThresholdCount": 2,
                "unhealthyThresholdCount": 2,
                "timeoutSeconds": 5,
                "intervalSeconds": 30,
                "matcher": "200-399",
            }
            health_check.update(target_group.get("healthCheck") or {})
            resolved["healthCheck"] = health_check
            resolved["stickiness"].setdefault("durationSeconds", 86400)
            target_groups.append(resolved)
        config["targetGroups"] = target_groups

        config["listeners"] = self._normalise_listeners(config["listeners"], target_groups)
        return config

    def _normalise_listeners(self,
                             listeners: List[Dict[str, Any]],
                             target_groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        target_group_names = {target_group["name"] for target_group in target_groups}
        seen_ports = set()
        resolved = []
        for index, listener in enumerate(listeners):
            listener = {"protocol": "HTTP", "redirectToHttps": False, **listener}
            key = f"listeners.{index}"
            if listener["port"] in seen_ports:
                raise ComponentConfigurationError(
                    f"Listener port {listener['port']} is defined more than once",
                    config_key=f"{key}.port"
                )
            seen_ports.add(listener["port"])

            if listener["protocol"] == "HTTPS":
                if not listener.get("certificateArn"):
                    raise ComponentConfigurationError(
                        f"HTTPS listener on port {listener['port']} requires certificateArn",
                        config_key=f"{key}.certificateArn"
                    )
                listener.setdefault("sslPolicy", "RECOMMENDED_TLS")
                listener["redirectToHttps"] = False

            action = listener.get("defaultAction")
            if action and action["type"] == "forward":
                if action.get("targetGroup"):
                    action["targetGroup"] = _sanitise_name(action["targetGroup"], "targets")
                if action.get("targetGroup") not in target_group_names:
                    raise ComponentConfigurationError(
                        f"Listener on port {listener['port']} forwards to unknown target group "
                        f"'{action.get('targetGroup')}'",
                        config_key=f"{key}.defaultAction.targetGroup"
                    )
            elif action:
                action.setdefault("statusCode", 404)
                action.setdefault("contentType", "text/plain")
                action.setdefault("messageBody", "Not Found")
            resolved.append(listener)

        redirecting = [listener["port"] for listener in resolved if listener["redirectToHttps"]]
        has_https_443 = any(listener["protocol"] == "HTTPS" and listener["port"] == 443 for listener in resolved)
        if redirecting and not has_https_443:
            raise ComponentConfigurationError(
                f"Listeners on ports {redirecting} redirect to HTTPS but no HTTPS listener is defined on port 443",
                config_key="listeners"
            )
        return resolved
