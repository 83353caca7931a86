"""Configuration builder for ElastiCache Redis replication groups."""

from typing import Any, Dict

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "elasticache-redis"

ELASTICACHE_REDIS_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "ElastiCache Redis configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "clusterName": {"type": "string", "pattern": "^[a-z][a-z0-9-]*$", "maxLength": 40},
        "description": {"type": "string"},
        "engineVersion": {"type": "string"},
        "nodeType": {"type": "string", "pattern": "^cache\\.[a-z0-9]+\\.[a-z0-9]+$"},
        "numCacheNodes": {"type": "integer", "minimum": 1, "maximum": 6},
        "port": {"type": "integer", "minimum": 1024, "maximum": 65535},
        "vpc": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "vpcId": {"type": "string"},
                "subnetIds": {"type": "array", "items": {"type": "string"}},
                "subnetGroupName": {"type": "string"},
            },
        },
        "securityGroups": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "create": {"type": "boolean"},
                "securityGroupIds": {"type": "array", "items": {"type": "string"}},
                "allowedCidrs": {"type": "array", "items": {"type": "string"}},
            },
        },
        "parameterGroup": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "family": {"type": "string"},
                "parameters": {"type": "object", "additionalProperties": {"type": "string"}},
            },
        },
        "encryption": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "atRest": {"type": "boolean"},
                "inTransit": {"type": "boolean"},
                "authToken": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "enabled": {"type": "boolean"},
                        "secretArn": {"type": "string"},
                        "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
                    },
                },
            },
        },
        "backup": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "retentionDays": {"type": "integer", "minimum": 0, "maximum": 35},
                "window": {"type": "string", "pattern": "^\\d{2}:\\d{2}-\\d{2}:\\d{2}$"},
            },
        },
        "maintenance": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "window": {"type": "string"},
                "notificationTopicArn": {"type": "string"},
            },
        },
        "multiAz": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "automaticFailover": {"type": "boolean"},
            },
        },
        "logDelivery": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["logType", "destinationType", "destinationName"],
                "properties": {
                    "logType": {"type": "string", "enum": ["slow-log", "engine-log"]},
                    "destinationType": {"type": "string", "enum": ["cloudwatch-logs", "kinesis-firehose"]},
                    "destinationName": {"type": "string"},
                    "logFormat": {"type": "string", "enum": ["json", "text"]},
                    "retentionDays": {"type": "integer", "minimum": 1},
                },
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
                        "cpuUtilization": alarm_spec_schema(),
                        "cacheMisses": alarm_spec_schema(),
                        "evictions": alarm_spec_schema(),
                        "connections": alarm_spec_schema(),
                    },
                },
            },
        },
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


def _alarm(threshold):
    return {"enabled": True, "threshold": threshold, "evaluationPeriods": 2, "periodMinutes": 5}


class ElastiCacheRedisConfigBuilder(ConfigBuilder):
    """Resolves Redis configuration through the platform's five layers."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = ELASTICACHE_REDIS_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "engineVersion": "7.0",
            "nodeType": "cache.t4g.micro",
            "numCacheNodes": 1,
            "port": 6379,
            "securityGroups": {
                "create": True,
                "allowedCidrs": ["10.0.0.0/8"],
            },
            "parameterGroup": {
                "family": "redis7",
                "parameters": {},
            },
            "encryption": {
                "atRest": False,
                "inTransit": False,
                "authToken": {"enabled": False, "removalPolicy": "destroy"},
            },
            "backup": {
                "enabled": False,
                "retentionDays": 1,
                "window": "03:00-05:00",
            },
            "maintenance": {
                "window": "sun:05:00-sun:06:00",
            },
            "multiAz": {
                "enabled": False,
                "automaticFailover": False,
            },
            "logDelivery": [],
            "monitoring": {
                "enabled": True,
                "alarms": {
                    "cpuUtilization": _alarm(80),
                    "cacheMisses": _alarm(1000),
                    "evictions": _alarm(10),
                    "connections": _alarm(500),
                },
            },
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        config.setdefault("clusterName", self.default_resource_name(max_length=40))
        config.setdefault(
            "description",
            f"Redis cache for {self.context.service_name}/{self.spec.name}"
        )

        multi_az = config["multiAz"]
        if multi_az.get("enabled"):
            multi_az["automaticFailover"] = True
            config["numCacheNodes"] = max(config["numCacheNodes"], 2)
        elif multi_az.get("automaticFailover") and config["numCacheNodes"] < 2:
            raise ComponentConfigurationError(
                "Automatic failover requires at least 2 cache nodes",
                config_key="multiAz.automaticFailover"
            )

        encryption = config["encryption"]
        if encryption["authToken"].get("enabled") and not encryption.get("inTransit"):
            raise ComponentConfigurationError(
                "An AUTH token requires in-transit encryption (encryption.inTransit: true)",
                config_key="encryption.authToken.enabled"
            )

        if config["monitoring"].get("enabled") and not config["logDelivery"]:
            config["logDelivery"] = [{
                "logType": "slow-log",
                "destinationType": "cloudwatch-logs",
                "destinationName": f"/aws/elasticache/redis/{self.context.service_name}-{self.spec.name}",
                "logFormat": "json",
            }]
        for entry in config["logDelivery"]:
            entry.setdefault("logFormat", "json")

        if not config["backup"].get("enabled"):
            config["backup"]["retentionDays"] = 0
        return config
