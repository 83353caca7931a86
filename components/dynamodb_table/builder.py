"""Configuration builder for DynamoDB tables."""

from typing import Any, Dict

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "dynamodb-table"

_KEY_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "required": ["name", "type"],
    "properties": {
        "name": {"type": "string", "minLength": 1, "maxLength": 255},
        "type": {"type": "string", "enum": ["string", "number", "binary"]},
    },
}

_PROJECTION = {"type": "string", "enum": ["all", "keys-only", "include"]}

DYNAMODB_TABLE_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "DynamoDB table configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tableName": {"type": "string", "pattern": "^[a-zA-Z0-9_.-]{3,255}$"},
        "partitionKey": _KEY_SCHEMA,
        "sortKey": _KEY_SCHEMA,
        "billingMode": {"type": "string", "enum": ["pay-per-request", "provisioned"]},
        "provisioned": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "readCapacity": {"type": "integer", "minimum": 1},
                "writeCapacity": {"type": "integer", "minimum": 1},
            },
        },
        "autoScaling": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "minReadCapacity": {"type": "integer", "minimum": 1},
                "maxReadCapacity": {"type": "integer", "minimum": 1},
                "minWriteCapacity": {"type": "integer", "minimum": 1},
                "maxWriteCapacity": {"type": "integer", "minimum": 1},
                "targetUtilization": {"type": "integer", "minimum": 10, "maximum": 90},
            },
        },
        "tableClass": {"type": "string", "enum": ["standard", "standard-infrequent-access"]},
        "pointInTimeRecovery": {"type": "boolean"},
        "timeToLiveAttribute": {"type": "string"},
        "stream": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "viewType": {
                    "type": "string",
                    "enum": ["keys-only", "new-image", "old-image", "new-and-old-images"],
                },
            },
        },
        "encryption": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "type": {"type": "string", "enum": ["aws-owned", "aws-managed", "customer-managed"]},
                "kmsKeyArn": {"type": "string"},
                "customerManagedKey": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "create": {"type": "boolean"},
                        "enableRotation": {"type": "boolean"},
                        "alias": {"type": "string"},
                    },
                },
            },
        },
        "globalSecondaryIndexes": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["indexName", "partitionKey"],
                "properties": {
                    "indexName": {"type": "string", "minLength": 3, "maxLength": 255},
                    "partitionKey": _KEY_SCHEMA,
                    "sortKey": _KEY_SCHEMA,
                    "projectionType": _PROJECTION,
                    "nonKeyAttributes": {"type": "array", "items": {"type": "string"}},
                    "readCapacity": {"type": "integer", "minimum": 1},
                    "writeCapacity": {"type": "integer", "minimum": 1},
                },
            },
        },
        "localSecondaryIndexes": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["indexName", "sortKey"],
                "properties": {
                    "indexName": {"type": "string", "minLength": 3, "maxLength": 255},
                    "sortKey": _KEY_SCHEMA,
                    "projectionType": _PROJECTION,
                    "nonKeyAttributes": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        "backup": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "retentionDays": {"type": "integer", "minimum": 1},
                "schedule": {"type": "string"},
            },
        },
        "deletionProtection": {"type": "boolean"},
        "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
        "monitoring": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "alarms": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "readThrottles": alarm_spec_schema(),
                        "writeThrottles": alarm_spec_schema(),
                        "systemErrors": alarm_spec_schema(),
                        "userErrors": alarm_spec_schema(),
                    },
                },
            },
        },
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


class DynamoDbTableConfigBuilder(ConfigBuilder):
    """Resolves DynamoDB table configuration."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = DYNAMODB_TABLE_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "billingMode": "pay-per-request",
            "tableClass": "standard",
            "pointInTimeRecovery": False,
            "stream": {"enabled": False, "viewType": "new-and-old-images"},
            "encryption": {"type": "aws-managed"},
            "autoScaling": {"enabled": False, "targetUtilization": 70},
            "globalSecondaryIndexes": [],
            "localSecondaryIndexes": [],
            "backup": {
                "enabled": False,
                "retentionDays": 7,
                "schedule": "cron(0 5 * * ? *)",
            },
            "deletionProtection": False,
            "removalPolicy": "retain",
            "monitoring": {
                "enabled": True,
                "alarms": {
                    "readThrottles": {"enabled": True, "threshold": 1, "evaluationPeriods": 2, "periodMinutes": 5},
                    "writeThrottles": {"enabled": True, "threshold": 1, "evaluationPeriods": 2, "periodMinutes": 5},
                    "systemErrors": {"enabled": True, "threshold": 1, "evaluationPeriods": 1, "periodMinutes": 5},
                    "userErrors": {"enabled": False, "threshold": 10, "evaluationPeriods": 2, "periodMinutes": 5},
                },
            },
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        if not config.get("partitionKey"):
            raise ComponentConfigurationError(
                f"DynamoDB table '{self.spec.name}' requires a partitionKey",
                config_key="partitionKey"
            )
        config.setdefault("tableName", self.default_resource_name(max_length=255))

        if config["billingMode"] == "provisioned":
            provisioned = config.get("provisioned") or {}
            if not provisioned.get("readCapacity") or not provisioned.get("writeCapacity"):
                raise ComponentConfigurationError(
                    "Provisioned billing requires provisioned.readCapacity and provisioned.writeCapacity",
                    config_key="provisioned"
                )
            scaling = config["autoScaling"]
            scaling.setdefault("minReadCapacity", provisioned["readCapacity"])
            scaling.setdefault("maxReadCapacity", provisioned["readCapacity"] * 10)
            scaling.setdefault("minWriteCapacity", provisioned["writeCapacity"])
            scaling.setdefault("maxWriteCapacity", provisioned["writeCapacity"] * 10)
        else:
            config.pop("provisioned", None)
            config["autoScaling"]["enabled"] = False

        if config["localSecondaryIndexes"] and not config.get("sortKey"):
            raise ComponentConfigurationError(
                "Local secondary indexes require the table to define a sortKey",
                config_key="localSecondaryIndexes"
            )
        for index in config["globalSecondaryIndexes"] + config["localSecondaryIndexes"]:
            index.setdefault("projectionType", "all")

        encryption = config["encryption"]
        if encryption["type"] == "customer-managed" and not encryption.get("kmsKeyArn"):
            encryption.setdefault("customerManagedKey", {})
            encryption["customerManagedKey"]["create"] = True
        return config
