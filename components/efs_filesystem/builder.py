"""Configuration builder for EFS file systems."""

import re
from typing import Any, Dict

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "efs-filesystem"

NFS_PORT = 2049

_LOG_CONFIG_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "enabled": {"type": "boolean"},
        "logGroupName": {"type": "string"},
        "retentionDays": {"type": "integer", "minimum": 1},
        "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
    },
}

EFS_FILESYSTEM_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "EFS file system configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "fileSystemName": {"type": "string", "maxLength": 255},
        "performanceMode": {"type": "string", "enum": ["generalPurpose", "maxIO"]},
        "throughputMode": {"type": "string", "enum": ["bursting", "provisioned", "elastic"]},
        "provisionedThroughputMibps": {"type": "integer", "minimum": 1, "maximum": 1024},
        "encryption": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "encryptInTransit": {"type": "boolean"},
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
        "vpc": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "vpcId": {"type": "string"},
                "subnetIds": {"type": "array", "items": {"type": "string"}},
                "securityGroup": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "create": {"type": "boolean"},
                        "securityGroupId": {"type": "string"},
                        "description": {"type": "string"},
                        "allowedCidrs": {"type": "array", "items": {"type": "string"}},
                    },
                },
            },
        },
        "lifecycle": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "transitionToIA": {
                    "type": "string",
                    "enum": ["AFTER_7_DAYS", "AFTER_14_DAYS", "AFTER_30_DAYS", "AFTER_60_DAYS", "AFTER_90_DAYS"],
                },
                "transitionToPrimary": {"type": "string", "enum": ["AFTER_1_ACCESS"]},
            },
        },
        "backups": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"enabled": {"type": "boolean"}},
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "access": _LOG_CONFIG_SCHEMA,
                "audit": _LOG_CONFIG_SCHEMA,
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
                        "storageUtilization": alarm_spec_schema(),
                        "clientConnections": alarm_spec_schema(),
                        "burstCreditBalance": alarm_spec_schema(),
                    },
                },
            },
        },
        "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


class EfsFilesystemConfigBuilder(ConfigBuilder):
    """Resolves EFS file system configuration."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = EFS_FILESYSTEM_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "performanceMode": "generalPurpose",
            "throughputMode": "bursting",
            "encryption": {
                "enabled": True,
                "encryptInTransit": False,
                "customerManagedKey": {"create": False, "enableRotation": True},
            },
            "vpc": {
                "subnetIds": [],
                "securityGroup": {"create": True, "allowedCidrs": ["10.0.0.0/8"]},
            },
            "lifecycle": {},
            "backups": {"enabled": False},
            "logging": {
                "access": {"enabled": False, "retentionDays": 90, "removalPolicy": "destroy"},
                "audit": {"enabled": False, "retentionDays": 365, "removalPolicy": "retain"},
            },
            "monitoring": {
                "enabled": False,
                "alarms": {
                    "storageUtilization": {"enabled": True, "threshold": 1099511627776,
                                           "evaluationPeriods": 2, "periodMinutes": 5},
                    "clientConnections": {"enabled": True, "threshold": 1000,
                                          "evaluationPeriods": 2, "periodMinutes": 5},
                    "burstCreditBalance": {"enabled": True, "threshold": 128,
                                           "evaluationPeriods": 2, "periodMinutes": 5},
                },
            },
            "removalPolicy": "retain",
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        name = config.get("fileSystemName") or f"{self.context.service_name}-{self.spec.name}"
        name = re.sub(r"-+", "-", re.sub(r"[^a-z0-9-]", "-", name.lower())).strip("-")
        config["fileSystemName"] = name[:255].rstrip("-") or "filesystem"

        if config["throughputMode"] == "provisioned":
            if not config.get("provisionedThroughputMibps"):
                raise ComponentConfigurationError(
                    "provisionedThroughputMibps is required when throughputMode is 'provisioned'",
                    config_key="provisionedThroughputMibps"
                )
        else:
            config.pop("provisionedThroughputMibps", None)

        if config["throughputMode"] == "elastic" and config["performanceMode"] == "maxIO":
            raise ComponentConfigurationError(
                "Elastic throughput is only supported with the generalPurpose performance mode",
                config_key="throughputMode"
            )

        encryption = config["encryption"]
        if not encryption["enabled"]:
            encryption.pop("kmsKeyArn", None)
            encryption["customerManagedKey"]["create"] = False

        security_group = config["vpc"]["securityGroup"]
        if security_group.get("securityGroupId"):
            security_group["create"] = False
        if not security_group["create"] and not security_group.get("securityGroupId"):
            raise ComponentConfigurationError(
                "vpc.securityGroup.securityGroupId is required when vpc.securityGroup.create is false",
                config_key="vpc.securityGroup.securityGroupId"
            )

        for kind in ("access", "audit"):
            log_config = config["logging"][kind]
            log_config.setdefault("logGroupName", f"/aws/efs/{config['fileSystemName']}/{kind}")
        return config
