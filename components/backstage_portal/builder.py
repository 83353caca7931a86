"""Configuration builder for the Backstage developer portal."""

import re
from typing import Any, Dict

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "backstage-portal"

BACKEND_PORT = 7007
FRONTEND_PORT = 3000
POSTGRES_PORT = 5432

# Fargate task sizes: cpu units -> allowed memory (MiB)
FARGATE_MEMORY_BY_CPU = {
    256: (512, 1024, 2048),
    512: (1024, 2048, 3072, 4096),
    1024: (2048, 3072, 4096, 5120, 6144, 7168, 8192),
    2048: tuple(range(4096, 16385, 1024)),
    4096: tuple(range(8192, 30721, 1024)),
}

DATABASE_INSTANCE_CLASSES = [
    "db.t3.micro", "db.t3.small", "db.t3.medium", "db.t3.large",
    "db.t4g.micro", "db.t4g.small", "db.t4g.medium",
    "db.r5.large", "db.r5.xlarge", "db.r6g.large", "db.r6g.xlarge",
]


def _service_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "desiredCount": {"type": "integer", "minimum": 1, "maximum": 10},
            "cpu": {"type": "integer", "enum": sorted(FARGATE_MEMORY_BY_CPU)},
            "memory": {"type": "integer", "minimum": 512, "maximum": 30720},
            "imageTag": {"type": "string", "pattern": "^[a-zA-Z0-9_.-]{1,128}$"},
            "healthCheckPath": {"type": "string", "pattern": "^/"},
            "healthCheckIntervalSeconds": {"type": "integer", "minimum": 5, "maximum": 300},
        },
    }


BACKSTAGE_PORTAL_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Backstage portal configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "portal": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "organization": {"type": "string", "minLength": 1},
                "description": {"type": "string"},
                "baseUrl": {"type": "string", "pattern": "^https?://"},
            },
        },
        "vpc": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"vpcId": {"type": "string"}},
        },
        "loadBalancer": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "scheme": {"type": "string", "enum": ["internet-facing", "internal"]},
                "certificateArn": {"type": "string"},
            },
        },
        "database": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "instanceClass": {"type": "string", "enum": DATABASE_INSTANCE_CLASSES},
                "allocatedStorage": {"type": "integer", "minimum": 20, "maximum": 1000},
                "maxAllocatedStorage": {"type": "integer", "minimum": 20, "maximum": 10000},
                "backupRetentionDays": {"type": "integer", "minimum": 0, "maximum": 35},
                "multiAz": {"type": "boolean"},
                "deletionProtection": {"type": "boolean"},
            },
        },
        "backend": _service_schema(),
        "frontend": _service_schema(),
        "ecr": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "repositoryName": {"type": "string", "pattern": "^[a-z0-9][a-z0-9._/-]*$", "maxLength": 256},
                "maxImageCount": {"type": "integer", "minimum": 1, "maximum": 1000},
                "imageScanOnPush": {"type": "boolean"},
            },
        },
        "encryption": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
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
        "auth": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "provider": {"type": "string", "enum": ["github", "google", "microsoft"]},
                "secretsPrefix": {"type": "string", "pattern": "^[a-zA-Z0-9/_+=.@-]+$"},
            },
        },
        "catalog": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "providers": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["type", "id", "org", "catalogPath"],
                        "properties": {
                            "type": {"type": "string", "enum": ["github", "gitlab", "bitbucket"]},
                            "id": {"type": "string", "minLength": 1},
                            "org": {"type": "string", "minLength": 1},
                            "catalogPath": {"type": "string", "pattern": "^/"},
                        },
                    },
                },
            },
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "retentionDays": {"type": "integer", "minimum": 1},
                "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
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
                        "memoryUtilization": alarm_spec_schema(),
                        "runningTaskCount": alarm_spec_schema(),
                    },
                },
            },
        },
        "removalPolicy": {"type": "string", "enum": ["retain", "destroy", "snapshot"]},
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


class BackstagePortalConfigBuilder(ConfigBuilder):
    """Resolves Backstage portal configuration."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = BACKSTAGE_PORTAL_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "portal": {
                "name": "Developer Portal",
                "organization": "Platform",
                "description": "Developer portal for platform components and services",
            },
            "vpc": {},
            "loadBalancer": {"scheme": "internet-facing"},
            "database": {
                "instanceClass": "db.t3.micro",
                "allocatedStorage": 20,
                "maxAllocatedStorage": 100,
                "backupRetentionDays": 7,
                "multiAz": False,
                "deletionProtection": True,
            },
            "backend": {
                "desiredCount": 1,
                "cpu": 512,
                "memory": 1024,
                "imageTag": "backend-latest",
                "healthCheckPath": "/healthcheck",
                "healthCheckIntervalSeconds": 30,
            },
            "frontend": {
                "desiredCount": 1,
                "cpu": 256,
                "memory": 512,
                "imageTag": "frontend-latest",
                "healthCheckPath": "/",
                "healthCheckIntervalSeconds": 30,
            },
            "ecr": {"maxImageCount": 10, "imageScanOnPush": True},
            "encryption": {
                "enabled": True,
                "customerManagedKey": {"create": False, "enableRotation": True},
            },
            "auth": {"provider": "github"},
            "catalog": {"providers": []},
            "logging": {"retentionDays": 30, "removalPolicy": "destroy"},
            "monitoring": {
                "enabled": True,
                "alarms": {
                    "cpuUtilization": {"enabled": True, "threshold": 80, "evaluationPeriods": 3, "periodMinutes": 5},
                    "memoryUtilization": {"enabled": True, "threshold": 85, "evaluationPeriods": 3,
                                          "periodMinutes": 5},
                    "runningTaskCount": {"enabled": True, "threshold": 1, "evaluationPeriods": 2,
                                         "periodMinutes": 1, "treatMissingData": "breaching"},
                },
            },
            "removalPolicy": "snapshot",
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        for service in ("backend", "frontend"):
            task = config[service]
            if task["memory"] not in FARGATE_MEMORY_BY_CPU[task["cpu"]]:
                raise ComponentConfigurationError(
                    f"{service}.memory {task['memory']} is not a valid Fargate size for cpu {task['cpu']}; "
                    f"allowed: {', '.join(str(m) for m in FARGATE_MEMORY_BY_CPU[task['cpu']])}",
                    config_key=f"{service}.memory"
                )

        database = config["database"]
        if database["maxAllocatedStorage"] < database["allocatedStorage"]:
            raise ComponentConfigurationError(
                f"database.maxAllocatedStorage ({database['maxAllocatedStorage']}) is below "
                f"database.allocatedStorage ({database['allocatedStorage']})",
                config_key="database.maxAllocatedStorage"
            )

        ecr_config = config["ecr"]
        repository_name = ecr_config.get("repositoryName") or self.default_resource_name("backstage", max_length=256)
        ecr_config["repositoryName"] = re.sub(r"[^a-z0-9._/-]", "-", repository_name.lower())

        encryption = config["encryption"]
        if encryption.get("kmsKeyArn") or encryption["customerManagedKey"]["create"]:
            encryption["enabled"] = True
        if not encryption["enabled"]:
            encryption["customerManagedKey"]["create"] = False

        auth = config["auth"]
        auth["secretsPrefix"] = (
            auth.get("secretsPrefix") or f"{self.context.service_name}/{self.spec.name}"
        ).rstrip("/")

        logging_config = config["logging"]
        log_prefix = f"/aws/ecs/{self.context.service_name}/{self.spec.name}"
        logging_config["backendLogGroupName"] = f"{log_prefix}/backend"
        logging_config["frontendLogGroupName"] = f"{log_prefix}/frontend"

        config["loadBalancer"]["https"] = bool(config["loadBalancer"].get("certificateArn"))
        return config
