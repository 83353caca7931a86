"""Configuration builder for AWS Glue jobs."""

from typing import Any, Dict

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "glue-job"

_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}

GLUE_JOB_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Glue job configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "jobName": {"type": "string", "pattern": "^[a-zA-Z0-9_-]{1,255}$"},
        "description": {"type": "string", "maxLength": 2048},
        "glueVersion": {"type": "string", "enum": ["3.0", "4.0", "5.0"]},
        "jobType": {"type": "string", "enum": ["glueetl", "gluestreaming", "pythonshell"]},
        "roleArn": {"type": "string"},
        "scriptLocation": {"type": "string", "pattern": "^s3://[a-z0-9.-]+/.+"},
        "command": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "pythonVersion": {"type": "string", "enum": ["3", "3.9"]},
                "scriptArguments": _STRING_MAP,
            },
        },
        "connections": {"type": "array", "items": {"type": "string"}},
        "maxConcurrentRuns": {"type": "integer", "minimum": 1, "maximum": 1000},
        "maxRetries": {"type": "integer", "minimum": 0, "maximum": 10},
        "timeout": {"type": "integer", "minimum": 1, "maximum": 10080},
        "notifyDelayAfter": {"type": "integer", "minimum": 1},
        "maxCapacity": {"type": "number", "enum": [0.0625, 1]},
        "workerConfiguration": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "workerType": {"type": "string", "enum": ["Standard", "G.1X", "G.2X", "G.4X", "G.8X", "Z.2X"]},
                "numberOfWorkers": {"type": "integer", "minimum": 1, "maximum": 299},
            },
        },
        "defaultArguments": _STRING_MAP,
        "nonOverridableArguments": _STRING_MAP,
        "security": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "securityConfigurationName": {"type": "string"},
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
                        "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
                    },
                },
            },
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "groups": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["id"],
                        "properties": {
                            "id": {"type": "string", "pattern": "^[a-z][a-z0-9-]*$"},
                            "enabled": {"type": "boolean"},
                            "logGroupSuffix": {"type": "string"},
                            "retentionDays": {"type": "integer", "minimum": 1},
                            "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
                        },
                    },
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
                        "jobFailure": alarm_spec_schema(),
                        "jobDuration": alarm_spec_schema(),
                    },
                },
            },
        },
        "tags": _STRING_MAP,
    },
}


class GlueJobConfigBuilder(ConfigBuilder):
    """Resolves Glue job configuration."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = GLUE_JOB_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "glueVersion": "4.0",
            "jobType": "glueetl",
            "command": {"pythonVersion": "3", "scriptArguments": {}},
            "connections": [],
            "maxConcurrentRuns": 1,
            "maxRetries": 0,
            "timeout": 2880,
            "workerConfiguration": {"workerType": "G.1X", "numberOfWorkers": 10},
            "defaultArguments": {},
            "nonOverridableArguments": {},
            "security": {
                "encryption": {
                    "enabled": False,
                    "customerManagedKey": {"create": False, "enableRotation": True},
                    "removalPolicy": "destroy",
                },
            },
            "logging": {
                "groups": [
                    {"id": "security", "enabled": True, "logGroupSuffix": "security",
                     "retentionDays": 90, "removalPolicy": "destroy"},
                ],
            },
            "monitoring": {
                "enabled": True,
                "alarms": {
                    "jobFailure": {"enabled": True, "threshold": 1, "evaluationPeriods": 1, "periodMinutes": 5},
                    "jobDuration": {"enabled": True, "threshold": 3600000, "evaluationPeriods": 1, "periodMinutes": 15},
                },
            },
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        if not config.get("scriptLocation"):
            raise ComponentConfigurationError(
                'glue-job configuration requires "scriptLocation" to be specified.',
                config_key="scriptLocation"
            )
        config.setdefault("jobName", self.default_resource_name(max_length=255))
        config.setdefault("description", f"Glue job for {self.context.service_name}/{self.spec.name}")

        if config["jobType"] == "pythonshell":
            config.pop("workerConfiguration", None)
            config.setdefault("maxCapacity", 0.0625)
            config["command"]["pythonVersion"] = "3.9"
        else:
            config.pop("maxCapacity", None)

        encryption = config["security"]["encryption"]
        if encryption.get("enabled"):
            if not encryption.get("kmsKeyArn"):
                encryption["customerManagedKey"]["create"] = True
            config["security"].setdefault("securityConfigurationName", f"{config['jobName']}-security")
        else:
            encryption["customerManagedKey"]["create"] = False

        groups = []
        for group in config["logging"]["groups"]:
            groups.append({
                "id": group["id"],
                "enabled": group.get("enabled", True),
                "logGroupSuffix": group.get("logGroupSuffix", group["id"]),
                "retentionDays": group.get("retentionDays", 90),
                "removalPolicy": group.get("removalPolicy", "destroy"),
                "logGroupName": f"/aws-glue/jobs/{config['jobName']}-{group.get('logGroupSuffix', group['id'])}",
            })
        config["logging"]["groups"] = groups

        arguments = {
            "--job-language": "python",
            "--enable-continuous-cloudwatch-log": "true",
        }
        if config["monitoring"].get("enabled"):
            arguments["--enable-metrics"] = "true"
        enabled_groups = [group for group in groups if group["enabled"]]
        if enabled_groups:
            arguments["--continuous-log-logGroup"] = enabled_groups[0]["logGroupName"]
        for key, value in config["command"]["scriptArguments"].items():
            arguments[key if key.startswith("--") else f"--{key}"] = value
        arguments.update(config["defaultArguments"])
        config["defaultArguments"] = arguments
        return config
