"""Configuration builder for SQS queues."""

from typing import Any, Dict

from components.common.config_builder import ConfigBuilder
from components.common.exceptions import ComponentConfigurationError
from components.common.mixins.monitoring import alarm_spec_schema

COMPONENT_TYPE = "sqs-queue"

FIFO_SUFFIX = ".fifo"
DLQ_SUFFIX = "-dlq"
QUEUE_NAME_MAX_LENGTH = 80

SQS_QUEUE_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "SQS queue configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "queueName": {"type": "string", "pattern": "^[a-zA-Z0-9_-]+(\\.fifo)?$", "maxLength": QUEUE_NAME_MAX_LENGTH},
        "visibilityTimeoutSeconds": {"type": "integer", "minimum": 0, "maximum": 43200},
        "messageRetentionPeriod": {"type": "integer", "minimum": 60, "maximum": 1209600},
        "maxMessageSizeBytes": {"type": "integer", "minimum": 1024, "maximum": 262144},
        "deliveryDelaySeconds": {"type": "integer", "minimum": 0, "maximum": 900},
        "receiveMessageWaitTimeSeconds": {"type": "integer", "minimum": 0, "maximum": 20},
        "deadLetterQueue": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "maxReceiveCount": {"type": "integer", "minimum": 1, "maximum": 1000},
                "messageRetentionPeriod": {"type": "integer", "minimum": 60, "maximum": 1209600},
            },
        },
        "fifo": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "contentBasedDeduplication": {"type": "boolean"},
                "deduplicationScope": {"type": "string", "enum": ["messageGroup", "queue"]},
                "fifoThroughputLimit": {"type": "string", "enum": ["perQueue", "perMessageGroupId"]},
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
                "kmsDataKeyReusePeriodSeconds": {"type": "integer", "minimum": 60, "maximum": 86400},
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
                        "oldestMessageAgeSeconds": alarm_spec_schema(),
                        "queueDepth": alarm_spec_schema(),
                        "dlqDepth": alarm_spec_schema(),
                    },
                },
            },
        },
        "removalPolicy": {"type": "string", "enum": ["retain", "destroy"]},
        "tags": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}


def _check_name_length(name: str, config_key: str) -> None:
    if len(name) > QUEUE_NAME_MAX_LENGTH:
        raise ComponentConfigurationError(
            f"Queue name '{name}' is longer than {QUEUE_NAME_MAX_LENGTH} characters",
            config_key=config_key
        )


class SqsQueueConfigBuilder(ConfigBuilder):
    """Resolves SQS queue configuration."""

    COMPONENT_TYPE = COMPONENT_TYPE
    CONFIG_SCHEMA = SQS_QUEUE_CONFIG_SCHEMA

    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        return {
            "visibilityTimeoutSeconds": 30,
            "messageRetentionPeriod": 345600,
            "maxMessageSizeBytes": 262144,
            "deliveryDelaySeconds": 0,
            "receiveMessageWaitTimeSeconds": 0,
            "deadLetterQueue": {"enabled": True, "maxReceiveCount": 3, "messageRetentionPeriod": 1209600},
            "fifo": {"enabled": False, "contentBasedDeduplication": False},
            "encryption": {
                "enabled": True,
                "customerManagedKey": {"create": False, "enableRotation": True},
                "kmsDataKeyReusePeriodSeconds": 300,
            },
            "monitoring": {
                "enabled": True,
                "alarms": {
                    "oldestMessageAgeSeconds": {"enabled": True, "threshold": 300, "evaluationPeriods": 2,
                                                "periodMinutes": 5},
                    "queueDepth": {"enabled": False, "threshold": 1000, "evaluationPeriods": 2, "periodMinutes": 5},
                    "dlqDepth": {"enabled": True, "threshold": 1, "evaluationPeriods": 1, "periodMinutes": 5},
                },
            },
            "removalPolicy": "destroy",
            "tags": {},
        }

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        fifo = config["fifo"]
        name = config.get("queueName") or self.default_resource_name(
            max_length=QUEUE_NAME_MAX_LENGTH - len(FIFO_SUFFIX) - len(DLQ_SUFFIX)
        )
        if fifo["enabled"]:
            if not name.endswith(FIFO_SUFFIX):
                name += FIFO_SUFFIX
            if fifo.get("fifoThroughputLimit") == "perMessageGroupId" \
                    and fifo.get("deduplicationScope", "messageGroup") != "messageGroup":
                raise ComponentConfigurationError(
                    "fifo.fifoThroughputLimit perMessageGroupId requires fifo.deduplicationScope messageGroup",
                    config_key="fifo.deduplicationScope"
                )
        elif name.endswith(FIFO_SUFFIX):
            raise ComponentConfigurationError(
                f"queueName '{name}' ends with {FIFO_SUFFIX} but fifo.enabled is false",
                config_key="queueName"
            )
        _check_name_length(name, "queueName")
        config["queueName"] = name

        dead_letter = config["deadLetterQueue"]
        if dead_letter["enabled"]:
            base = name[:-len(FIFO_SUFFIX)] if fifo["enabled"] else name
            dead_letter["queueName"] = f"{base}{DLQ_SUFFIX}{FIFO_SUFFIX if fifo['enabled'] else ''}"
            _check_name_length(dead_letter["queueName"], "deadLetterQueue.queueName")

        encryption = config["encryption"]
        if encryption.get("kmsKeyArn") or encryption["customerManagedKey"]["create"]:
            encryption["enabled"] = True
            encryption["type"] = "kms"
        elif encryption["enabled"]:
            encryption["type"] = "sqs-managed"
        else:
            encryption["type"] = "none"
        return config
