"""Creator for the sqs-queue component type."""

from typing import Any, Dict, List

from components.common.capabilities import QUEUE_SQS
from components.common.constants import ComplianceFramework
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, SqsQueueConfigBuilder
from .component import SqsQueueComponent


class SqsQueueCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "SQS Queue"
    description = "Standard or FIFO SQS queue with dead-letter queue, encryption and alarms"
    category = "messaging"
    aws_service = "SQS"
    tags = ["messaging", "queue", "sqs"]
    provided_capabilities = [QUEUE_SQS]

    builder_class = SqsQueueConfigBuilder
    component_class = SqsQueueComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        encryption = config["encryption"]
        if context.is_fedramp and encryption["type"] == "none":
            errors.append(f"encryption.enabled must be true for {context.compliance_framework.value}")
        if context.compliance_framework is ComplianceFramework.FEDRAMP_HIGH and encryption["type"] != "kms":
            errors.append("fedramp-high requires KMS encryption with a customer managed key")
        if (context.is_production or context.is_fedramp) and not config["deadLetterQueue"]["enabled"]:
            errors.append("deadLetterQueue.enabled must be true for production and FedRAMP queues")

        dead_letter = config["deadLetterQueue"]
        if dead_letter["enabled"] and dead_letter["messageRetentionPeriod"] < config["messageRetentionPeriod"]:
            errors.append(
                "deadLetterQueue.messageRetentionPeriod must be at least the queue's messageRetentionPeriod"
            )

        errors.extend(AWSResourceValidator.arn_errors(encryption.get("kmsKeyArn"), "encryption.kmsKeyArn", "kms"))
        return errors
