"""SQS queue component."""

from typing import Any, Dict, Optional

from aws_cdk import (
    Duration,
    aws_sqs as sqs,
)

from components.common.base import BaseComponent, to_removal_policy
from components.common.capabilities import QUEUE_SQS
from components.common.mixins import AlarmMixin, KmsKeyMixin, MetricDefinition
from .builder import SqsQueueConfigBuilder

DEDUPLICATION_SCOPES = {
    "messageGroup": sqs.DeduplicationScope.MESSAGE_GROUP,
    "queue": sqs.DeduplicationScope.QUEUE,
}

FIFO_THROUGHPUT_LIMITS = {
    "perQueue": sqs.FifoThroughputLimit.PER_QUEUE,
    "perMessageGroupId": sqs.FifoThroughputLimit.PER_MESSAGE_GROUP_ID,
}


class SqsQueueComponent(BaseComponent, KmsKeyMixin, AlarmMixin):
    """SQS queue with an optional dead-letter queue, encryption and alarms."""

    builder_class = SqsQueueConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.queue: Optional[sqs.Queue] = None
        self.dead_letter_queue: Optional[sqs.Queue] = None
        self.kms_key = None

    def _create_resources(self) -> None:
        encryption_props = self._encryption_props()
        self._create_dead_letter_queue(encryption_props)
        self._create_queue(encryption_props)
        self._create_alarms()

        data = {
            "queueName": self.queue.queue_name,
            "queueUrl": self.queue.queue_url,
            "queueArn": self.queue.queue_arn,
            "fifo": self.config["fifo"]["enabled"],
        }
        if self.dead_letter_queue is not None:
            data["deadLetterQueueArn"] = self.dead_letter_queue.queue_arn
        if self.kms_key is not None:
            data["kmsKeyArn"] = self.kms_key.key_arn
        self.register_capability(QUEUE_SQS, data)

    def _encryption_props(self) -> Dict[str, Any]:
        encryption = self.config["encryption"]
        if encryption["type"] == "none":
            return {"encryption": sqs.QueueEncryption.UNENCRYPTED}
        if encryption["type"] == "sqs-managed":
            return {"encryption": sqs.QueueEncryption.SQS_MANAGED}
        self.kms_key = self.resolve_kms_key(
            "kmsKey",
            encryption,
            description=f"SQS encryption key for {self.config['queueName']}",
            removal_policy=to_removal_policy(self.config["removalPolicy"])
        )
        return {
            "encryption": sqs.QueueEncryption.KMS,
            "encryption_master_key": self.kms_key,
            "data_key_reuse": Duration.seconds(encryption["kmsDataKeyReusePeriodSeconds"]),
        }

    def _fifo_props(self) -> Dict[str, Any]:
        fifo = self.config["fifo"]
        if not fifo["enabled"]:
            return {}
        props = {
            "fifo": True,
            "content_based_deduplication": fifo.get("contentBasedDeduplication", False),
        }
        if fifo.get("deduplicationScope"):
            props["deduplication_scope"] = DEDUPLICATION_SCOPES[fifo["deduplicationScope"]]
        if fifo.get("fifoThroughputLimit"):
            props["fifo_throughput_limit"] = FIFO_THROUGHPUT_LIMITS[fifo["fifoThroughputLimit"]]
        return props

    def _create_dead_letter_queue(self, encryption_props: Dict[str, Any]) -> None:
        dead_letter = self.config["deadLetterQueue"]
        if not dead_letter["enabled"]:
            return
        self.dead_letter_queue = sqs.Queue(
            self,
            "DeadLetterQueue",
            queue_name=dead_letter["queueName"],
            fifo=True if self.config["fifo"]["enabled"] else None,
            retention_period=Duration.seconds(dead_letter["messageRetentionPeriod"]),
            enforce_ssl=True,
            removal_policy=to_removal_policy(self.config["removalPolicy"]),
            **encryption_props
        )
        self.register_construct("deadLetterQueue", self.dead_letter_queue)

    def _create_queue(self, encryption_props: Dict[str, Any]) -> None:
        config = self.config
        dead_letter_queue = None
        if self.dead_letter_queue is not None:
            dead_letter_queue = sqs.DeadLetterQueue(
                max_receive_count=config["deadLetterQueue"]["maxReceiveCount"],
                queue=self.dead_letter_queue
            )

        self.queue = sqs.Queue(
            self,
            "Queue",
            queue_name=config["queueName"],
            visibility_timeout=Duration.seconds(config["visibilityTimeoutSeconds"]),
            retention_period=Duration.seconds(config["messageRetentionPeriod"]),
            max_message_size_bytes=config["maxMessageSizeBytes"],
            delivery_delay=Duration.seconds(config["deliveryDelaySeconds"]),
            receive_message_wait_time=Duration.seconds(config["receiveMessageWaitTimeSeconds"]),
            dead_letter_queue=dead_letter_queue,
            enforce_ssl=True,
            removal_policy=to_removal_policy(config["removalPolicy"]),
            **self._fifo_props(),
            **encryption_props
        )
        self.apply_standard_tags(self.queue, config["tags"])
        self.register_construct("queue", self.queue)

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        dimensions = {"QueueName": self.queue.queue_name}
        definitions = {
            "oldestMessageAgeSeconds": MetricDefinition(
                "AWS/SQS", "ApproximateAgeOfOldestMessage", dimensions, "Maximum",
                description="Age of the oldest message in seconds"
            ),
            "queueDepth": MetricDefinition(
                "AWS/SQS", "ApproximateNumberOfMessagesVisible", dimensions, "Maximum",
                description="Messages waiting in the queue"
            ),
        }
        if self.dead_letter_queue is not None:
            definitions["dlqDepth"] = MetricDefinition(
                "AWS/SQS",
                "ApproximateNumberOfMessagesVisible",
                {"QueueName": self.dead_letter_queue.queue_name},
                "Maximum",
                description="Messages moved to the dead-letter queue"
            )
        self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )
