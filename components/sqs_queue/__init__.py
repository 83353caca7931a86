"""SQS queue component."""

from .builder import SqsQueueConfigBuilder, SQS_QUEUE_CONFIG_SCHEMA
from .component import SqsQueueComponent
from .creator import SqsQueueCreator

__all__ = [
    "SqsQueueConfigBuilder",
    "SQS_QUEUE_CONFIG_SCHEMA",
    "SqsQueueComponent",
    "SqsQueueCreator",
]
