"""DynamoDB table component."""

from .builder import DynamoDbTableConfigBuilder, DYNAMODB_TABLE_CONFIG_SCHEMA
from .component import DynamoDbTableComponent
from .creator import DynamoDbTableCreator

__all__ = [
    "DynamoDbTableConfigBuilder",
    "DYNAMODB_TABLE_CONFIG_SCHEMA",
    "DynamoDbTableComponent",
    "DynamoDbTableCreator",
]
