"""Creator for the dynamodb-table component type."""

from typing import Any, Dict, List

from components.common.capabilities import DB_DYNAMODB
from components.common.constants import ComplianceFramework
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, DynamoDbTableConfigBuilder
from .component import DynamoDbTableComponent


class DynamoDbTableCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "DynamoDB Table"
    description = "DynamoDB table with indexes, streams, autoscaling and backups"
    category = "database"
    aws_service = "DynamoDB"
    tags = ["database", "nosql", "dynamodb"]
    provided_capabilities = [DB_DYNAMODB]

    builder_class = DynamoDbTableConfigBuilder
    component_class = DynamoDbTableComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        if (context.is_fedramp or context.is_production) and not config["pointInTimeRecovery"]:
            errors.append("pointInTimeRecovery must be enabled for production and FedRAMP tables")
        if (context.compliance_framework is ComplianceFramework.FEDRAMP_HIGH
                and config["encryption"]["type"] != "customer-managed"):
            errors.append("encryption.type must be customer-managed for fedramp-high")

        index_names = [index["indexName"] for index in
                       config["globalSecondaryIndexes"] + config["localSecondaryIndexes"]]
        duplicates = sorted({name for name in index_names if index_names.count(name) > 1})
        if duplicates:
            errors.append(f"Duplicate index names: {', '.join(duplicates)}")
        if len(config["localSecondaryIndexes"]) > 5:
            errors.append("A table supports at most 5 local secondary indexes")

        errors.extend(AWSResourceValidator.arn_errors(
            config["encryption"].get("kmsKeyArn"), "encryption.kmsKeyArn", "kms"
        ))
        return errors
