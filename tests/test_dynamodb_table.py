"""Tests for the dynamodb-table component."""

import pytest
from aws_cdk.assertions import Match, Template

from components.common.exceptions import ComponentConfigurationError
from components.dynamodb_table import DynamoDbTableComponent, DynamoDbTableCreator

KEYS = {
    "partitionKey": {"name": "orderId", "type": "string"},
    "sortKey": {"name": "createdAt", "type": "number"},
}


class TestDynamoDbTableComponent:
    """Test the synthesized table."""

    def test_default_table(self, stack, synth_component):
        component = synth_component(DynamoDbTableComponent, {"partitionKey": KEYS["partitionKey"]}, name="table")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::DynamoDB::Table", {
            "TableName": "orders-table",
            "KeySchema": [{"AttributeName": "orderId", "KeyType": "HASH"}],
            "BillingMode": "PAY_PER_REQUEST",
            "SSESpecification": {"SSEEnabled": True},
            "TableClass": "STANDARD",
        })
        template.has_resource("AWS::DynamoDB::Table", {"DeletionPolicy": "Retain"})
        template.resource_count_is("AWS::CloudWatch::Alarm", 3)
        template.resource_count_is("AWS::Backup::BackupPlan", 0)
        assert set(component.get_capabilities()["db:dynamodb"]) == {"tableName", "tableArn"}

    def test_requires_partition_key(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(DynamoDbTableComponent, name="table")

        assert excinfo.value.config_key == "partitionKey"

    def test_stream_ttl_and_indexes(self, stack, synth_component):
        component = synth_component(DynamoDbTableComponent, {
            **KEYS,
            "timeToLiveAttribute": "expiresAt",
            "stream": {"enabled": True, "viewType": "new-image"},
            "globalSecondaryIndexes": [
                {"indexName": "byCustomer", "partitionKey": {"name": "customerId", "type": "string"}},
            ],
            "localSecondaryIndexes": [
                {"indexName": "byStatus", "sortKey": {"name": "status", "type": "string"},
                 "projectionType": "keys-only"},
            ],
        }, name="table")

        Template.from_stack(stack).has_resource_properties("AWS::DynamoDB::Table", {
            "TimeToLiveSpecification": {"AttributeName": "expiresAt", "Enabled": True},
            "StreamSpecification": {"StreamViewType": "NEW_IMAGE"},
            "GlobalSecondaryIndexes": [Match.object_like({
                "IndexName": "byCustomer",
                "Projection": {"ProjectionType": "ALL"},
            })],
            "LocalSecondaryIndexes": [Match.object_like({
                "IndexName": "byStatus",
                "Projection": {"ProjectionType": "KEYS_ONLY"},
            })],
        })
        assert "streamArn" in component.get_capabilities()["db:dynamodb"]

    def test_local_indexes_need_sort_key(self, synth_component):
        with pytest.raises(ComponentConfigurationError, match="require the table to define a sortKey"):
            synth_component(DynamoDbTableComponent, {
                "partitionKey": KEYS["partitionKey"],
                "localSecondaryIndexes": [{"indexName": "byStatus", "sortKey": {"name": "status", "type": "string"}}],
            })

    def test_provisioned_with_auto_scaling(self, stack, synth_component):
        component = synth_component(DynamoDbTableComponent, {
            "partitionKey": KEYS["partitionKey"],
            "billingMode": "provisioned",
            "provisioned": {"readCapacity": 5, "writeCapacity": 2},
            "autoScaling": {"enabled": True},
        }, name="table")
        template = Template.from_stack(stack)

        assert component.config["autoScaling"]["maxReadCapacity"] == 50
        template.has_resource_properties("AWS::DynamoDB::Table", {
            "ProvisionedThroughput": {"ReadCapacityUnits": 5, "WriteCapacityUnits": 2},
        })
        template.resource_count_is("AWS::ApplicationAutoScaling::ScalableTarget", 2)

    def test_provisioned_requires_capacity(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(DynamoDbTableComponent, {
                "partitionKey": KEYS["partitionKey"],
                "billingMode": "provisioned",
            })

        assert excinfo.value.config_key == "provisioned"

    def test_customer_managed_key(self, stack, synth_component):
        component = synth_component(DynamoDbTableComponent, {
            "partitionKey": KEYS["partitionKey"],
            "encryption": {"type": "customer-managed"},
        }, name="table")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::KMS::Key", {"EnableKeyRotation": True})
        template.has_resource_properties("AWS::DynamoDB::Table", {
            "SSESpecification": Match.object_like({"SSEEnabled": True, "SSEType": "KMS"}),
        })
        assert "kmsKeyArn" in component.get_capabilities()["db:dynamodb"]

    def test_backup_plan(self, stack, synth_component):
        synth_component(DynamoDbTableComponent, {
            "partitionKey": KEYS["partitionKey"],
            "backup": {"enabled": True, "retentionDays": 35},
        }, name="table")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::Backup::BackupPlan", {
            "BackupPlan": Match.object_like({"BackupPlanName": "orders-table-backup"}),
        })
        template.resource_count_is("AWS::Backup::BackupSelection", 1)


class TestDynamoDbTableCreator:
    """Test compliance and environment rules."""

    def test_production_requires_point_in_time_recovery(self, make_context, make_spec):
        spec = make_spec("dynamodb-table", "table", {"partitionKey": KEYS["partitionKey"]})

        result = DynamoDbTableCreator().validate_spec(spec, make_context(environment="prod"))

        assert result.errors == ["pointInTimeRecovery must be enabled for production and FedRAMP tables"]

    def test_fedramp_high_requires_customer_managed_key(self, make_context, make_spec):
        spec = make_spec("dynamodb-table", "table", {
            "partitionKey": KEYS["partitionKey"],
            "pointInTimeRecovery": True,
        })

        result = DynamoDbTableCreator().validate_spec(spec, make_context(framework="fedramp-high"))

        assert result.errors == ["encryption.type must be customer-managed for fedramp-high"]

    def test_duplicate_index_names(self, make_context, make_spec):
        index = {"indexName": "byCustomer", "partitionKey": {"name": "customerId", "type": "string"}}
        spec = make_spec("dynamodb-table", "table", {
            "partitionKey": KEYS["partitionKey"],
            "globalSecondaryIndexes": [index, dict(index)],
        })

        result = DynamoDbTableCreator().validate_spec(spec, make_context())

        assert result.errors == ["Duplicate index names: byCustomer"]
