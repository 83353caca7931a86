"""DynamoDB table component."""

from typing import Any, Dict, Optional

from aws_cdk import (
    Duration,
    aws_backup as backup,
    aws_dynamodb as dynamodb,
    aws_events as events,
)

from components.common.base import BaseComponent, to_removal_policy
from components.common.capabilities import DB_DYNAMODB
from components.common.mixins import AlarmMixin, KmsKeyMixin, MetricDefinition
from .builder import DynamoDbTableConfigBuilder

ATTRIBUTE_TYPES = {
    "string": dynamodb.AttributeType.STRING,
    "number": dynamodb.AttributeType.NUMBER,
    "binary": dynamodb.AttributeType.BINARY,
}

PROJECTION_TYPES = {
    "all": dynamodb.ProjectionType.ALL,
    "keys-only": dynamodb.ProjectionType.KEYS_ONLY,
    "include": dynamodb.ProjectionType.INCLUDE,
}

STREAM_VIEW_TYPES = {
    "keys-only": dynamodb.StreamViewType.KEYS_ONLY,
    "new-image": dynamodb.StreamViewType.NEW_IMAGE,
    "old-image": dynamodb.StreamViewType.OLD_IMAGE,
    "new-and-old-images": dynamodb.StreamViewType.NEW_AND_OLD_IMAGES,
}

TABLE_CLASSES = {
    "standard": dynamodb.TableClass.STANDARD,
    "standard-infrequent-access": dynamodb.TableClass.STANDARD_INFREQUENT_ACCESS,
}


def _attribute(key_config: Optional[Dict[str, Any]]) -> Optional[dynamodb.Attribute]:
    if not key_config:
        return None
    return dynamodb.Attribute(name=key_config["name"], type=ATTRIBUTE_TYPES[key_config["type"]])


class DynamoDbTableComponent(BaseComponent, KmsKeyMixin, AlarmMixin):
    """DynamoDB table with indexes, scaling, backups and alarms."""

    builder_class = DynamoDbTableConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.table: Optional[dynamodb.Table] = None
        self.kms_key = None

    def _create_resources(self) -> None:
        self._create_table()
        self._add_indexes()
        self._configure_auto_scaling()
        self._create_backup_plan()
        self._create_alarms()
        self._register_capabilities()

    @property
    def _provisioned(self) -> bool:
        return self.config["billingMode"] == "provisioned"

    def _encryption_settings(self) -> Dict[str, Any]:
        encryption = self.config["encryption"]
        if encryption["type"] == "aws-owned":
            return {"encryption": dynamodb.TableEncryption.DEFAULT}
        if encryption["type"] == "aws-managed":
            return {"encryption": dynamodb.TableEncryption.AWS_MANAGED}
        self.kms_key = self.resolve_kms_key(
            "kmsKey",
            encryption,
            description=f"DynamoDB encryption key for {self.context.service_name}-{self.spec.name}",
            removal_policy=to_removal_policy(self.config["removalPolicy"])
        )
        return {
            "encryption": dynamodb.TableEncryption.CUSTOMER_MANAGED,
            "encryption_key": self.kms_key,
        }

    def _create_table(self) -> None:
        config = self.config
        stream = config["stream"]
        provisioned = config.get("provisioned") or {}

        self.table = dynamodb.Table(
            self,
            "Table",
            table_name=config["tableName"],
            partition_key=_attribute(config["partitionKey"]),
            sort_key=_attribute(config.get("sortKey")),
            billing_mode=(
                dynamodb.BillingMode.PROVISIONED if self._provisioned
                else dynamodb.BillingMode.PAY_PER_REQUEST
            ),
            read_capacity=provisioned.get("readCapacity"),
            write_capacity=provisioned.get("writeCapacity"),
            table_class=TABLE_CLASSES[config["tableClass"]],
            point_in_time_recovery=config["pointInTimeRecovery"],
            time_to_live_attribute=config.get("timeToLiveAttribute"),
            stream=STREAM_VIEW_TYPES[stream["viewType"]] if stream.get("enabled") else None,
            deletion_protection=config["deletionProtection"],
            removal_policy=to_removal_policy(config["removalPolicy"]),
            **self._encryption_settings()
        )
        self.apply_standard_tags(self.table, config["tags"])
        self.register_construct("table", self.table)

    def _add_indexes(self) -> None:
        for index in self.config["globalSecondaryIndexes"]:
            capacity = {}
            if self._provisioned:
                capacity = {
                    "read_capacity": index.get("readCapacity", self.config["provisioned"]["readCapacity"]),
                    "write_capacity": index.get("writeCapacity", self.config["provisioned"]["writeCapacity"]),
                }
            self.table.add_global_secondary_index(
                index_name=index["indexName"],
                partition_key=_attribute(index["partitionKey"]),
                sort_key=_attribute(index.get("sortKey")),
                projection_type=PROJECTION_TYPES[index["projectionType"]],
                non_key_attributes=index.get("nonKeyAttributes") if index["projectionType"] == "include" else None,
                **capacity
            )
        for index in self.config["localSecondaryIndexes"]:
            self.table.add_local_secondary_index(
                index_name=index["indexName"],
                sort_key=_attribute(index["sortKey"]),
                projection_type=PROJECTION_TYPES[index["projectionType"]],
                non_key_attributes=index.get("nonKeyAttributes") if index["projectionType"] == "include" else None
            )

    def _configure_auto_scaling(self) -> None:
        scaling = self.config["autoScaling"]
        if not (self._provisioned and scaling.get("enabled")):
            return
        target = scaling["targetUtilization"]
        self.table.auto_scale_read_capacity(
            min_capacity=scaling["minReadCapacity"],
            max_capacity=scaling["maxReadCapacity"]
        ).scale_on_utilization(target_utilization_percent=target)
        self.table.auto_scale_write_capacity(
            min_capacity=scaling["minWriteCapacity"],
            max_capacity=scaling["maxWriteCapacity"]
        ).scale_on_utilization(target_utilization_percent=target)

    def _create_backup_plan(self) -> None:
        backup_config = self.config["backup"]
        if not backup_config.get("enabled"):
            return
        plan = backup.BackupPlan(
            self,
            "BackupPlan",
            backup_plan_name=f"{self.config['tableName']}-backup",
            backup_plan_rules=[
                backup.BackupPlanRule(
                    rule_name="scheduled",
                    schedule_expression=events.Schedule.expression(backup_config["schedule"]),
                    delete_after=Duration.days(backup_config["retentionDays"])
                )
            ]
        )
        plan.add_selection(
            "TableSelection",
            resources=[backup.BackupResource.from_dynamo_db_table(self.table)]
        )
        self.register_construct("backupPlan", plan)

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        dimensions = {"TableName": self.table.table_name}
        definitions = {
            "readThrottles": MetricDefinition(
                "AWS/DynamoDB", "ReadThrottleEvents", dimensions, "Sum",
                description="DynamoDB read throttle events"
            ),
            "writeThrottles": MetricDefinition(
                "AWS/DynamoDB", "WriteThrottleEvents", dimensions, "Sum",
                description="DynamoDB write throttle events"
            ),
            "systemErrors": MetricDefinition(
                "AWS/DynamoDB", "SystemErrors", dimensions, "Sum",
                description="DynamoDB system errors"
            ),
            "userErrors": MetricDefinition(
                "AWS/DynamoDB", "UserErrors", dimensions, "Sum",
                description="DynamoDB user errors"
            ),
        }
        self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )

    def _register_capabilities(self) -> None:
        data = {
            "tableName": self.table.table_name,
            "tableArn": self.table.table_arn,
        }
        if self.table.table_stream_arn:
            data["streamArn"] = self.table.table_stream_arn
        if self.kms_key is not None:
            data["kmsKeyArn"] = self.kms_key.key_arn
        self.register_capability(DB_DYNAMODB, data)
