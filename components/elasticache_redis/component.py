"""ElastiCache Redis component."""

from typing import List, Optional

from aws_cdk import (
    aws_ec2 as ec2,
    aws_elasticache as elasticache,
    aws_secretsmanager as secretsmanager,
)

from components.common.base import BaseComponent, to_removal_policy
from components.common.capabilities import CACHE_REDIS
from components.common.mixins import AlarmMixin, MetricDefinition, SecurityGroupMixin
from .builder import ElastiCacheRedisConfigBuilder


class ElastiCacheRedisComponent(BaseComponent, SecurityGroupMixin, AlarmMixin):
    """
    Redis replication group with networking, encryption and alarms.

    Registered handles: ``securityGroup``, ``subnetGroup``, ``parameterGroup``,
    ``authToken``, ``log:<type>``, ``replicationGroup`` and ``alarm:<name>``.
    """

    builder_class = ElastiCacheRedisConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.security_group: Optional[ec2.SecurityGroup] = None
        self.replication_group: Optional[elasticache.CfnReplicationGroup] = None
        self.auth_token: Optional[secretsmanager.ISecret] = None

    def _create_resources(self) -> None:
        vpc = self.resolve_vpc(self.config.get("vpc"))
        self._create_security_group(vpc)
        subnet_group = self._create_subnet_group(vpc)
        parameter_group = self._create_parameter_group()
        self._create_auth_token()
        log_groups = self._create_log_groups()
        self._create_replication_group(subnet_group, parameter_group, log_groups)
        self._create_alarms()
        self._register_capabilities()

    def get_security_group(self) -> Optional[ec2.ISecurityGroup]:
        return self.security_group

    def _create_security_group(self, vpc: ec2.IVpc) -> None:
        sg_config = self.config["securityGroups"]
        if not sg_config.get("create"):
            return
        self.security_group = self.create_component_security_group(
            "redis",
            vpc,
            ports=[self.config["port"]],
            allowed_cidrs=sg_config.get("allowedCidrs"),
            description=f"Security group for {self.context.service_name}-{self.spec.name} Redis cluster"
        )
        self.register_construct("securityGroup", self.security_group)

    def _security_group_ids(self) -> List[str]:
        ids = list(self.config["securityGroups"].get("securityGroupIds", []))
        if self.security_group is not None:
            ids.append(self.security_group.security_group_id)
        return ids

    def _create_subnet_group(self, vpc: ec2.IVpc) -> elasticache.CfnSubnetGroup:
        vpc_config = self.config.get("vpc") or {}
        subnets = self.resolve_subnets(vpc, vpc_config.get("subnetIds"))
        subnet_group = elasticache.CfnSubnetGroup(
            self,
            "SubnetGroup",
            description=f"Subnet group for {self.context.service_name}-{self.spec.name}",
            subnet_ids=[subnet.subnet_id for subnet in subnets],
            cache_subnet_group_name=vpc_config.get(
                "subnetGroupName", f"{self.config['clusterName']}-subnets"
            )
        )
        self.register_construct("subnetGroup", subnet_group)
        return subnet_group

    def _create_parameter_group(self) -> Optional[elasticache.CfnParameterGroup]:
        parameter_config = self.config["parameterGroup"]
        if not parameter_config.get("parameters"):
            return None
        parameter_group = elasticache.CfnParameterGroup(
            self,
            "ParameterGroup",
            cache_parameter_group_family=parameter_config["family"],
            description=f"Parameter group for {self.context.service_name}-{self.spec.name}",
            properties=parameter_config["parameters"]
        )
        self.register_construct("parameterGroup", parameter_group)
        return parameter_group

    def _create_auth_token(self) -> None:
        token_config = self.config["encryption"]["authToken"]
        if not token_config.get("enabled"):
            return
        if token_config.get("secretArn"):
            self.auth_token = secretsmanager.Secret.from_secret_complete_arn(
                self, "AuthToken", token_config["secretArn"]
            )
        else:
            self.auth_token = secretsmanager.Secret(
                self,
                "AuthToken",
                description=f"Redis AUTH token for {self.context.service_name}-{self.spec.name}",
                generate_secret_string=secretsmanager.SecretStringGenerator(
                    exclude_punctuation=True,
                    password_length=64
                ),
                removal_policy=to_removal_policy(token_config.get("removalPolicy"), "destroy")
            )
        self.register_construct("authToken", self.auth_token)

    def _create_log_groups(self) -> list:
        log_groups = []
        for entry in self.config["logDelivery"]:
            if entry["destinationType"] != "cloudwatch-logs":
                continue
            log_groups.append(self.create_log_group(
                f"log:{entry['logType']}",
                entry["destinationName"],
                retention_days=entry.get("retentionDays", 90)
            ))
        return log_groups

    def _log_delivery_configurations(self) -> list:
        configurations = []
        for entry in self.config["logDelivery"]:
            if entry["destinationType"] == "cloudwatch-logs":
                details = elasticache.CfnReplicationGroup.DestinationDetailsProperty(
                    cloud_watch_logs_details=elasticache.CfnReplicationGroup.CloudWatchLogsDestinationDetailsProperty(
                        log_group=entry["destinationName"]
                    )
                )
            else:
                details = elasticache.CfnReplicationGroup.DestinationDetailsProperty(
                    kinesis_firehose_details=elasticache.CfnReplicationGroup.KinesisFirehoseDestinationDetailsProperty(
                        delivery_stream=entry["destinationName"]
                    )
                )
            configurations.append(elasticache.CfnReplicationGroup.LogDeliveryConfigurationRequestProperty(
                destination_details=details,
                destination_type=entry["destinationType"],
                log_format=entry["logFormat"],
                log_type=entry["logType"]
            ))
        return configurations

    def _create_replication_group(self, subnet_group, parameter_group, log_groups) -> None:
        config = self.config
        encryption = config["encryption"]
        backup = config["backup"]
        delivery = self._log_delivery_configurations()

        self.replication_group = elasticache.CfnReplicationGroup(
            self,
            "ReplicationGroup",
            replication_group_id=config["clusterName"],
            replication_group_description=config["description"],
            engine="redis",
            engine_version=config["engineVersion"],
            cache_node_type=config["nodeType"],
            num_cache_clusters=config["numCacheNodes"],
            port=config["port"],
            cache_subnet_group_name=subnet_group.ref,
            security_group_ids=self._security_group_ids() or None,
            cache_parameter_group_name=parameter_group.ref if parameter_group else None,
            at_rest_encryption_enabled=encryption["atRest"],
            transit_encryption_enabled=encryption["inTransit"],
            auth_token=self.auth_token.secret_value.unsafe_unwrap() if self.auth_token else None,
            snapshot_retention_limit=backup["retentionDays"],
            snapshot_window=backup["window"] if backup.get("enabled") else None,
            preferred_maintenance_window=config["maintenance"].get("window"),
            notification_topic_arn=config["maintenance"].get("notificationTopicArn"),
            multi_az_enabled=config["multiAz"]["enabled"],
            automatic_failover_enabled=config["multiAz"]["automaticFailover"],
            log_delivery_configurations=delivery or None
        )
        self.replication_group.add_dependency(subnet_group)
        for log_group in log_groups:
            self.replication_group.node.add_dependency(log_group)
        self.apply_standard_tags(self.replication_group, {
            "engine-version": config["engineVersion"],
            "node-type": config["nodeType"],
            **config["tags"],
        })
        self.register_construct("replicationGroup", self.replication_group)

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        # Node-level metrics are reported against the primary cache cluster
        dimensions = {"CacheClusterId": f"{self.config['clusterName']}-001"}
        definitions = {
            "cpuUtilization": MetricDefinition(
                "AWS/ElastiCache", "CPUUtilization", dimensions, "Average",
                description="ElastiCache Redis CPU utilization"
            ),
            "cacheMisses": MetricDefinition(
                "AWS/ElastiCache", "CacheMisses", dimensions, "Sum",
                description="ElastiCache Redis cache misses"
            ),
            "evictions": MetricDefinition(
                "AWS/ElastiCache", "Evictions", dimensions, "Sum",
                description="ElastiCache Redis evictions"
            ),
            "connections": MetricDefinition(
                "AWS/ElastiCache", "CurrConnections", dimensions, "Maximum",
                description="ElastiCache Redis current connections"
            ),
        }
        alarms = self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )
        for alarm in alarms:
            alarm.node.add_dependency(self.replication_group)

    def _register_capabilities(self) -> None:
        data = {
            "host": self.replication_group.attr_primary_end_point_address,
            "port": self.replication_group.attr_primary_end_point_port,
            "clusterId": self.replication_group.ref,
            "transitEncryption": self.config["encryption"]["inTransit"],
            "securityGroupIds": self._security_group_ids(),
        }
        if self.auth_token is not None:
            data["authTokenSecretArn"] = self.auth_token.secret_arn
        self.register_capability(CACHE_REDIS, data)
