"""EFS file system component."""

from typing import Optional

from aws_cdk import (
    Size,
    aws_ec2 as ec2,
    aws_efs as efs,
    aws_iam as iam,
)

from components.common.base import BaseComponent, to_removal_policy
from components.common.capabilities import STORAGE_EFS
from components.common.mixins import AlarmMixin, KmsKeyMixin, MetricDefinition, SecurityGroupMixin
from .builder import NFS_PORT, EfsFilesystemConfigBuilder

PERFORMANCE_MODES = {
    "generalPurpose": efs.PerformanceMode.GENERAL_PURPOSE,
    "maxIO": efs.PerformanceMode.MAX_IO,
}

THROUGHPUT_MODES = {
    "bursting": efs.ThroughputMode.BURSTING,
    "provisioned": efs.ThroughputMode.PROVISIONED,
    "elastic": efs.ThroughputMode.ELASTIC,
}

LIFECYCLE_POLICIES = {
    "AFTER_7_DAYS": efs.LifecyclePolicy.AFTER_7_DAYS,
    "AFTER_14_DAYS": efs.LifecyclePolicy.AFTER_14_DAYS,
    "AFTER_30_DAYS": efs.LifecyclePolicy.AFTER_30_DAYS,
    "AFTER_60_DAYS": efs.LifecyclePolicy.AFTER_60_DAYS,
    "AFTER_90_DAYS": efs.LifecyclePolicy.AFTER_90_DAYS,
}


class EfsFilesystemComponent(BaseComponent, SecurityGroupMixin, KmsKeyMixin, AlarmMixin):
    """EFS file system with its security group, policies, log groups and alarms."""

    builder_class = EfsFilesystemConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.file_system: Optional[efs.FileSystem] = None
        self.security_group: Optional[ec2.ISecurityGroup] = None
        self.kms_key = None

    def _create_resources(self) -> None:
        vpc = self.resolve_vpc(self.config["vpc"])
        self._create_security_group(vpc)
        self._create_file_system(vpc)
        self._create_log_groups()
        self._create_alarms()
        self.register_capability(STORAGE_EFS, {
            "fileSystemId": self.file_system.file_system_id,
            "fileSystemArn": self.file_system.file_system_arn,
            "securityGroupId": self.security_group.security_group_id,
            "encryptInTransit": self.config["encryption"]["encryptInTransit"],
        })

    def get_security_group(self) -> Optional[ec2.ISecurityGroup]:
        return self.security_group

    def _create_security_group(self, vpc: ec2.IVpc) -> None:
        sg_config = self.config["vpc"]["securityGroup"]
        if sg_config["create"]:
            self.security_group = self.create_component_security_group(
                "FileSystem",
                vpc,
                [NFS_PORT],
                sg_config.get("allowedCidrs", []),
                description=sg_config.get("description") or f"NFS access to {self.config['fileSystemName']}"
            )
        else:
            self.security_group = ec2.SecurityGroup.from_security_group_id(
                self, "ImportedSecurityGroup", sg_config["securityGroupId"]
            )
        self.register_construct("securityGroup", self.security_group)

    def _create_file_system(self, vpc: ec2.IVpc) -> None:
        config = self.config
        encryption = config["encryption"]
        lifecycle = config["lifecycle"]
        removal_policy = to_removal_policy(config["removalPolicy"])

        if encryption["enabled"]:
            self.kms_key = self.resolve_kms_key(
                "kmsKey",
                encryption,
                description=f"EFS encryption key for {config['fileSystemName']}",
                removal_policy=removal_policy
            )

        provisioned = config.get("provisionedThroughputMibps")
        self.file_system = efs.FileSystem(
            self,
            "FileSystem",
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnets=self.resolve_subnets(vpc, config["vpc"]["subnetIds"])),
            security_group=self.security_group,
            file_system_name=config["fileSystemName"],
            performance_mode=PERFORMANCE_MODES[config["performanceMode"]],
            throughput_mode=THROUGHPUT_MODES[config["throughputMode"]],
            provisioned_throughput_per_second=Size.mebibytes(provisioned) if provisioned else None,
            encrypted=encryption["enabled"],
            kms_key=self.kms_key,
            lifecycle_policy=LIFECYCLE_POLICIES.get(lifecycle.get("transitionToIA")),
            out_of_infrequent_access_policy=(
                efs.OutOfInfrequentAccessPolicy.AFTER_1_ACCESS
                if lifecycle.get("transitionToPrimary") else None
            ),
            enable_automatic_backups=config["backups"]["enabled"],
            removal_policy=removal_policy
        )

        if encryption["encryptInTransit"]:
            self.file_system.add_to_resource_policy(iam.PolicyStatement(
                sid="DenyInsecureTransport",
                effect=iam.Effect.DENY,
                principals=[iam.AnyPrincipal()],
                actions=["*"],
                conditions={"Bool": {"aws:SecureTransport": "false"}}
            ))

        self.apply_standard_tags(self.file_system, config["tags"])
        self.register_construct("fileSystem", self.file_system)

    def _create_log_groups(self) -> None:
        for kind in ("access", "audit"):
            log_config = self.config["logging"][kind]
            if not log_config["enabled"]:
                continue
            self.create_log_group(
                f"log:{kind}",
                log_config["logGroupName"],
                retention_days=log_config["retentionDays"],
                removal_policy=log_config["removalPolicy"]
            )

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        file_system_id = self.file_system.file_system_id
        definitions = {
            "storageUtilization": MetricDefinition(
                "AWS/EFS", "StorageBytes",
                {"FileSystemId": file_system_id, "StorageClass": "Total"},
                description="EFS storage bytes"
            ),
            "clientConnections": MetricDefinition(
                "AWS/EFS", "ClientConnections", {"FileSystemId": file_system_id}, "Sum",
                description="EFS client connections"
            ),
        }
        if self.config["throughputMode"] == "bursting":
            definitions["burstCreditBalance"] = MetricDefinition(
                "AWS/EFS", "BurstCreditBalance", {"FileSystemId": file_system_id}, "Minimum",
                comparison="lt",
                description="EFS burst credit balance"
            )
        self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )
