"""Tests for the efs-filesystem component."""

import pytest
from aws_cdk.assertions import Match, Template

from components.common.exceptions import ComponentConfigurationError
from components.efs_filesystem import EfsFilesystemComponent, EfsFilesystemCreator


class TestEfsFilesystemComponent:
    """Test the synthesized file system."""

    def test_default_file_system(self, stack, synth_component):
        component = synth_component(EfsFilesystemComponent, name="shared")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::EFS::FileSystem", {
            "Encrypted": True,
            "PerformanceMode": "generalPurpose",
            "ThroughputMode": "bursting",
            "KmsKeyId": Match.absent(),
        })
        template.has_resource("AWS::EFS::FileSystem", {"DeletionPolicy": "Retain"})
        template.resource_count_is("AWS::EFS::MountTarget", 2)
        template.has_resource_properties("AWS::EC2::SecurityGroup", {
            "SecurityGroupIngress": [Match.object_like({
                "CidrIp": "10.0.0.0/8",
                "FromPort": 2049,
                "ToPort": 2049,
            })]
        })
        template.resource_count_is("AWS::Logs::LogGroup", 0)
        template.resource_count_is("AWS::CloudWatch::Alarm", 0)
        assert component.config["fileSystemName"] == "orders-shared"
        assert component.get_capabilities()["storage:efs"]["encryptInTransit"] is False

    def test_transit_encryption_policy_and_backups(self, stack, synth_component):
        synth_component(EfsFilesystemComponent, {
            "encryption": {"encryptInTransit": True},
            "backups": {"enabled": True},
            "lifecycle": {"transitionToIA": "AFTER_30_DAYS", "transitionToPrimary": "AFTER_1_ACCESS"},
        }, name="shared")

        Template.from_stack(stack).has_resource_properties("AWS::EFS::FileSystem", {
            "BackupPolicy": {"Status": "ENABLED"},
            "LifecyclePolicies": [
                {"TransitionToIA": "AFTER_30_DAYS"},
                {"TransitionToPrimaryStorageClass": "AFTER_1_ACCESS"},
            ],
            "FileSystemPolicy": Match.object_like({
                "Statement": Match.array_with([Match.object_like({
                    "Sid": "DenyInsecureTransport",
                    "Effect": "Deny",
                    "Condition": {"Bool": {"aws:SecureTransport": "false"}},
                })])
            }),
        })

    def test_customer_managed_key(self, stack, synth_component):
        synth_component(EfsFilesystemComponent, {
            "encryption": {"customerManagedKey": {"create": True}},
        }, name="shared")
        template = Template.from_stack(stack)

        template.resource_count_is("AWS::KMS::Key", 1)
        template.has_resource_properties("AWS::EFS::FileSystem", {"KmsKeyId": Match.any_value()})

    def test_imported_security_group(self, stack, synth_component):
        component = synth_component(EfsFilesystemComponent, {
            "vpc": {"securityGroup": {"securityGroupId": "sg-0123456789abcdef0"}},
        }, name="shared")

        assert component.config["vpc"]["securityGroup"]["create"] is False
        Template.from_stack(stack).resource_count_is("AWS::EC2::SecurityGroup", 0)

    def test_ipv6_cidr_ingress(self, stack, synth_component):
        synth_component(EfsFilesystemComponent, {
            "vpc": {"securityGroup": {"allowedCidrs": ["10.0.0.0/8", "2001:db8::/32"]}},
        }, name="shared")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::EC2::SecurityGroup", {
            "SecurityGroupIngress": Match.array_with([
                Match.object_like({"CidrIp": "10.0.0.0/8", "FromPort": 2049}),
                Match.object_like({"CidrIpv6": "2001:db8::/32", "FromPort": 2049, "ToPort": 2049}),
            ])
        })

    def test_log_groups_and_alarms(self, stack, synth_component):
        synth_component(EfsFilesystemComponent, {
            "logging": {"access": {"enabled": True}, "audit": {"enabled": True}},
            "monitoring": {"enabled": True},
        }, name="shared")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::Logs::LogGroup", {
            "LogGroupName": "/aws/efs/orders-shared/access",
            "RetentionInDays": 90,
        })
        template.has_resource_properties("AWS::Logs::LogGroup", {
            "LogGroupName": "/aws/efs/orders-shared/audit",
            "RetentionInDays": 365,
        })
        template.resource_count_is("AWS::CloudWatch::Alarm", 3)

    def test_provisioned_throughput_is_required(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(EfsFilesystemComponent, {"throughputMode": "provisioned"})

        assert excinfo.value.config_key == "provisionedThroughputMibps"

    def test_elastic_throughput_needs_general_purpose(self, synth_component):
        with pytest.raises(ComponentConfigurationError, match="Elastic throughput"):
            synth_component(EfsFilesystemComponent, {"throughputMode": "elastic", "performanceMode": "maxIO"})

    def test_security_group_must_exist(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(EfsFilesystemComponent, {"vpc": {"securityGroup": {"create": False}}})

        assert excinfo.value.config_key == "vpc.securityGroup.securityGroupId"


class TestEfsFilesystemCreator:
    """Test compliance and exposure rules."""

    def test_fedramp_moderate_rules(self, make_context, make_spec):
        result = EfsFilesystemCreator().validate_spec(
            make_spec("efs-filesystem", "shared"), make_context(framework="fedramp-moderate")
        )

        assert result.errors == [
            "encryption.encryptInTransit must be true for fedramp-moderate",
            "backups.enabled must be true for fedramp-moderate",
        ]

    def test_fedramp_high_requires_customer_managed_key(self, make_context, make_spec):
        spec = make_spec("efs-filesystem", "shared", {
            "encryption": {"encryptInTransit": True},
            "backups": {"enabled": True},
        })

        result = EfsFilesystemCreator().validate_spec(spec, make_context(framework="fedramp-high"))

        assert result.errors == ["fedramp-high requires a customer managed key for encryption"]

    def test_open_cidrs_rejected_in_production(self, make_context, make_spec):
        spec = make_spec("efs-filesystem", "shared", {"vpc": {"securityGroup": {"allowedCidrs": ["0.0.0.0/0"]}}})
        creator = EfsFilesystemCreator()

        assert creator.validate_spec(spec, make_context()).valid
        assert creator.validate_spec(spec, make_context(environment="prod")).errors == [
            "vpc.securityGroup.allowedCidrs must not include 0.0.0.0/0 in production or FedRAMP deployments"
        ]
