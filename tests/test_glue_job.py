"""Tests for the glue-job component."""

import pytest
from aws_cdk.assertions import Match, Template

from components.common.exceptions import ComponentConfigurationError
from components.glue_job import GlueJobComponent, GlueJobCreator

SCRIPT = "s3://orders-artifacts/jobs/etl.py"


class TestGlueJobComponent:
    """Test the synthesized job and its supporting resources."""

    def test_default_job(self, stack, synth_component):
        component = synth_component(GlueJobComponent, {"scriptLocation": SCRIPT}, name="etl")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::Glue::Job", {
            "Name": "orders-etl",
            "Command": {"Name": "glueetl", "ScriptLocation": SCRIPT, "PythonVersion": "3"},
            "GlueVersion": "4.0",
            "WorkerType": "G.1X",
            "NumberOfWorkers": 10,
            "Timeout": 2880,
            "MaxRetries": 0,
            "ExecutionProperty": {"MaxConcurrentRuns": 1},
            "DefaultArguments": {
                "--job-language": "python",
                "--enable-continuous-cloudwatch-log": "true",
                "--enable-metrics": "true",
                "--continuous-log-logGroup": "/aws-glue/jobs/orders-etl-security",
            },
            "SecurityConfiguration": Match.absent(),
        })
        template.resource_count_is("AWS::IAM::Role", 1)
        template.resource_count_is("AWS::Glue::SecurityConfiguration", 0)
        template.has_resource_properties("AWS::Logs::LogGroup", {
            "LogGroupName": "/aws-glue/jobs/orders-etl-security",
            "RetentionInDays": 90,
        })
        template.resource_count_is("AWS::CloudWatch::Alarm", 2)
        assert component.get_capabilities()["job:glue"]["jobName"] == "orders-etl"

    def test_requires_script_location(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(GlueJobComponent, name="etl")

        assert excinfo.value.config_key == "scriptLocation"

    def test_role_can_read_the_script_prefix(self, stack, synth_component):
        synth_component(GlueJobComponent, {"scriptLocation": SCRIPT}, name="etl")

        Template.from_stack(stack).has_resource_properties("AWS::IAM::Policy", {
            "PolicyDocument": {
                "Statement": Match.array_with([Match.object_like({
                    "Action": ["s3:GetObject", "s3:GetObjectVersion"],
                    "Resource": {"Fn::Join": ["", Match.array_with([":s3:::orders-artifacts/jobs/*"])]},
                })])
            }
        })

    def test_python_shell_job(self, stack, synth_component):
        synth_component(GlueJobComponent, {"scriptLocation": SCRIPT, "jobType": "pythonshell"}, name="etl")

        Template.from_stack(stack).has_resource_properties("AWS::Glue::Job", {
            "Command": Match.object_like({"Name": "pythonshell", "PythonVersion": "3.9"}),
            "MaxCapacity": 0.0625,
            "WorkerType": Match.absent(),
            "GlueVersion": Match.absent(),
        })

    def test_script_arguments_are_prefixed(self, stack, synth_component):
        synth_component(GlueJobComponent, {
            "scriptLocation": SCRIPT,
            "command": {"scriptArguments": {"source": "orders", "--target": "archive"}},
        }, name="etl")

        Template.from_stack(stack).has_resource_properties("AWS::Glue::Job", {
            "DefaultArguments": Match.object_like({"--source": "orders", "--target": "archive"}),
        })

    def test_encryption_creates_security_configuration(self, stack, synth_component):
        synth_component(GlueJobComponent, {
            "scriptLocation": SCRIPT,
            "security": {"encryption": {"enabled": True}},
        }, name="etl")
        template = Template.from_stack(stack)

        template.resource_count_is("AWS::KMS::Key", 1)
        template.has_resource_properties("AWS::Glue::SecurityConfiguration", {
            "Name": "orders-etl-security",
            "EncryptionConfiguration": Match.object_like({
                "CloudWatchEncryption": Match.object_like({"CloudWatchEncryptionMode": "SSE-KMS"}),
                "JobBookmarksEncryption": Match.object_like({"JobBookmarksEncryptionMode": "CSE-KMS"}),
            }),
        })
        template.has_resource_properties("AWS::Glue::Job", {"SecurityConfiguration": "orders-etl-security"})

    def test_imported_role(self, stack, synth_component):
        role_arn = "arn:aws:iam::123456789012:role/etl-runner"

        component = synth_component(GlueJobComponent, {"scriptLocation": SCRIPT, "roleArn": role_arn}, name="etl")
        template = Template.from_stack(stack)

        template.resource_count_is("AWS::IAM::Role", 0)
        template.has_resource_properties("AWS::Glue::Job", {"Role": role_arn})
        assert component.get_binding_principal() is component.role


class TestGlueJobCreator:
    """Test compliance and cross-field rules."""

    def test_fedramp_requires_encryption(self, make_context, make_spec):
        spec = make_spec("glue-job", "etl", {"scriptLocation": SCRIPT})

        result = GlueJobCreator().validate_spec(spec, make_context(framework="fedramp-high"))

        assert result.errors == ["security.encryption.enabled must be true for fedramp-high"]

    def test_worker_rules(self, make_context, make_spec):
        creator = GlueJobCreator()
        streaming = make_spec("glue-job", "etl", {
            "scriptLocation": SCRIPT,
            "jobType": "gluestreaming",
            "workerConfiguration": {"workerType": "Standard"},
        })
        legacy = make_spec("glue-job", "etl", {
            "scriptLocation": SCRIPT,
            "glueVersion": "3.0",
            "workerConfiguration": {"workerType": "G.8X"},
        })

        assert creator.validate_spec(streaming, make_context()).errors == [
            "Streaming jobs cannot use the Standard worker type"
        ]
        assert creator.validate_spec(legacy, make_context()).errors == [
            "workerType G.8X requires glueVersion 4.0 or later"
        ]

    def test_arguments_cannot_be_default_and_fixed(self, make_context, make_spec):
        spec = make_spec("glue-job", "etl", {
            "scriptLocation": SCRIPT,
            "defaultArguments": {"--region": "us-east-1"},
            "nonOverridableArguments": {"--region": "us-west-2"},
        })

        result = GlueJobCreator().validate_spec(spec, make_context())

        assert result.errors == ["Arguments cannot be both default and non-overridable: --region"]
