"""Tests for the service stack and the synthesis plan."""

import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Match, Template

from components.common.exceptions import ComponentConfigurationError, ValidationError
from components.common.manifest import parse_manifest
from components.common.plan import build_plan, format_plan
from components.service import ServiceStack, _output_id

TEST_ACCOUNT = "123456789012"
TEST_REGION = "us-east-1"


def _manifest(environment="dev", extra_components=None, **overrides):
    raw = {
        "service": "orders",
        "owner": "team-orders",
        "labels": {"domain": "commerce"},
        "environments": {"dev": {"defaults": {"workers": 2}}, "prod": {"defaults": {"workers": 10}}},
        "components": [
            {"name": "events", "type": "sqs-queue"},
            {
                "name": "export",
                "type": "glue-job",
                "config": {
                    "scriptLocation": "s3://orders-artifacts/jobs/export.py",
                    "workerConfiguration": {"numberOfWorkers": "${env:workers}"},
                },
                "binds": [{"to": "events", "capability": "queue:sqs", "access": "read"}],
            },
        ] + (extra_components or []),
    }
    raw.update(overrides)
    return parse_manifest(raw, environment)


@pytest.fixture
def make_stack(app, platform_config):
    def _make(manifest, environment="dev", **kwargs):
        return ServiceStack(
            app,
            f"{manifest.service}-{environment}",
            manifest=manifest,
            environment=environment,
            platform_config=platform_config,
            env=cdk.Environment(account=TEST_ACCOUNT, region=TEST_REGION),
            **kwargs
        )
    return _make


class TestServiceStack:
    """Test stack assembly from a manifest."""

    def test_creates_components_and_bindings(self, make_stack):
        stack = make_stack(_manifest())
        template = Template.from_stack(stack)

        assert list(stack.components) == ["events", "export"]
        assert [(b.source, b.target) for b in stack.bindings] == [("export", "events")]
        template.resource_count_is("AWS::SQS::Queue", 2)
        template.resource_count_is("AWS::Glue::Job", 1)
        template.has_resource_properties("AWS::Glue::Job", {
            "NumberOfWorkers": 2,
            "DefaultArguments": Match.object_like({"--EVENTS_QUEUE_URL": Match.any_value()}),
        })

    def test_environment_selects_manifest_values(self, make_stack):
        stack = make_stack(_manifest("prod"), "prod")

        Template.from_stack(stack).has_resource_properties("AWS::Glue::Job", {"NumberOfWorkers": 10})

    def test_stack_tags(self, make_stack):
        stack = make_stack(_manifest())
        template = Template.from_stack(stack)

        for key, value in (("service-name", "orders"), ("resource-owner", "team-orders"),
                           ("domain", "commerce"), ("compliance-framework", "commercial")):
            template.has_resource_properties("AWS::SQS::Queue", {
                "Tags": Match.array_with([{"Key": key, "Value": value}])
            })

    def test_outputs_for_capabilities(self, make_stack):
        stack = make_stack(_manifest())
        outputs = Template.from_stack(stack).find_outputs("*")

        assert "EventsQueueSqsQueueUrl" in outputs
        assert "EventsQueueSqsDeadLetterQueueArn" in outputs
        assert "ExportJobGlueJobName" in outputs
        assert outputs["ExportJobGlueJobName"]["Value"] == "orders-export"
        assert "EventsQueueSqsFifo" not in outputs

    def test_no_vpc_without_network_components(self, make_stack):
        stack = make_stack(_manifest())

        assert stack.context.vpc is None
        Template.from_stack(stack).resource_count_is("AWS::EC2::VPC", 0)

    def test_shared_vpc_for_network_components(self, make_stack):
        stack = make_stack(_manifest(extra_components=[{"name": "cache", "type": "elasticache-redis"}]))
        template = Template.from_stack(stack)

        template.resource_count_is("AWS::EC2::VPC", 1)
        template.resource_count_is("AWS::EC2::FlowLog", 1)
        template.resource_count_is("AWS::ElastiCache::ReplicationGroup", 1)

    def test_raw_overrides_are_applied(self, make_stack):
        manifest = _manifest(extra_components=[
            {"name": "audit", "type": "sqs-queue", "overrides": {"queue": {"VisibilityTimeout": 99}}},
        ])

        Template.from_stack(make_stack(manifest)).has_resource_properties(
            "AWS::SQS::Queue", {"QueueName": "orders-audit", "VisibilityTimeout": 99}
        )

    def test_override_for_unknown_handle(self, make_stack):
        manifest = _manifest(extra_components=[
            {"name": "audit", "type": "sqs-queue", "overrides": {"topic": {"DisplayName": "x"}}},
        ])

        with pytest.raises(ComponentConfigurationError) as excinfo:
            make_stack(manifest)

        assert excinfo.value.config_key == "overrides.topic"

    def test_invalid_component_fails_the_stack(self, make_stack):
        manifest = _manifest(extra_components=[{"name": "archive", "type": "dynamodb-table"}])

        with pytest.raises(ValidationError, match="requires a partitionKey"):
            make_stack(manifest)

    def test_output_ids(self):
        assert _output_id("order-events", "queue:sqs", "queueUrl") == "OrderEventsQueueSqsQueueUrl"
        assert _output_id("cache_1", "cache:redis", "host") == "Cache1CacheRedisHost"


class TestSynthesisPlan:
    """Test the plan summary of a synthesized stack."""

    def test_build_plan(self, make_stack):
        stack = make_stack(_manifest())

        plan = build_plan(stack.components.values(), stack.bindings)

        events, export = plan["components"]
        assert events["name"] == "events"
        assert events["type"] == "sqs-queue"
        assert events["capabilities"] == ["queue:sqs"]
        assert "queue" in events["constructs"]
        assert "deadLetterQueue" in events["constructs"]
        assert export["configuration"]["layers"][-1]["name"] == "component-overrides"
        assert plan["bindings"] == [{
            "source": "export",
            "target": "events",
            "capability": "queue:sqs",
            "access": "read",
            "environment": ["EVENTS_QUEUE_ARN", "EVENTS_QUEUE_URL"],
        }]

    def test_format_plan(self, make_stack):
        stack = make_stack(_manifest())

        text = format_plan(stack.components.values(), stack.bindings)

        assert text.startswith("Components (2):")
        assert "events [sqs-queue]" in text
        assert "layer 5 component-overrides: 2 keys" in text
        assert "Bindings (1):" in text
        assert "export -> events (queue:sqs, read)" in text
        assert "env: EVENTS_QUEUE_ARN, EVENTS_QUEUE_URL" in text

    def test_format_plan_lists_conflicts(self, make_stack, write_config):
        write_config("platform.yml", {"defaults": {"sqs-queue": {"visibilityTimeoutSeconds": 45}}})
        manifest = _manifest(components=[
            {"name": "events", "type": "sqs-queue", "config": {"visibilityTimeoutSeconds": 90}},
        ])

        text = format_plan(make_stack(manifest).components.values())

        assert "visibilityTimeoutSeconds: component-overrides wins" in text
        assert "platform-defaults=45" in text
        assert "Bindings (0):" in text
