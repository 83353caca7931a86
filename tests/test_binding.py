"""Tests for binding resolution between synthesized components."""

import pytest
from aws_cdk.assertions import Template

from components.common.binding import BindingResolver, DynamoDbBinder, QueueBinder
from components.common.contracts import BindingDirective
from components.common.exceptions import BindingError, ComponentNotSynthesizedError, ValidationError
from components.dynamodb_table import DynamoDbTableComponent
from components.glue_job import GlueJobComponent
from components.sqs_queue import SqsQueueComponent

TABLE_CONFIG = {"partitionKey": {"name": "orderId", "type": "string"}}
JOB_CONFIG = {"scriptLocation": "s3://orders-artifacts/jobs/export.py"}


def _policy_statements(stack):
    statements = []
    for resource in Template.from_stack(stack).find_resources("AWS::IAM::Policy").values():
        statements.extend(resource["Properties"]["PolicyDocument"]["Statement"])
    return statements


def _actions(statement):
    actions = statement["Action"]
    return set(actions) if isinstance(actions, list) else {actions}


@pytest.fixture
def components(synth_component):
    """A Glue job consuming a queue and a table."""
    def _build(binds, framework="commercial"):
        events = synth_component(SqsQueueComponent, name="events", framework=framework)
        orders = synth_component(DynamoDbTableComponent, TABLE_CONFIG, name="orders", framework=framework)
        export = synth_component(GlueJobComponent, JOB_CONFIG, name="export", framework=framework, binds=binds)
        return {"events": events, "orders": orders, "export": export}
    return _build


class TestBindingResolver:
    """Test IAM grants and environment variables produced by bindings."""

    def test_queue_and_table_bindings(self, stack, components):
        resolved = components([
            {"to": "events", "capability": "queue:sqs", "access": "read"},
            {"to": "orders", "capability": "db:dynamodb", "access": "readwrite", "envPrefix": "orders-db"},
        ])

        results = BindingResolver(resolved, "commercial").bind_all()

        assert [(r.source, r.target, r.capability) for r in results] == [
            ("export", "events", "queue:sqs"),
            ("export", "orders", "db:dynamodb"),
        ]
        assert set(results[0].environment) == {"EVENTS_QUEUE_URL", "EVENTS_QUEUE_ARN"}
        assert set(results[1].environment) == {"ORDERS_DB_TABLE_NAME", "ORDERS_DB_TABLE_ARN"}
        assert set(resolved["export"].binding_environment) == {
            "EVENTS_QUEUE_URL", "EVENTS_QUEUE_ARN", "ORDERS_DB_TABLE_NAME", "ORDERS_DB_TABLE_ARN",
        }

        statements = _policy_statements(stack)
        assert any(_actions(s) == set(QueueBinder.actions["read"]) for s in statements)
        assert any(_actions(s) == set(DynamoDbBinder.actions["readwrite"]) for s in statements)
        for statement in statements:
            if _actions(statement) == set(QueueBinder.actions["read"]):
                assert statement["Condition"] == {"Bool": {"aws:SecureTransport": "true"}}

    def test_environment_reaches_glue_default_arguments(self, stack, components):
        resolved = components([{"to": "events", "capability": "queue:sqs", "access": "write"}])

        BindingResolver(resolved, "commercial").bind_all()

        jobs = Template.from_stack(stack).find_resources("AWS::Glue::Job")
        (job,) = jobs.values()
        arguments = job["Properties"]["DefaultArguments"]
        assert "--EVENTS_QUEUE_URL" in arguments
        assert "--EVENTS_QUEUE_ARN" in arguments
        assert arguments["--job-language"] == "python"

    def test_environment_variables_can_be_renamed(self, components):
        resolved = components([
            {"to": "events", "capability": "queue:sqs", "env": {"EVENTS_QUEUE_URL": "INPUT_QUEUE"}},
        ])

        (result,) = BindingResolver(resolved, "commercial").bind_all()

        assert set(result.environment) == {"INPUT_QUEUE", "EVENTS_QUEUE_ARN"}

    def test_fedramp_grants_pin_the_region(self, components):
        resolved = components(
            [{"to": "orders", "capability": "db:dynamodb", "access": "read"}],
            framework="fedramp-moderate"
        )

        result = BindingResolver(resolved, "fedramp-moderate").resolve(
            resolved["export"], resolved["export"].spec.binds[0]
        )
        statement = result.statements[0].to_statement_json()

        assert set(statement["Condition"]) == {"Bool", "StringEquals"}
        assert "aws:RequestedRegion" in statement["Condition"]["StringEquals"]

    def test_admin_access(self, components):
        resolved = components([{"to": "events", "capability": "queue:sqs", "access": "admin"}])

        (result,) = BindingResolver(resolved, "commercial").bind_all()

        assert result.statements[0].to_statement_json()["Action"] == "sqs:*"


class TestBindingErrors:
    """Test directives that cannot be resolved."""

    def test_unknown_access_level(self, components):
        resolved = components([{"to": "events", "capability": "queue:sqs", "access": "owner"}])

        with pytest.raises(ValidationError) as excinfo:
            BindingResolver(resolved, "commercial").bind_all()

        assert excinfo.value.parameter_name == "access"

    def test_capability_not_provided_by_target(self, components):
        resolved = components([{"to": "events", "capability": "db:dynamodb"}])

        with pytest.raises(BindingError) as excinfo:
            BindingResolver(resolved, "commercial").bind_all()

        assert "does not provide capability 'db:dynamodb'" in excinfo.value.message
        assert "Available: queue:sqs" in excinfo.value.message
        assert excinfo.value.source == "export"
        assert excinfo.value.target == "events"

    def test_unknown_target(self, components):
        resolved = components([{"to": "archive", "capability": "queue:sqs"}])

        with pytest.raises(BindingError, match="unknown component 'archive'"):
            BindingResolver(resolved, "commercial").bind_all()

    def test_capability_without_binder(self, components):
        resolved = components([{"to": "orders", "capability": "db:dynamodb"}])

        with pytest.raises(BindingError, match="No binder supports capability 'db:dynamodb'"):
            BindingResolver(resolved, "commercial", binders=(QueueBinder(),)).bind_all()

    def test_source_without_principal(self, synth_component):
        orders = synth_component(DynamoDbTableComponent, TABLE_CONFIG, name="orders")
        events = synth_component(
            SqsQueueComponent, name="events", binds=[{"to": "orders", "capability": "db:dynamodb"}]
        )

        with pytest.raises(BindingError, match="cannot receive IAM grants"):
            BindingResolver({"orders": orders, "events": events}, "commercial").bind_all()

    def test_target_must_be_synthesized(self, stack, make_context, make_spec, synth_component):
        events = SqsQueueComponent(stack, "events", make_context(), make_spec("sqs-queue", "events"))
        export = synth_component(GlueJobComponent, JOB_CONFIG, name="export")

        with pytest.raises(ComponentNotSynthesizedError):
            BindingResolver({"events": events, "export": export}, "commercial").resolve(
                export, BindingDirective(to="events", capability="queue:sqs")
            )
