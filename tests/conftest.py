"""
Shared fixtures for component tests.

Every test gets an empty platform configuration directory, so only the
hardcoded fallbacks and the overrides a test passes in are merged unless the
test writes platform or framework files itself.
"""

import aws_cdk as cdk
import pytest
import yaml
from aws_cdk import aws_ec2 as ec2

from components.common.contracts import ComponentContext, ComponentSpec
from helper.config import PlatformConfig

TEST_ACCOUNT = "123456789012"
TEST_REGION = "us-east-1"


@pytest.fixture
def config_dir(tmp_path):
    directory = tmp_path / "config"
    directory.mkdir()
    return directory


@pytest.fixture
def write_config(config_dir):
    """Write ``data`` as YAML to ``<config_dir>/<file_name>``."""
    def _write(file_name, data):
        (config_dir / file_name).write_text(yaml.safe_dump(data), encoding="utf-8")
    return _write


@pytest.fixture
def platform_config(config_dir):
    return PlatformConfig(str(config_dir))


@pytest.fixture
def app():
    return cdk.App()


@pytest.fixture
def stack(app):
    return cdk.Stack(app, "TestStack", env=cdk.Environment(account=TEST_ACCOUNT, region=TEST_REGION))


@pytest.fixture
def vpc(stack):
    return ec2.Vpc(stack, "TestVpc", max_azs=2)


@pytest.fixture
def make_context(stack, vpc, platform_config):
    def _make(environment="dev", framework="commercial", **kwargs):
        kwargs.setdefault("vpc", vpc)
        return ComponentContext(
            service_name="orders",
            environment=environment,
            compliance_framework=framework,
            scope=stack,
            region=TEST_REGION,
            account_id=TEST_ACCOUNT,
            platform_config=platform_config,
            **kwargs
        )
    return _make


@pytest.fixture
def make_spec():
    def _make(component_type, name="main", config=None, **kwargs):
        return ComponentSpec(name=name, type=component_type, config=config or {}, **kwargs)
    return _make


@pytest.fixture
def synth_component(stack, make_context, make_spec):
    """Create and synthesize a component directly, without creator validation."""
    def _synth(component_class, config=None, name="main", environment="dev", framework="commercial", **spec_kwargs):
        spec = make_spec(component_class.builder_class.COMPONENT_TYPE, name, config, **spec_kwargs)
        component = component_class(stack, name, make_context(environment, framework), spec)
        component.synth()
        return component
    return _synth
