"""
Base class for platform components.

A component is a CDK construct that resolves its configuration through a
ConfigBuilder, creates the AWS resources for one resource family, and
registers the constructs and capabilities other components bind to.
"""

import logging
from typing import Any, Dict, List, Optional, Type

import aws_cdk as cdk
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_iam as iam
from aws_cdk import aws_logs as logs
from constructs import Construct

from helper.logging_config import log_with_context
from .capabilities import validate_capability_key
from .config_builder import ConfigBuilder
from .constants import (
    DATA_CLASSIFICATION_BY_FRAMEWORK,
    MONITORING_LEVEL_BY_FRAMEWORK,
    PLATFORM_DEPLOYER,
    RETENTION_DAYS_MAPPING,
)
from .contracts import ComponentContext, ComponentSpec
from .exceptions import (
    BindingError,
    ComponentConfigurationError,
    ComponentNotSynthesizedError,
    PlatformError,
    ResourceCreationError,
)
from .validators import ConfigValidator

logger = logging.getLogger(__name__)

REMOVAL_POLICIES = {
    "retain": cdk.RemovalPolicy.RETAIN,
    "destroy": cdk.RemovalPolicy.DESTROY,
    "snapshot": cdk.RemovalPolicy.SNAPSHOT,
}


def to_removal_policy(value: Optional[str], default: str = "retain") -> cdk.RemovalPolicy:
    return REMOVAL_POLICIES[(value or default).lower()]


def to_retention_days(days: int) -> logs.RetentionDays:
    """Map a day count to the smallest CloudWatch retention that keeps logs at least that long."""
    if days in RETENTION_DAYS_MAPPING:
        return RETENTION_DAYS_MAPPING[days]
    for supported in sorted(RETENTION_DAYS_MAPPING):
        if supported >= days:
            return RETENTION_DAYS_MAPPING[supported]
    return logs.RetentionDays.INFINITE


class BaseComponent(Construct):
    """
    Base component with configuration resolution, registries and tagging.

    Subclasses set ``builder_class`` and implement ``_create_resources``,
    which reads ``self.config`` and calls ``register_construct`` and
    ``register_capability``.
    """

    builder_class: Type[ConfigBuilder] = None

    def __init__(self,
                 scope: Construct,
                 construct_id: str,
                 context: ComponentContext,
                 spec: ComponentSpec,
                 builder: Optional[ConfigBuilder] = None) -> None:
        """
        Initialize the component.

        Args:
            scope: CDK scope, usually the service stack
            construct_id: Unique identifier for this construct
            context: Service-wide deployment context
            spec: The component's manifest entry
            builder: Optional pre-built ConfigBuilder
        """
        super().__init__(scope, construct_id)
        if builder is None and self.builder_class is None:
            raise ComponentConfigurationError(
                f"{type(self).__name__} does not declare a builder_class",
                config_key="builder_class"
            )
        self.context = context
        self.spec = spec
        self.builder = builder or self.builder_class(context, spec)
        self.config: Dict[str, Any] = {}
        self.binding_environment: Dict[str, str] = {}
        self._constructs: Dict[str, Construct] = {}
        self._capabilities: Dict[str, Dict[str, Any]] = {}
        self._synthesized = False

    @property
    def component_name(self) -> str:
        return self.spec.name

    def get_type(self) -> str:
        return self.builder.COMPONENT_TYPE

    def synth(self) -> None:
        """
        Resolve configuration and create the component's resources.

        Raises:
            SchemaValidationError: If the merged configuration is invalid
            ResourceCreationError: If a CDK construct cannot be created
        """
        if self._synthesized:
            return
        self.config = self.builder.build()
        self.log_component_event("synthesis_start", f"Synthesizing {self.get_type()} component")

        try:
            self._create_resources()
        except PlatformError:
            raise
        except Exception as e:
            raise ResourceCreationError(
                f"Failed to create {self.get_type()} component '{self.spec.name}': {str(e)}",
                resource_type=self.get_type()
            )

        self.apply_standard_tags(self)
        self._synthesized = True
        self.validate_synthesized()
        self.log_component_event(
            "synthesis_complete",
            f"Created {len(self._constructs)} constructs",
            capabilities=",".join(sorted(self._capabilities))
        )

    def _create_resources(self) -> None:
        """Create resources from ``self.config``."""
        raise NotImplementedError

    # Registries

    def register_construct(self, handle: str, construct: Construct) -> None:
        if handle in self._constructs:
            raise ComponentConfigurationError(
                f"Construct handle '{handle}' is already registered on component '{self.spec.name}'",
                config_key=handle
            )
        self._constructs[handle] = construct

    def get_construct(self, handle: str) -> Optional[Construct]:
        return self._constructs.get(handle)

    def get_construct_handles(self) -> List[str]:
        return list(self._constructs)

    def register_capability(self, key: str, data: Dict[str, Any]) -> None:
        validate_capability_key(key)
        self._capabilities[key] = dict(data)

    def get_capabilities(self) -> Dict[str, Dict[str, Any]]:
        if not self._synthesized:
            raise ComponentNotSynthesizedError(self.spec.name)
        return {key: dict(value) for key, value in self._capabilities.items()}

    def validate_synthesized(self) -> None:
        if not self._constructs:
            raise ComponentConfigurationError(
                f"Component '{self.spec.name}' registered no constructs during synth"
            )
        if not self._capabilities:
            raise ComponentConfigurationError(
                f"Component '{self.spec.name}' registered no capabilities during synth"
            )

    # Tagging

    def get_standard_tags(self) -> Dict[str, str]:
        framework = self.context.compliance_framework
        backup_required = framework.is_fedramp or self.context.is_production
        tags = {
            "service-name": self.context.service_name,
            "service-version": self.context.service_version,
            "component-name": self.spec.name,
            "component-type": self.get_type(),
            "environment": self.context.environment,
            "deployed-by": PLATFORM_DEPLOYER,
            "deployment-id": self.context.deployment_id,
            "compliance-framework": framework.value,
            "data-classification": DATA_CLASSIFICATION_BY_FRAMEWORK[framework],
            "backup-required": str(backup_required).lower(),
            "monitoring-level": MONITORING_LEVEL_BY_FRAMEWORK[framework],
        }
        if self.context.region:
            tags["region"] = self.context.region
        if self.context.cost_center:
            tags["cost-center"] = self.context.cost_center
        if self.context.owner:
            tags["resource-owner"] = self.context.owner
        tags.update(self.context.service_labels)
        tags.update(self.spec.labels)
        return tags

    def apply_standard_tags(self, construct: Construct, extra: Optional[Dict[str, str]] = None) -> None:
        tags = self.get_standard_tags()
        if extra:
            tags.update(extra)
        for key, value in tags.items():
            cdk.Tags.of(construct).add(key, str(value))

    # Overrides and bindings

    def apply_overrides(self) -> None:
        """Apply raw CloudFormation property overrides from the manifest."""
        for handle, properties in self.spec.overrides.items():
            construct = self.get_construct(handle)
            if construct is None:
                raise ComponentConfigurationError(
                    f"Override targets unknown construct handle '{handle}' on component "
                    f"'{self.spec.name}'. Known handles: {', '.join(self.get_construct_handles())}",
                    config_key=f"overrides.{handle}"
                )
            resource = construct if isinstance(construct, cdk.CfnResource) else construct.node.default_child
            if not isinstance(resource, cdk.CfnResource):
                raise ComponentConfigurationError(
                    f"Construct '{handle}' on component '{self.spec.name}' has no CloudFormation resource to override",
                    config_key=f"overrides.{handle}"
                )
            for path, value in properties.items():
                resource.add_property_override(path, value)
            self.log_component_event("override_applied", f"Applied {len(properties)} overrides to '{handle}'")

    def get_binding_principal(self) -> Optional[iam.IGrantable]:
        """The principal granted access when this component consumes a binding."""
        return None

    def get_binding_security_group(self) -> Optional[ec2.ISecurityGroup]:
        """The security group this component's network traffic originates from."""
        return None

    def get_security_group(self) -> Optional[ec2.ISecurityGroup]:
        """The security group protecting this component's endpoint, if any."""
        return None

    def apply_binding(self, result) -> None:
        if result.statements:
            principal = self.get_binding_principal()
            if principal is None:
                raise BindingError(
                    f"Component '{self.spec.name}' ({self.get_type()}) cannot receive IAM grants",
                    source=self.spec.name
                )
            for statement in result.statements:
                principal.grant_principal.add_to_principal_policy(statement)
        if result.environment:
            self.binding_environment.update(result.environment)
            self._on_binding_environment(result.environment)

    def _on_binding_environment(self, environment: Dict[str, str]) -> None:
        """Hook for components that expose binding environment variables to their runtime."""

    # Shared resource helpers

    def create_log_group(self,
                         handle: str,
                         log_group_name: Optional[str],
                         retention_days: int = 90,
                         removal_policy: str = "destroy") -> logs.LogGroup:
        """
        Create a log group and register it under ``handle``.

        Raises:
            ResourceCreationError: If log group creation fails
        """
        try:
            if log_group_name:
                ConfigValidator.validate_resource_name(log_group_name, max_length=512)
            log_group = logs.LogGroup(
                self,
                f"{handle}-log-group",
                log_group_name=log_group_name,
                retention=to_retention_days(retention_days),
                removal_policy=to_removal_policy(removal_policy)
            )
        except Exception as e:
            raise ResourceCreationError(
                f"Failed to create log group '{log_group_name or handle}': {str(e)}",
                resource_type="LogGroup"
            )
        self.register_construct(handle, log_group)
        return log_group

    def resolve_vpc(self, vpc_config: Optional[Dict[str, Any]] = None) -> ec2.IVpc:
        """
        Resolve the VPC for network-attached components.

        Uses ``vpc.vpcId`` from the config when present, otherwise the shared
        VPC on the context.
        """
        vpc_id = (vpc_config or {}).get("vpcId")
        if vpc_id:
            return ec2.Vpc.from_lookup(self, "Vpc", vpc_id=vpc_id)
        if self.context.vpc is None:
            raise ComponentConfigurationError(
                f"Component '{self.spec.name}' needs a VPC: set vpc.vpcId or provide a shared VPC",
                config_key="vpc.vpcId"
            )
        return self.context.vpc

    def resolve_subnets(self, vpc: ec2.IVpc, subnet_ids: Optional[List[str]] = None) -> List[ec2.ISubnet]:
        if subnet_ids:
            return [
                ec2.Subnet.from_subnet_id(self, f"Subnet{index}", subnet_id)
                for index, subnet_id in enumerate(subnet_ids)
            ]
        selection = vpc.select_subnets(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS)
        return list(selection.subnets)

    def log_component_event(self, event: str, message: str, **data: Any) -> None:
        log_with_context(
            logger,
            "info",
            f"[{self.get_type()}/{self.spec.name}] {event}: {message}",
            **data
        )
