"""
Service stack.

Turns a service manifest into one CloudFormation stack: every component is
created through the registry, synthesized, overridden and bound to the
components it consumes.
"""

import logging
import re
from typing import Dict, List, Optional

import aws_cdk as cdk
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from components.common.base import BaseComponent
from components.common.binding import BindingResolver, BindingResult
from components.common.exceptions import ComponentConfigurationError
from components.common.manifest import ServiceManifest
from components.common.registry import ComponentRegistry, default_registry

logger = logging.getLogger(__name__)

# Component types that are placed inside a VPC
NETWORK_COMPONENT_TYPES = (
    "application-load-balancer",
    "backstage-portal",
    "efs-filesystem",
    "elasticache-redis",
)

DEFAULT_MAX_AZS = 2
DEFAULT_CIDR_MASK = 24


class ServiceStack(cdk.Stack):
    """
    Stack holding every component of one service in one environment.

    The shared VPC is, in order of preference, the ``vpc`` argument, the VPC
    named by ``network.vpcId`` in the platform configuration, or a new VPC
    created when at least one network-attached component needs it.
    """

    def __init__(self,
                 scope: Construct,
                 construct_id: str,
                 manifest: ServiceManifest,
                 environment: str,
                 registry: Optional[ComponentRegistry] = None,
                 platform_config=None,
                 vpc: Optional[ec2.IVpc] = None,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.manifest = manifest
        self.environment_name = environment
        self.registry = registry or default_registry()

        self.context = manifest.to_context(
            environment,
            scope=self,
            region=self.region if not cdk.Token.is_unresolved(self.region) else None,
            account_id=self.account if not cdk.Token.is_unresolved(self.account) else None,
            platform_config=platform_config
        )
        self.context.vpc = vpc or self._resolve_shared_vpc()

        self.components: Dict[str, BaseComponent] = {}
        self.bindings: List[BindingResult] = []

        self._create_components()
        self._synth_components()
        self.bindings = BindingResolver(self.components, manifest.compliance_framework).bind_all()
        self._apply_stack_tags()
        self._create_outputs()

        logger.info(
            f"Service stack {construct_id} created {len(self.components)} components "
            f"and {len(self.bindings)} bindings for {environment}"
        )

    def _needs_vpc(self) -> bool:
        return any(spec.type in NETWORK_COMPONENT_TYPES for spec in self.manifest.components)

    def _resolve_shared_vpc(self) -> Optional[ec2.IVpc]:
        if not self._needs_vpc():
            return None
        network = self.context.platform_config.get("network") or {}
        if network.get("vpcId"):
            logger.info(f"Looking up shared VPC {network['vpcId']}")
            return ec2.Vpc.from_lookup(self, "SharedVpc", vpc_id=network["vpcId"])

        cidr_mask = network.get("cidrMask", DEFAULT_CIDR_MASK)
        vpc = ec2.Vpc(
            self,
            "Vpc",
            max_azs=network.get("maxAzs", DEFAULT_MAX_AZS),
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    subnet_type=ec2.SubnetType.PUBLIC,
                    name="Public",
                    cidr_mask=cidr_mask,
                ),
                ec2.SubnetConfiguration(
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    name="Private",
                    cidr_mask=cidr_mask,
                ),
            ],
        )
        vpc.add_flow_log("FlowLog")
        return vpc

    def _create_components(self) -> None:
        for spec in self.manifest.components:
            self.components[spec.name] = self.registry.create_component(self, spec, self.context)

    def _synth_components(self) -> None:
        for component in self.components.values():
            component.synth()
            component.apply_overrides()

    def _apply_stack_tags(self) -> None:
        tags = {
            "service-name": self.manifest.service,
            "environment": self.environment_name,
            "compliance-framework": self.manifest.compliance_framework.value,
        }
        if self.manifest.owner:
            tags["resource-owner"] = self.manifest.owner
        tags.update(self.manifest.labels)
        for key, value in tags.items():
            cdk.Tags.of(self).add(key, value)

    def _create_outputs(self) -> None:
        for name, component in self.components.items():
            for capability, data in component.get_capabilities().items():
                for key, value in data.items():
                    if not isinstance(value, str):
                        continue
                    output_id = _output_id(name, capability, key)
                    if self.node.try_find_child(output_id) is not None:
                        raise ComponentConfigurationError(
                            f"Duplicate stack output '{output_id}'",
                            config_key=f"{name}.{capability}.{key}"
                        )
                    cdk.CfnOutput(
                        self,
                        output_id,
                        value=value,
                        description=f"{capability} {key} of {name}"
                    )


def _output_id(component_name: str, capability: str, key: str) -> str:
    parts = re.split(r"[^A-Za-z0-9]+", f"{component_name} {capability} {key}")
    return "".join(part[:1].upper() + part[1:] for part in parts if part)
