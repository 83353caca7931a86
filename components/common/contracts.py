"""
Data contracts shared by builders, components, creators and the binder.

``ComponentSpec`` and ``BindingDirective`` are parsed from the service
manifest with pydantic. ``ComponentContext`` is the per-service deployment
context handed to every component.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from aws_cdk import aws_ec2 as ec2
from constructs import Construct
from pydantic import BaseModel, ConfigDict, Field

from .constants import PRODUCTION_ENVIRONMENTS, ComplianceFramework
from .exceptions import ValidationError


class BindingDirective(BaseModel):
    """A request from one component to consume another component's capability."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    to: str = Field(..., description="Name of the component providing the capability")
    capability: str = Field(..., description="Capability key, e.g. queue:sqs")
    access: str = Field(default="read", description="read, write, readwrite or admin")
    env_prefix: Optional[str] = Field(
        default=None,
        alias="envPrefix",
        description="Prefix for generated environment variables; defaults to the target name"
    )
    env: Dict[str, str] = Field(
        default_factory=dict,
        description="Renames for generated environment variables"
    )

    def resolved_prefix(self) -> str:
        prefix = self.env_prefix or self.to
        return prefix.upper().replace("-", "_")


class ComponentSpec(BaseModel):
    """One component entry of a service manifest."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Component name, unique within the service")
    type: str = Field(..., description="Registered component type")
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Component overrides, the highest priority configuration layer"
    )
    binds: List[BindingDirective] = Field(default_factory=list)
    labels: Dict[str, str] = Field(default_factory=dict)
    overrides: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Raw CloudFormation property overrides keyed by construct handle"
    )


@dataclass
class ValidationResult:
    """Outcome of a creator's spec validation."""

    valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors))


@dataclass
class ComponentContext:
    """
    Deployment context shared by every component of a service.

    Attributes:
        service_name: Name of the owning service
        environment: Target environment (dev, staging, prod, ...)
        compliance_framework: Framework selecting the stricter default tables
        scope: The stack components are created in
        platform_config: Loader for platform, environment and compliance defaults
        vpc: Shared VPC for network-attached components
    """

    service_name: str
    environment: str
    compliance_framework: ComplianceFramework = ComplianceFramework.COMMERCIAL
    scope: Optional[Construct] = None
    region: Optional[str] = None
    account_id: Optional[str] = None
    owner: Optional[str] = None
    service_version: str = "1.0.0"
    cost_center: Optional[str] = None
    service_labels: Dict[str, str] = field(default_factory=dict)
    platform_config: Any = None
    vpc: Optional[ec2.IVpc] = None
    deployment_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self) -> None:
        if not self.service_name:
            raise ValidationError("Service name is required", parameter_name="service_name")
        if not self.environment:
            raise ValidationError("Environment is required", parameter_name="environment")
        self.compliance_framework = ComplianceFramework.parse(self.compliance_framework)
        if self.platform_config is None:
            # Deferred: helper.config imports this package's exceptions
            from helper.config import PlatformConfig
            self.platform_config = PlatformConfig()

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in PRODUCTION_ENVIRONMENTS

    @property
    def is_fedramp(self) -> bool:
        return self.compliance_framework.is_fedramp
