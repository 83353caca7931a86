"""
Service manifest loading.

A manifest declares one service: its owner, compliance framework, per
environment defaults and the components it is made of. Values may refer to
the selected environment:

- ``${env:key}`` is replaced with ``environments.<env>.defaults.key``
- ``${envIs:name}`` becomes ``true`` when the selected environment is ``name``
- ``{$env: {dev: 1, prod: 3, default: 2}}`` picks the entry for the environment
- ``{dev: 1, prod: 3}`` does the same when every key is a declared environment
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from aws_cdk import aws_ec2 as ec2
from constructs import Construct
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from helper.config import load_yaml_file
from .constants import ComplianceFramework
from .contracts import ComponentContext, ComponentSpec
from .exceptions import ManifestError, ValidationError

logger = logging.getLogger(__name__)

ENV_REFERENCE = re.compile(r"\$\{env:([A-Za-z0-9_.-]+)\}")
ENV_IS_REFERENCE = re.compile(r"\$\{envIs:([A-Za-z0-9_-]+)\}")
ENV_SELECTOR_KEY = "$env"
DEFAULT_SELECTOR_KEY = "default"


class EnvironmentConfig(BaseModel):
    """Values shared by every component when deploying to one environment."""

    model_config = ConfigDict(extra="forbid")

    defaults: Dict[str, Any] = Field(default_factory=dict)


class ServiceManifest(BaseModel):
    """A parsed and hydrated service manifest."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    service: str = Field(..., min_length=1, description="Service name")
    owner: Optional[str] = Field(default=None, description="Owning team or person")
    version: str = Field(default="1.0.0", description="Service version")
    compliance_framework: ComplianceFramework = Field(
        default=ComplianceFramework.COMMERCIAL,
        alias="complianceFramework"
    )
    cost_center: Optional[str] = Field(default=None, alias="costCenter")
    labels: Dict[str, str] = Field(default_factory=dict)
    environments: Dict[str, EnvironmentConfig] = Field(default_factory=dict)
    components: List[ComponentSpec] = Field(default_factory=list)

    @field_validator("compliance_framework", mode="before")
    @classmethod
    def _parse_framework(cls, value: Any) -> ComplianceFramework:
        try:
            return ComplianceFramework.parse(value)
        except ValidationError as e:
            raise ValueError(e.message)

    @model_validator(mode="after")
    def _check_components(self) -> "ServiceManifest":
        names = [component.name for component in self.components]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate component names: {', '.join(duplicates)}")

        known = set(names)
        for component in self.components:
            for directive in component.binds:
                if directive.to == component.name:
                    raise ValueError(f"Component '{component.name}' cannot bind to itself")
                if directive.to not in known:
                    raise ValueError(
                        f"Component '{component.name}' binds to unknown component '{directive.to}'"
                    )
        return self

    def get_component(self, name: str) -> Optional[ComponentSpec]:
        for component in self.components:
            if component.name == name:
                return component
        return None

    def to_context(self,
                   environment: str,
                   scope: Optional[Construct] = None,
                   region: Optional[str] = None,
                   account_id: Optional[str] = None,
                   platform_config: Any = None,
                   vpc: Optional[ec2.IVpc] = None) -> ComponentContext:
        """Build the deployment context components of this service are created with."""
        return ComponentContext(
            service_name=self.service,
            environment=environment,
            compliance_framework=self.compliance_framework,
            scope=scope,
            region=region,
            account_id=account_id,
            owner=self.owner,
            service_version=self.version,
            cost_center=self.cost_center,
            service_labels=dict(self.labels),
            platform_config=platform_config,
            vpc=vpc
        )


class ManifestHydrator:
    """Resolves environment references in a raw manifest for one environment."""

    def __init__(self, environment: str, defaults: Dict[str, Any], environment_names: List[str]) -> None:
        self.environment = environment
        self.defaults = defaults
        self.environment_names = set(environment_names)

    def hydrate(self, value: Any, path: str = "") -> Any:
        if isinstance(value, dict):
            if self._is_selector(value):
                return self.hydrate(self._select(value, path), path)
            return {key: self.hydrate(item, f"{path}.{key}" if path else str(key)) for key, item in value.items()}
        if isinstance(value, list):
            return [self.hydrate(item, f"{path}.{index}") for index, item in enumerate(value)]
        if isinstance(value, str):
            return self._hydrate_string(value, path)
        return value

    def _is_selector(self, value: Dict[str, Any]) -> bool:
        if set(value) == {ENV_SELECTOR_KEY}:
            return True
        keys = set(value) - {DEFAULT_SELECTOR_KEY}
        return bool(self.environment_names) and bool(keys) and keys <= self.environment_names

    def _select(self, value: Dict[str, Any], path: str) -> Any:
        options = value[ENV_SELECTOR_KEY] if set(value) == {ENV_SELECTOR_KEY} else value
        if not isinstance(options, dict):
            raise ManifestError(f"{path}: {ENV_SELECTOR_KEY} must map environment names to values")
        if self.environment in options:
            return options[self.environment]
        if DEFAULT_SELECTOR_KEY in options:
            return options[DEFAULT_SELECTOR_KEY]
        raise ManifestError(
            f"{path}: no value for environment '{self.environment}' and no '{DEFAULT_SELECTOR_KEY}' entry"
        )

    def _hydrate_string(self, value: str, path: str) -> Any:
        # A reference that is the whole string keeps the referenced value's type
        whole = ENV_REFERENCE.fullmatch(value)
        if whole:
            return self._lookup(whole.group(1), path)
        whole = ENV_IS_REFERENCE.fullmatch(value)
        if whole:
            return whole.group(1) == self.environment

        value = ENV_REFERENCE.sub(lambda match: str(self._lookup(match.group(1), path)), value)
        return ENV_IS_REFERENCE.sub(
            lambda match: str(match.group(1) == self.environment).lower(), value
        )

    def _lookup(self, key: str, path: str) -> Any:
        current: Any = self.defaults
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                raise ManifestError(
                    f"{path}: ${{env:{key}}} is not defined in environments.{self.environment}.defaults"
                )
            current = current[part]
        return current


def _format_pydantic_errors(error: PydanticValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        messages.append(f"{location}: {item['msg']}")
    return "; ".join(messages)


def parse_manifest(raw: Dict[str, Any], environment: str, path: Optional[str] = None) -> ServiceManifest:
    """
    Hydrate and validate an already-loaded manifest mapping.

    Raises:
        ManifestError: If hydration fails or the manifest is invalid
    """
    environments = raw.get("environments") or {}
    if not isinstance(environments, dict):
        raise ManifestError("environments must be a mapping", path=path)
    env_block = environments.get(environment) or {}
    defaults = {}
    if isinstance(env_block, dict):
        defaults = env_block.get("defaults") or {}

    hydrator = ManifestHydrator(environment, defaults, list(environments))
    hydrated = {
        key: value if key == "environments" else hydrator.hydrate(value, key)
        for key, value in raw.items()
    }

    try:
        manifest = ServiceManifest.model_validate(hydrated)
    except PydanticValidationError as e:
        raise ManifestError(f"Invalid service manifest: {_format_pydantic_errors(e)}", path=path)

    logger.info(
        f"Loaded manifest for service '{manifest.service}' ({environment}, "
        f"{manifest.compliance_framework.value}) with {len(manifest.components)} components"
    )
    return manifest


def load_manifest(path: Union[str, Path], environment: str) -> ServiceManifest:
    """
    Load a service manifest from YAML for ``environment``.

    Raises:
        ManifestError: If the file cannot be read or the manifest is invalid
    """
    path = Path(path)
    try:
        return parse_manifest(load_yaml_file(path), environment, path=str(path))
    except ManifestError as e:
        if e.path is None:
            e.path = str(path)
        raise
