"""
Five-layer configuration builder.

Every component resolves its configuration by merging, lowest to highest
priority:

1. hardcoded fallbacks compiled into the builder
2. platform defaults (``config/platform.yml`` ``defaults``)
3. environment defaults (``config/platform.yml`` ``environments.<env>``)
4. compliance framework defaults (``config/<framework>.yml``)
5. the component's own ``config`` block from the service manifest

The merged result is validated against the builder's JSON Schema and then
handed to ``normalise`` to fill derived values.
"""

import copy
import logging
import re
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    LAYER_COMPLIANCE_DEFAULTS,
    LAYER_COMPONENT_OVERRIDES,
    LAYER_ENVIRONMENT_DEFAULTS,
    LAYER_HARDCODED_FALLBACKS,
    LAYER_PLATFORM_DEFAULTS,
)
from .contracts import ComponentContext, ComponentSpec
from .exceptions import SchemaValidationError
from .merge import flatten_keys, merge_layers, prune_none
from .validators import ConfigValidator

logger = logging.getLogger(__name__)


@dataclass
class ConfigLayer:
    """One named, prioritised slice of partial configuration."""

    name: str
    priority: int
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConfigConflict:
    """A leaf key set by more than one layer."""

    key: str
    contributions: List[Tuple[str, Any]]
    winner: str


@dataclass
class BuildSummary:
    """Explains how a resolved configuration was assembled."""

    component_type: str
    component_name: str
    environment: str
    compliance_framework: str
    layers: List[Tuple[str, int, int]]
    conflicts: List[ConfigConflict]
    provenance: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "componentType": self.component_type,
            "componentName": self.component_name,
            "environment": self.environment,
            "complianceFramework": self.compliance_framework,
            "layers": [
                {"name": name, "priority": priority, "keys": key_count}
                for name, priority, key_count in self.layers
            ],
            "conflicts": [
                {
                    "key": conflict.key,
                    "winner": conflict.winner,
                    "values": {layer: value for layer, value in conflict.contributions},
                }
                for conflict in self.conflicts
            ],
        }


class ConfigBuilder(ABC):
    """
    Base class for per-component configuration builders.

    Subclasses set ``COMPONENT_TYPE`` and ``CONFIG_SCHEMA`` and implement
    ``get_hardcoded_fallbacks``. They may override ``normalise`` to derive
    values that depend on the merged configuration.
    """

    COMPONENT_TYPE: str = ""
    CONFIG_SCHEMA: Dict[str, Any] = {"type": "object"}

    def __init__(self, context: ComponentContext, spec: ComponentSpec) -> None:
        self.context = context
        self.spec = spec
        self._resolved: Optional[Dict[str, Any]] = None
        self._layers: Optional[List[ConfigLayer]] = None

    @abstractmethod
    def get_hardcoded_fallbacks(self) -> Dict[str, Any]:
        """Layer 1: safe values that apply when nothing else is configured."""

    def get_platform_defaults(self) -> Dict[str, Any]:
        return self.context.platform_config.get_component_defaults(self.COMPONENT_TYPE)

    def get_environment_defaults(self) -> Dict[str, Any]:
        return self.context.platform_config.get_environment_defaults(
            self.context.environment, self.COMPONENT_TYPE
        )

    def get_compliance_framework_defaults(self) -> Dict[str, Any]:
        return self.context.platform_config.get_compliance_defaults(
            self.context.compliance_framework, self.COMPONENT_TYPE
        )

    def get_component_overrides(self) -> Dict[str, Any]:
        return copy.deepcopy(self.spec.config or {})

    def get_layers(self) -> List[ConfigLayer]:
        if self._layers is None:
            self._layers = [
                ConfigLayer(LAYER_HARDCODED_FALLBACKS, 1, self.get_hardcoded_fallbacks()),
                ConfigLayer(LAYER_PLATFORM_DEFAULTS, 2, self.get_platform_defaults()),
                ConfigLayer(LAYER_ENVIRONMENT_DEFAULTS, 3, self.get_environment_defaults()),
                ConfigLayer(LAYER_COMPLIANCE_DEFAULTS, 4, self.get_compliance_framework_defaults()),
                ConfigLayer(LAYER_COMPONENT_OVERRIDES, 5, self.get_component_overrides()),
            ]
        return self._layers

    def merge(self) -> Dict[str, Any]:
        """Merge all layers without validating or normalising."""
        layers = self.get_layers()
        for layer in layers:
            logger.debug(
                f"{self.COMPONENT_TYPE}/{self.spec.name}: layer {layer.priority} "
                f"'{layer.name}' contributes {len(flatten_keys(layer.values))} keys"
            )
        return prune_none(merge_layers(layer.values for layer in layers))

    def validate(self, config: Dict[str, Any]) -> None:
        """
        Validate a merged configuration against ``CONFIG_SCHEMA``.

        Raises:
            SchemaValidationError: If the configuration violates the schema
        """
        errors = ConfigValidator.schema_errors(config, self.CONFIG_SCHEMA)
        if errors:
            raise SchemaValidationError(
                f"Configuration for {self.COMPONENT_TYPE} component '{self.spec.name}' is invalid",
                errors=errors,
                component_type=self.COMPONENT_TYPE
            )

    def normalise(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Fill derived values. The default implementation returns ``config`` unchanged."""
        return config

    def build(self) -> Dict[str, Any]:
        """
        Resolve the final configuration.

        Returns:
            The merged, schema-valid, normalised configuration

        Raises:
            SchemaValidationError: If the merged layers violate the schema
            ComponentConfigurationError: If normalisation finds an invalid combination
        """
        if self._resolved is None:
            merged = self.merge()
            self.validate(merged)
            self._resolved = self.normalise(merged)
            logger.debug(
                f"Resolved {self.COMPONENT_TYPE} configuration for '{self.spec.name}' "
                f"({self.context.environment}, {self.context.compliance_framework.value})"
            )
        return copy.deepcopy(self._resolved)

    def get_build_summary(self) -> BuildSummary:
        """Report which layer supplied each key and where layers disagreed."""
        layers = self.get_layers()
        contributions: Dict[str, List[Tuple[str, Any]]] = defaultdict(list)
        for layer in layers:
            for key, value in flatten_keys(prune_none(layer.values)).items():
                contributions[key].append((layer.name, value))

        merged_keys = flatten_keys(self.merge())
        provenance = {
            key: contributions[key][-1][0] for key in merged_keys if key in contributions
        }

        conflicts = [
            ConfigConflict(key=key, contributions=values, winner=values[-1][0])
            for key, values in sorted(contributions.items())
            if len(values) > 1
        ]

        return BuildSummary(
            component_type=self.COMPONENT_TYPE,
            component_name=self.spec.name,
            environment=self.context.environment,
            compliance_framework=self.context.compliance_framework.value,
            layers=[(layer.name, layer.priority, len(flatten_keys(layer.values))) for layer in layers],
            conflicts=conflicts,
            provenance=provenance,
        )

    def explain(self, key: str) -> Optional[str]:
        """Return the name of the layer that supplied ``key`` in the merged configuration."""
        return self.get_build_summary().provenance.get(key)

    def default_resource_name(self, suffix: str = "", max_length: int = 63) -> str:
        """Build ``<service>-<component>[-suffix]``, lowercased and trimmed to ``max_length``."""
        parts = [self.context.service_name, self.spec.name]
        if suffix:
            parts.append(suffix)
        name = re.sub(r"[^a-z0-9-]", "-", "-".join(parts).lower())
        name = re.sub(r"-+", "-", name).strip("-")
        return name[:max_length].rstrip("-")
