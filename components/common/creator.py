"""
Component creators.

A creator is the factory the registry uses for one component type. It
publishes the type's metadata and JSON Schema, validates manifest entries
and instantiates the component construct.
"""

import copy
import logging
from typing import Any, Dict, List, Type

from constructs import Construct

from .base import BaseComponent
from .config_builder import ConfigBuilder
from .contracts import ComponentContext, ComponentSpec, ValidationResult
from .exceptions import ComponentConfigurationError, SchemaValidationError, ValidationError
from .validators import ConfigValidator

logger = logging.getLogger(__name__)


class ComponentCreator:
    """
    Base factory for a component type.

    Subclasses fill in the metadata attributes, point ``builder_class`` and
    ``component_class`` at their implementation, and add cross-field rules
    in ``_validate_config``.
    """

    component_type: str = ""
    display_name: str = ""
    description: str = ""
    category: str = ""
    aws_service: str = ""
    tags: List[str] = []
    provided_capabilities: List[str] = []
    required_capabilities: List[str] = []

    builder_class: Type[ConfigBuilder] = None
    component_class: Type[BaseComponent] = None

    @property
    def config_schema(self) -> Dict[str, Any]:
        return copy.deepcopy(self.builder_class.CONFIG_SCHEMA)

    def validate_spec(self, spec: ComponentSpec, context: ComponentContext) -> ValidationResult:
        """
        Validate a manifest entry without creating any constructs.

        Schema problems in the component's own ``config`` block are reported
        first; only a schema-valid entry is resolved through all layers and
        checked against the type's cross-field rules.
        """
        errors = list(ConfigValidator.component_name_errors(spec.name))

        if spec.type != self.component_type:
            errors.append(
                f"Component type '{spec.type}' does not match creator type '{self.component_type}'"
            )

        schema_errors = ConfigValidator.schema_errors(spec.config or {}, self.builder_class.CONFIG_SCHEMA)
        errors.extend(f"config.{error}" for error in schema_errors)
        if schema_errors:
            return ValidationResult.from_errors(errors)

        try:
            resolved = self.builder_class(context, spec).build()
        except SchemaValidationError as e:
            errors.extend(e.errors)
            return ValidationResult.from_errors(errors)
        except ComponentConfigurationError as e:
            errors.append(e.message)
            return ValidationResult.from_errors(errors)

        errors.extend(self._validate_config(resolved, context))
        return ValidationResult.from_errors(errors)

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        """Cross-field rules on the resolved configuration."""
        return []

    def create_component(self,
                         scope: Construct,
                         spec: ComponentSpec,
                         context: ComponentContext) -> BaseComponent:
        """
        Validate ``spec`` and instantiate the component construct.

        Raises:
            ValidationError: If ``spec`` is invalid, listing every problem
        """
        result = self.validate_spec(spec, context)
        if not result.valid:
            raise ValidationError(
                f"Invalid {self.component_type} component '{spec.name}': " + "; ".join(result.errors),
                parameter_name=spec.name
            )
        logger.debug(f"Creating {self.component_type} component '{spec.name}'")
        return self.component_class(scope, spec.name, context, spec)

    def describe(self) -> Dict[str, Any]:
        return {
            "type": self.component_type,
            "displayName": self.display_name,
            "description": self.description,
            "category": self.category,
            "awsService": self.aws_service,
            "tags": list(self.tags),
            "providedCapabilities": list(self.provided_capabilities),
            "requiredCapabilities": list(self.required_capabilities),
        }
