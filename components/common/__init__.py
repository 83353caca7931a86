"""
Shared building blocks for platform components.

This package provides:
- Layered configuration resolution through ConfigBuilder
- The BaseComponent construct, creators and the component registry
- Capability binding between components
- Reusable mixins, validators and exceptions
"""

# Import base classes
from .base import BaseComponent
from .config_builder import BuildSummary, ConfigBuilder, ConfigConflict, ConfigLayer
from .creator import ComponentCreator
from .registry import ComponentRegistry, default_registry

# Import contracts
from .contracts import (
    BindingDirective,
    ComponentContext,
    ComponentSpec,
    ValidationResult
)

# Import binding
from .binding import BindingResolver, BindingResult

# Import mixins
from .mixins import (
    AccessLoggingMixin,
    AlarmMixin,
    IAMPolicyMixin,
    KmsKeyMixin,
    SecurityGroupMixin
)

# Import exceptions
from .exceptions import (
    PlatformError,
    ComponentConfigurationError,
    SchemaValidationError,
    ResourceCreationError,
    ValidationError,
    UnknownComponentTypeError,
    ComponentNotSynthesizedError,
    BindingError,
    ManifestError
)

# Import validators
from .validators import (
    ConfigValidator,
    AWSResourceValidator
)

# Import constants
from .constants import ComplianceFramework

__all__ = [
    # Base classes
    "BaseComponent",
    "ConfigBuilder",
    "ConfigLayer",
    "ConfigConflict",
    "BuildSummary",
    "ComponentCreator",
    "ComponentRegistry",
    "default_registry",

    # Contracts
    "BindingDirective",
    "ComponentContext",
    "ComponentSpec",
    "ValidationResult",

    # Binding
    "BindingResolver",
    "BindingResult",

    # Mixins
    "AccessLoggingMixin",
    "AlarmMixin",
    "IAMPolicyMixin",
    "KmsKeyMixin",
    "SecurityGroupMixin",

    # Exceptions
    "PlatformError",
    "ComponentConfigurationError",
    "SchemaValidationError",
    "ResourceCreationError",
    "ValidationError",
    "UnknownComponentTypeError",
    "ComponentNotSynthesizedError",
    "BindingError",
    "ManifestError",

    # Validators
    "ConfigValidator",
    "AWSResourceValidator",

    # Constants
    "ComplianceFramework",
]
