"""Custom exceptions for platform components."""

from typing import List, Optional


class PlatformError(Exception):
    """
    Base class for all errors raised by the component platform.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ComponentConfigurationError(PlatformError):
    """
    Exception raised when a resolved component configuration is invalid.

    Attributes:
        message: Human-readable error description
        config_key: The configuration key that caused the error
    """

    def __init__(self, message: str, config_key: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            config_key: The configuration key that caused the error
        """
        self.config_key = config_key
        super().__init__(message)


class SchemaValidationError(PlatformError):
    """
    Exception raised when a merged configuration violates its JSON Schema.

    Attributes:
        message: Human-readable error description
        errors: Every schema violation, formatted as ``path: message``
        component_type: The component type whose schema was violated
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        component_type: Optional[str] = None
    ) -> None:
        self.errors = list(errors or [])
        self.component_type = component_type
        super().__init__(message)

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        return self.message + "\n  - " + "\n  - ".join(self.errors)


class ResourceCreationError(PlatformError):
    """
    Exception raised when AWS resource creation fails.

    Attributes:
        message: Human-readable error description
        resource_type: The AWS resource type that failed to create
    """

    def __init__(self, message: str, resource_type: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            resource_type: The AWS resource type that failed to create
        """
        self.resource_type = resource_type
        super().__init__(message)


class ValidationError(PlatformError):
    """
    Exception raised when parameter validation fails.

    Attributes:
        message: Human-readable error description
        parameter_name: The parameter that failed validation
        provided_value: The value that was provided
    """

    def __init__(
        self,
        message: str,
        parameter_name: Optional[str] = None,
        provided_value: Optional[str] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            parameter_name: The parameter that failed validation
            provided_value: The value that was provided
        """
        self.parameter_name = parameter_name
        self.provided_value = provided_value
        super().__init__(message)


class UnknownComponentTypeError(PlatformError):
    """Exception raised when no creator is registered for a component type."""

    def __init__(self, component_type: str, known_types: Optional[List[str]] = None) -> None:
        self.component_type = component_type
        self.known_types = sorted(known_types or [])
        message = f"Unknown component type '{component_type}'"
        if self.known_types:
            message += f". Registered types: {', '.join(self.known_types)}"
        super().__init__(message)


class ComponentNotSynthesizedError(PlatformError):
    """Exception raised when synthesized state is read before synth() ran."""

    def __init__(self, component_name: str) -> None:
        self.component_name = component_name
        super().__init__(
            f"Component '{component_name}' has not been synthesized. Call synth() first."
        )


class BindingError(PlatformError):
    """
    Exception raised when a binding between two components cannot be resolved.

    Attributes:
        message: Human-readable error description
        source: Name of the component consuming the capability
        target: Name of the component providing the capability
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        target: Optional[str] = None
    ) -> None:
        self.source = source
        self.target = target
        super().__init__(message)


class ManifestError(PlatformError):
    """
    Exception raised when a service manifest or platform file cannot be loaded.

    Attributes:
        message: Human-readable error description
        path: The file path that failed to load
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message)
