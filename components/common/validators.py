"""Validation utilities for platform components."""

import ipaddress
import re
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator

from .constants import COMPONENT_NAME_MAX_LENGTH, COMPONENT_NAME_PATTERN
from .exceptions import ValidationError

RESOURCE_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9-_./]+$')

ARN_PATTERN = re.compile(
    r'^arn:(?P<partition>aws[a-zA-Z-]*):(?P<service>[a-zA-Z0-9-]+):'
    r'(?P<region>[a-zA-Z0-9-]*):(?P<account>[0-9]*):(?P<resource>[a-zA-Z0-9-/._:*+=,@]+)$'
)


def _is_token(value: str) -> bool:
    # Unresolved CDK tokens render as ${Token[...]}
    return '${' in value


class ConfigValidator:
    """Checks shared by builders, components and creators."""

    @staticmethod
    def validate_port_range(port: int) -> None:
        """
        Raises:
            ValidationError: If the port is not a TCP port number
        """
        if not 1 <= port <= 65535:
            raise ValidationError(
                f"Port {port} is outside 1-65535",
                parameter_name="port",
                provided_value=str(port)
            )

    @staticmethod
    def validate_cidr_block(cidr: str) -> None:
        """
        Accept IPv4 or IPv6 networks; host bits may be set.

        Raises:
            ValidationError: If ``cidr`` is not a network
        """
        try:
            ipaddress.ip_network(cidr, strict=False)
        except ValueError as e:
            raise ValidationError(
                f"Invalid CIDR block '{cidr}': {e}",
                parameter_name="cidr",
                provided_value=cidr
            )

    @staticmethod
    def validate_resource_name(name: str, max_length: int = 63) -> None:
        """
        Validate a physical resource name such as a log group or bucket name.

        Args:
            name: Name to validate
            max_length: Maximum allowed length

        Raises:
            ValidationError: If the name is empty, too long or has unsupported characters
        """
        if isinstance(name, str) and _is_token(name):
            return
        if not name:
            raise ValidationError("Resource name cannot be empty", parameter_name="name", provided_value=name)
        if len(name) > max_length:
            raise ValidationError(
                f"Resource name '{name}' is longer than {max_length} characters",
                parameter_name="name",
                provided_value=name
            )
        if not RESOURCE_NAME_PATTERN.match(name):
            raise ValidationError(
                f"Resource name '{name}' may only contain letters, digits and - _ . /",
                parameter_name="name",
                provided_value=name
            )

    @staticmethod
    def component_name_errors(name: Optional[str]) -> List[str]:
        """Return the problems with a component name, empty when it is valid."""
        if not name:
            return ["Component name is required"]
        errors = []
        if not re.match(COMPONENT_NAME_PATTERN, name):
            errors.append(
                f"Component name '{name}' must start with a letter and contain only "
                f"letters, numbers, hyphens and underscores"
            )
        if len(name) > COMPONENT_NAME_MAX_LENGTH:
            errors.append(
                f"Component name '{name}' exceeds {COMPONENT_NAME_MAX_LENGTH} characters"
            )
        return errors

    @staticmethod
    def schema_errors(instance: Dict[str, Any], schema: Dict[str, Any]) -> List[str]:
        """
        Validate an instance against a JSON Schema.

        Returns:
            Every violation formatted as ``path: message``, ordered by path
        """
        validator = Draft7Validator(schema)
        errors = sorted(validator.iter_errors(instance), key=lambda e: list(map(str, e.absolute_path)))
        return [format_schema_error(error) for error in errors]


def format_schema_error(error) -> str:
    """Render a jsonschema error as ``dotted.path: message``."""
    path = ".".join(str(part) for part in error.absolute_path) or "<root>"
    return f"{path}: {error.message}"


class AWSResourceValidator:
    """ARN checks for references to resources outside the stack."""

    @staticmethod
    def validate_arn(arn: str, service: Optional[str] = None) -> None:
        """
        Validate ARN syntax and, when given, the owning service.

        Raises:
            ValidationError: If the ARN is malformed or belongs to another service
        """
        if _is_token(arn):
            return

        match = ARN_PATTERN.match(arn)
        if not match:
            raise ValidationError(f"Invalid ARN format: {arn}", parameter_name="arn", provided_value=arn)
        if service and match.group("service") != service:
            raise ValidationError(
                f"Expected {service} service ARN, got {match.group('service')}",
                parameter_name="arn",
                provided_value=arn
            )

    @staticmethod
    def arn_errors(arn: Optional[str], field: str, service: Optional[str] = None) -> List[str]:
        """Collect ARN problems instead of raising, for creator validation."""
        if not arn:
            return []
        try:
            AWSResourceValidator.validate_arn(arn, service)
        except ValidationError as e:
            return [f"{field}: {e.message}"]
        return []
