"""Mixin classes for platform components."""

from .iam import IAMPolicyMixin, transport_conditions
from .security import SecurityGroupMixin
from .monitoring import AlarmMixin, MetricDefinition, alarm_spec_schema
from .encryption import KmsKeyMixin
from .access_logging import AccessLoggingMixin

__all__ = [
    "IAMPolicyMixin",
    "transport_conditions",
    "SecurityGroupMixin",
    "AlarmMixin",
    "MetricDefinition",
    "alarm_spec_schema",
    "KmsKeyMixin",
    "AccessLoggingMixin",
]
