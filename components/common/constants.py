"""
Constants used across platform components.
"""

from enum import Enum
from typing import Union

from aws_cdk import aws_logs as logs

from .exceptions import ValidationError


class ComplianceFramework(str, Enum):
    """Compliance frameworks a service can be deployed under."""

    COMMERCIAL = "commercial"
    FEDRAMP_MODERATE = "fedramp-moderate"
    FEDRAMP_HIGH = "fedramp-high"

    @classmethod
    def parse(cls, value: Union[str, "ComplianceFramework", None]) -> "ComplianceFramework":
        if value is None or value == "":
            return cls.COMMERCIAL
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported compliance framework '{value}'. "
                f"Expected one of: {', '.join(f.value for f in cls)}",
                parameter_name="complianceFramework",
                provided_value=str(value)
            )

    @property
    def is_fedramp(self) -> bool:
        return self is not ComplianceFramework.COMMERCIAL


DEFAULT_COMPLIANCE_FRAMEWORK = ComplianceFramework.COMMERCIAL

# Environments the platform configuration ships tables for
KNOWN_ENVIRONMENTS = ("dev", "staging", "prod")
PRODUCTION_ENVIRONMENTS = ("prod", "production")

# Layer names, lowest to highest priority
LAYER_HARDCODED_FALLBACKS = "hardcoded-fallbacks"
LAYER_PLATFORM_DEFAULTS = "platform-defaults"
LAYER_ENVIRONMENT_DEFAULTS = "environment-defaults"
LAYER_COMPLIANCE_DEFAULTS = "compliance-framework-defaults"
LAYER_COMPONENT_OVERRIDES = "component-overrides"

# Component naming
COMPONENT_NAME_PATTERN = r"^[a-zA-Z][a-zA-Z0-9-_]*$"
COMPONENT_NAME_MAX_LENGTH = 64

# Tagging
PLATFORM_DEPLOYER = "platform-components"
DATA_CLASSIFICATION_BY_FRAMEWORK = {
    ComplianceFramework.COMMERCIAL: "internal",
    ComplianceFramework.FEDRAMP_MODERATE: "confidential",
    ComplianceFramework.FEDRAMP_HIGH: "controlled",
}
MONITORING_LEVEL_BY_FRAMEWORK = {
    ComplianceFramework.COMMERCIAL: "basic",
    ComplianceFramework.FEDRAMP_MODERATE: "enhanced",
    ComplianceFramework.FEDRAMP_HIGH: "comprehensive",
}

# Binding access levels
ACCESS_LEVELS = ("read", "write", "readwrite", "admin")

# Logging
RETENTION_DAYS_MAPPING = {
    1: logs.RetentionDays.ONE_DAY,
    3: logs.RetentionDays.THREE_DAYS,
    5: logs.RetentionDays.FIVE_DAYS,
    7: logs.RetentionDays.ONE_WEEK,
    14: logs.RetentionDays.TWO_WEEKS,
    30: logs.RetentionDays.ONE_MONTH,
    60: logs.RetentionDays.TWO_MONTHS,
    90: logs.RetentionDays.THREE_MONTHS,
    120: logs.RetentionDays.FOUR_MONTHS,
    150: logs.RetentionDays.FIVE_MONTHS,
    180: logs.RetentionDays.SIX_MONTHS,
    365: logs.RetentionDays.ONE_YEAR,
    400: logs.RetentionDays.THIRTEEN_MONTHS,
    545: logs.RetentionDays.EIGHTEEN_MONTHS,
    731: logs.RetentionDays.TWO_YEARS,
    1827: logs.RetentionDays.FIVE_YEARS,
    2557: logs.RetentionDays.SEVEN_YEARS,
    3653: logs.RetentionDays.TEN_YEARS,
}

# Alarm defaults
DEFAULT_ALARM_EVALUATION_PERIODS = 2
DEFAULT_ALARM_PERIOD_MINUTES = 5
