"""CloudWatch alarm mixin for platform components."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from aws_cdk import Duration
from aws_cdk import aws_cloudwatch as cloudwatch

from ..constants import DEFAULT_ALARM_EVALUATION_PERIODS, DEFAULT_ALARM_PERIOD_MINUTES

COMPARISON_OPERATORS = {
    "gt": cloudwatch.ComparisonOperator.GREATER_THAN_THRESHOLD,
    "gte": cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
    "lt": cloudwatch.ComparisonOperator.LESS_THAN_THRESHOLD,
    "lte": cloudwatch.ComparisonOperator.LESS_THAN_OR_EQUAL_TO_THRESHOLD,
}

TREAT_MISSING_DATA = {
    "breaching": cloudwatch.TreatMissingData.BREACHING,
    "notBreaching": cloudwatch.TreatMissingData.NOT_BREACHING,
    "ignore": cloudwatch.TreatMissingData.IGNORE,
    "missing": cloudwatch.TreatMissingData.MISSING,
}


@dataclass
class MetricDefinition:
    """Where an alarm's metric lives and how breaches are compared."""

    namespace: str
    metric_name: str
    dimensions: Dict[str, str] = field(default_factory=dict)
    statistic: str = "Average"
    comparison: str = "gte"
    description: str = ""


def alarm_spec_schema(default_threshold_type: str = "number") -> Dict[str, Any]:
    """JSON Schema fragment shared by every ``monitoring.alarms.<name>`` entry."""
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "enabled": {"type": "boolean"},
            "threshold": {"type": default_threshold_type},
            "evaluationPeriods": {"type": "integer", "minimum": 1},
            "periodMinutes": {"type": "integer", "minimum": 1},
            "treatMissingData": {"type": "string", "enum": list(TREAT_MISSING_DATA)},
        },
    }


class AlarmMixin:
    """
    Mixin class creating CloudWatch alarms from configuration.

    Alarm configuration entries look like
    ``{enabled, threshold, evaluationPeriods, periodMinutes, treatMissingData}``.
    """

    def create_metric_alarm(self,
                            alarm_id: str,
                            definition: MetricDefinition,
                            alarm_config: Dict[str, Any],
                            alarm_name: Optional[str] = None) -> cloudwatch.Alarm:
        period = Duration.minutes(alarm_config.get("periodMinutes", DEFAULT_ALARM_PERIOD_MINUTES))
        metric = cloudwatch.Metric(
            namespace=definition.namespace,
            metric_name=definition.metric_name,
            dimensions_map=definition.dimensions,
            statistic=definition.statistic,
            period=period
        )
        return cloudwatch.Alarm(
            self,
            f"{alarm_id}-alarm",
            alarm_name=alarm_name,
            alarm_description=definition.description or f"{definition.metric_name} alarm",
            metric=metric,
            threshold=alarm_config["threshold"],
            evaluation_periods=alarm_config.get("evaluationPeriods", DEFAULT_ALARM_EVALUATION_PERIODS),
            comparison_operator=COMPARISON_OPERATORS[definition.comparison],
            treat_missing_data=TREAT_MISSING_DATA[alarm_config.get("treatMissingData", "notBreaching")]
        )

    def create_configured_alarms(self,
                                 alarms_config: Dict[str, Dict[str, Any]],
                                 definitions: Dict[str, MetricDefinition],
                                 name_prefix: str) -> List[cloudwatch.Alarm]:
        """
        Create one alarm per enabled entry in ``alarms_config``.

        Entries without a matching ``definitions`` key are ignored, as are
        entries that are disabled or lack a threshold.
        """
        alarms = []
        for key, definition in definitions.items():
            alarm_config = alarms_config.get(key) or {}
            if not alarm_config.get("enabled", True) or "threshold" not in alarm_config:
                continue
            alarm = self.create_metric_alarm(
                key,
                definition,
                alarm_config,
                alarm_name=f"{name_prefix}-{key}"
            )
            self.register_construct(f"alarm:{key}", alarm)
            alarms.append(alarm)
        return alarms
