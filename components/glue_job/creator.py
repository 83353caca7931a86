"""Creator for the glue-job component type."""

from typing import Any, Dict, List

from components.common.capabilities import JOB_GLUE
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, GlueJobConfigBuilder
from .component import GlueJobComponent

# Worker types that need Glue 3.0 or newer
MODERN_WORKER_TYPES = {"G.4X", "G.8X", "Z.2X"}


class GlueJobCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "Glue Job"
    description = "Glue ETL, streaming or Python shell job with encryption, logging and alarms"
    category = "analytics"
    aws_service = "Glue"
    tags = ["etl", "glue", "batch"]
    provided_capabilities = [JOB_GLUE]

    builder_class = GlueJobConfigBuilder
    component_class = GlueJobComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        encryption = config["security"]["encryption"]
        if context.is_fedramp and not encryption.get("enabled"):
            errors.append(
                f"security.encryption.enabled must be true for {context.compliance_framework.value}"
            )

        worker = config.get("workerConfiguration")
        if config["jobType"] == "gluestreaming" and worker and worker["workerType"] == "Standard":
            errors.append("Streaming jobs cannot use the Standard worker type")
        if worker and worker["workerType"] in MODERN_WORKER_TYPES and config["glueVersion"] == "3.0":
            errors.append(f"workerType {worker['workerType']} requires glueVersion 4.0 or later")

        overlap = sorted(set(config["defaultArguments"]) & set(config["nonOverridableArguments"]))
        if overlap:
            errors.append(
                f"Arguments cannot be both default and non-overridable: {', '.join(overlap)}"
            )

        errors.extend(AWSResourceValidator.arn_errors(config.get("roleArn"), "roleArn", "iam"))
        errors.extend(AWSResourceValidator.arn_errors(
            encryption.get("kmsKeyArn"), "security.encryption.kmsKeyArn", "kms"
        ))
        return errors
