"""Creator for the backstage-portal component type."""

from typing import Any, Dict, List

from components.common.capabilities import PORTAL_BACKSTAGE
from components.common.constants import ComplianceFramework
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, BackstagePortalConfigBuilder
from .component import BackstagePortalComponent

MIN_PRODUCTION_BACKUP_DAYS = 7


class BackstagePortalCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "Backstage Portal"
    description = "Backstage developer portal on ECS Fargate with PostgreSQL, ECR and a load balancer"
    category = "developer-tools"
    aws_service = "ECS"
    tags = ["portal", "backstage", "ecs", "fargate"]
    provided_capabilities = [PORTAL_BACKSTAGE]

    builder_class = BackstagePortalConfigBuilder
    component_class = BackstagePortalComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        database = config["database"]
        encryption = config["encryption"]
        if context.is_fedramp:
            framework = context.compliance_framework.value
            if not encryption["enabled"]:
                errors.append(f"encryption.enabled must be true for {framework}")
            if not database["multiAz"]:
                errors.append(f"database.multiAz must be true for {framework}")
            if not config["loadBalancer"]["https"]:
                errors.append(f"loadBalancer.certificateArn is required for {framework}")
        if (context.compliance_framework is ComplianceFramework.FEDRAMP_HIGH
                and not (encryption.get("kmsKeyArn") or encryption["customerManagedKey"]["create"])):
            errors.append("fedramp-high requires a customer managed key for encryption")

        if context.is_production or context.is_fedramp:
            if not database["deletionProtection"]:
                errors.append("database.deletionProtection must be enabled in production or FedRAMP deployments")
            if database["backupRetentionDays"] < MIN_PRODUCTION_BACKUP_DAYS:
                errors.append(
                    f"database.backupRetentionDays must be at least {MIN_PRODUCTION_BACKUP_DAYS} "
                    f"in production or FedRAMP deployments"
                )

        errors.extend(AWSResourceValidator.arn_errors(encryption.get("kmsKeyArn"), "encryption.kmsKeyArn", "kms"))
        errors.extend(AWSResourceValidator.arn_errors(
            config["loadBalancer"].get("certificateArn"), "loadBalancer.certificateArn", "acm"
        ))
        return errors
