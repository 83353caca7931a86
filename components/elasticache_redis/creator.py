"""Creator for the elasticache-redis component type."""

from typing import Any, Dict, List

from components.common.capabilities import CACHE_REDIS
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, ElastiCacheRedisConfigBuilder
from .component import ElastiCacheRedisComponent


class ElastiCacheRedisCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "ElastiCache Redis"
    description = "Managed Redis replication group with encryption, backups and alarms"
    category = "cache"
    aws_service = "ElastiCache"
    tags = ["cache", "redis", "in-memory"]
    provided_capabilities = [CACHE_REDIS]

    builder_class = ElastiCacheRedisConfigBuilder
    component_class = ElastiCacheRedisComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        encryption = config["encryption"]
        if context.is_fedramp:
            if not encryption.get("atRest"):
                errors.append(
                    f"encryption.atRest must be enabled for {context.compliance_framework.value}"
                )
            if not encryption.get("inTransit"):
                errors.append(
                    f"encryption.inTransit must be enabled for {context.compliance_framework.value}"
                )
        if context.is_production and not config["backup"].get("enabled"):
            errors.append("backup.enabled must be true in production environments")

        errors.extend(AWSResourceValidator.arn_errors(
            encryption["authToken"].get("secretArn"), "encryption.authToken.secretArn", "secretsmanager"
        ))
        errors.extend(AWSResourceValidator.arn_errors(
            config["maintenance"].get("notificationTopicArn"), "maintenance.notificationTopicArn", "sns"
        ))
        return errors
