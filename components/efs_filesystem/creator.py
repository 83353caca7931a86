"""Creator for the efs-filesystem component type."""

from typing import Any, Dict, List

from components.common.capabilities import STORAGE_EFS
from components.common.constants import ComplianceFramework
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, EfsFilesystemConfigBuilder
from .component import EfsFilesystemComponent

OPEN_CIDRS = {"0.0.0.0/0", "::/0"}


class EfsFilesystemCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "EFS File System"
    description = "Encrypted EFS file system with NFS security group, lifecycle and backups"
    category = "storage"
    aws_service = "EFS"
    tags = ["storage", "efs", "nfs"]
    provided_capabilities = [STORAGE_EFS]

    builder_class = EfsFilesystemConfigBuilder
    component_class = EfsFilesystemComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        encryption = config["encryption"]
        if context.is_fedramp:
            framework = context.compliance_framework.value
            if not encryption["enabled"]:
                errors.append(f"encryption.enabled must be true for {framework}")
            if not encryption["encryptInTransit"]:
                errors.append(f"encryption.encryptInTransit must be true for {framework}")
            if not config["backups"]["enabled"]:
                errors.append(f"backups.enabled must be true for {framework}")
        if (context.compliance_framework is ComplianceFramework.FEDRAMP_HIGH
                and encryption["enabled"]
                and not (encryption.get("kmsKeyArn") or encryption["customerManagedKey"]["create"])):
            errors.append("fedramp-high requires a customer managed key for encryption")

        open_cidrs = OPEN_CIDRS & set(config["vpc"]["securityGroup"].get("allowedCidrs", []))
        if open_cidrs and (context.is_fedramp or context.is_production):
            errors.append(
                f"vpc.securityGroup.allowedCidrs must not include {', '.join(sorted(open_cidrs))} "
                f"in production or FedRAMP deployments"
            )

        errors.extend(AWSResourceValidator.arn_errors(encryption.get("kmsKeyArn"), "encryption.kmsKeyArn", "kms"))
        return errors
