"""Creator for the cloudfront-distribution component type."""

from typing import Any, Dict, List

from components.common.capabilities import CDN_CLOUDFRONT
from components.common.constants import ComplianceFramework
from components.common.contracts import ComponentContext
from components.common.creator import ComponentCreator
from components.common.validators import AWSResourceValidator
from .builder import COMPONENT_TYPE, CloudFrontDistributionConfigBuilder
from .component import CloudFrontDistributionComponent

# CloudFront only accepts ACM certificates issued in us-east-1
CERTIFICATE_REGION = "us-east-1"


class CloudFrontDistributionCreator(ComponentCreator):
    component_type = COMPONENT_TYPE
    display_name = "CloudFront Distribution"
    description = "CloudFront distribution with S3, ALB or custom origins, logging and alarms"
    category = "cdn"
    aws_service = "CloudFront"
    tags = ["cdn", "cloudfront", "edge"]
    provided_capabilities = [CDN_CLOUDFRONT]

    builder_class = CloudFrontDistributionConfigBuilder
    component_class = CloudFrontDistributionComponent

    def _validate_config(self, config: Dict[str, Any], context: ComponentContext) -> List[str]:
        errors = []
        behaviors = [config["defaultBehavior"]] + config["additionalBehaviors"]
        if context.is_fedramp:
            if any(behavior["viewerProtocolPolicy"] == "allow-all" for behavior in behaviors):
                errors.append(
                    f"viewerProtocolPolicy allow-all is not permitted for {context.compliance_framework.value}"
                )
            if not config["logging"]["enabled"]:
                errors.append(f"logging.enabled must be true for {context.compliance_framework.value}")
        if context.compliance_framework is ComplianceFramework.FEDRAMP_HIGH and not config.get("webAclId"):
            errors.append("webAclId is required for fedramp-high")

        patterns = [behavior["pathPattern"] for behavior in config["additionalBehaviors"]]
        duplicates = sorted({pattern for pattern in patterns if patterns.count(pattern) > 1})
        if duplicates:
            errors.append(f"Duplicate behavior path patterns: {', '.join(duplicates)}")

        certificate_arn = config["domain"].get("certificateArn")
        certificate_errors = AWSResourceValidator.arn_errors(certificate_arn, "domain.certificateArn", "acm")
        errors.extend(certificate_errors)
        if certificate_arn and not certificate_errors and certificate_arn.split(":")[3] != CERTIFICATE_REGION:
            errors.append(f"domain.certificateArn must be an ACM certificate in {CERTIFICATE_REGION}")
        return errors
