"""CloudFront distribution component."""

from typing import Any, Dict, Optional

import aws_cdk as cdk
from aws_cdk import (
    aws_certificatemanager as acm,
    aws_cloudfront as cloudfront,
    aws_cloudfront_origins as origins,
    aws_s3 as s3,
)

from components.common.base import BaseComponent
from components.common.capabilities import CDN_CLOUDFRONT
from components.common.mixins import AccessLoggingMixin, AlarmMixin, MetricDefinition
from .builder import (
    ALLOWED_METHOD_SETS,
    CACHED_METHOD_SETS,
    CloudFrontDistributionConfigBuilder,
    method_set_name,
)

VIEWER_PROTOCOL_POLICIES = {
    "allow-all": cloudfront.ViewerProtocolPolicy.ALLOW_ALL,
    "redirect-to-https": cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
    "https-only": cloudfront.ViewerProtocolPolicy.HTTPS_ONLY,
}

ALLOWED_METHODS = {
    "GET_HEAD": cloudfront.AllowedMethods.ALLOW_GET_HEAD,
    "GET_HEAD_OPTIONS": cloudfront.AllowedMethods.ALLOW_GET_HEAD_OPTIONS,
    "ALL": cloudfront.AllowedMethods.ALLOW_ALL,
}

CACHED_METHODS = {
    "GET_HEAD": cloudfront.CachedMethods.CACHE_GET_HEAD,
    "GET_HEAD_OPTIONS": cloudfront.CachedMethods.CACHE_GET_HEAD_OPTIONS,
}

PRICE_CLASSES = {
    "PriceClass_100": cloudfront.PriceClass.PRICE_CLASS_100,
    "PriceClass_200": cloudfront.PriceClass.PRICE_CLASS_200,
    "PriceClass_All": cloudfront.PriceClass.PRICE_CLASS_ALL,
}


class CloudFrontDistributionComponent(BaseComponent, AccessLoggingMixin, AlarmMixin):
    """CloudFront distribution in front of an S3 bucket, ALB or custom origin."""

    builder_class = CloudFrontDistributionConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.distribution: Optional[cloudfront.Distribution] = None
        self.origin: Optional[cloudfront.IOrigin] = None
        self.log_bucket: Optional[s3.IBucket] = None

    def _create_resources(self) -> None:
        self._create_origin()
        self._create_log_bucket()
        self._create_distribution()
        self._create_alarms()
        self.register_capability(CDN_CLOUDFRONT, {
            "distributionId": self.distribution.distribution_id,
            "domainName": self.distribution.distribution_domain_name,
            "distributionArn": self.distribution_arn,
            "domainNames": list(self.config["domain"]["domainNames"]),
        })

    @property
    def distribution_arn(self) -> str:
        return cdk.Stack.of(self).format_arn(
            service="cloudfront",
            region="",
            resource="distribution",
            resource_name=self.distribution.distribution_id
        )

    def _create_origin(self) -> None:
        origin_config = self.config["origin"]
        origin_props = {
            "origin_path": origin_config.get("originPath"),
            "custom_headers": origin_config.get("customHeaders") or None,
        }
        if origin_config["type"] == "s3":
            bucket = s3.Bucket.from_bucket_name(self, "OriginBucket", origin_config["s3BucketName"])
            self.register_construct("originBucket", bucket)
            self.origin = origins.S3BucketOrigin.with_origin_access_control(bucket, **origin_props)
        else:
            domain_name = (
                origin_config["albDnsName"] if origin_config["type"] == "alb"
                else origin_config["customDomainName"]
            )
            self.origin = origins.HttpOrigin(
                domain_name,
                protocol_policy=cloudfront.OriginProtocolPolicy.HTTPS_ONLY,
                **origin_props
            )

    def _create_log_bucket(self) -> None:
        logging_config = self.config["logging"]
        if not logging_config["enabled"]:
            return
        if logging_config.get("bucket"):
            self.log_bucket = s3.Bucket.from_bucket_name(self, "LogBucket", logging_config["bucket"])
        else:
            self.log_bucket = self.create_access_log_bucket(
                "AccessLogBucket",
                "cloudfront",
                retention_days=logging_config["retentionDays"],
                acl_delivery=True
            )
        self.register_construct("accessLogBucket", self.log_bucket)

    def _behavior(self, behavior: Dict[str, Any], construct_prefix: str) -> cloudfront.BehaviorOptions:
        allowed = method_set_name(behavior["allowedMethods"], ALLOWED_METHOD_SETS, "allowedMethods")
        cached = method_set_name(behavior["cachedMethods"], CACHED_METHOD_SETS, "cachedMethods")

        cache_policy = cloudfront.CachePolicy.CACHING_OPTIMIZED
        if behavior.get("cachePolicyId"):
            cache_policy = cloudfront.CachePolicy.from_cache_policy_id(
                self, f"{construct_prefix}CachePolicy", behavior["cachePolicyId"]
            )
        origin_request_policy = None
        if behavior.get("originRequestPolicyId"):
            origin_request_policy = cloudfront.OriginRequestPolicy.from_origin_request_policy_id(
                self, f"{construct_prefix}OriginRequestPolicy", behavior["originRequestPolicyId"]
            )

        return cloudfront.BehaviorOptions(
            origin=self.origin,
            viewer_protocol_policy=VIEWER_PROTOCOL_POLICIES[behavior["viewerProtocolPolicy"]],
            allowed_methods=ALLOWED_METHODS[allowed],
            cached_methods=CACHED_METHODS[cached],
            compress=behavior["compress"],
            cache_policy=cache_policy,
            origin_request_policy=origin_request_policy
        )

    def _geo_restriction(self) -> Optional[cloudfront.GeoRestriction]:
        geo = self.config["geoRestriction"]
        if geo["type"] == "allowlist":
            return cloudfront.GeoRestriction.allowlist(*geo["countries"])
        if geo["type"] == "denylist":
            return cloudfront.GeoRestriction.denylist(*geo["countries"])
        return None

    def _create_distribution(self) -> None:
        config = self.config
        domain = config["domain"]
        logging_config = config["logging"]

        certificate = None
        if domain.get("certificateArn"):
            certificate = acm.Certificate.from_certificate_arn(self, "Certificate", domain["certificateArn"])

        additional_behaviors = {
            behavior["pathPattern"]: self._behavior(behavior, f"Behavior{index}")
            for index, behavior in enumerate(config["additionalBehaviors"])
        }

        self.distribution = cloudfront.Distribution(
            self,
            "Distribution",
            comment=config["comment"],
            default_behavior=self._behavior(config["defaultBehavior"], "Default"),
            additional_behaviors=additional_behaviors or None,
            price_class=PRICE_CLASSES[config["priceClass"]],
            default_root_object=config.get("defaultRootObject"),
            geo_restriction=self._geo_restriction(),
            domain_names=domain["domainNames"] or None,
            certificate=certificate,
            minimum_protocol_version=(
                cloudfront.SecurityPolicyProtocol.TLS_V1_2_2021 if certificate else None
            ),
            enable_logging=logging_config["enabled"],
            log_bucket=self.log_bucket,
            log_file_prefix=logging_config.get("prefix"),
            log_includes_cookies=logging_config["includeCookies"],
            web_acl_id=config.get("webAclId")
        )
        self.apply_standard_tags(self.distribution, config["tags"])
        self.register_construct("distribution", self.distribution)

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        dimensions = {"DistributionId": self.distribution.distribution_id, "Region": "Global"}
        definitions = {
            "error4xx": MetricDefinition(
                "AWS/CloudFront", "4xxErrorRate", dimensions,
                description="CloudFront 4xx error rate"
            ),
            "error5xx": MetricDefinition(
                "AWS/CloudFront", "5xxErrorRate", dimensions,
                description="CloudFront 5xx error rate"
            ),
            "originLatencyMs": MetricDefinition(
                "AWS/CloudFront", "OriginLatency", dimensions,
                description="CloudFront origin latency in milliseconds"
            ),
        }
        self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )
