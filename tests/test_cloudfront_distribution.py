"""Tests for the cloudfront-distribution component."""

import pytest
from aws_cdk.assertions import Match, Template

from components.cloudfront_distribution import (
    CloudFrontDistributionComponent,
    CloudFrontDistributionCreator,
)
from components.common.exceptions import ComponentConfigurationError

CERTIFICATE_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/0f2c7d4e-1111-2222-3333-444455556666"
ALL_METHODS = ["GET", "HEAD", "OPTIONS", "PUT", "PATCH", "POST", "DELETE"]


class TestCloudFrontDistributionComponent:
    """Test the synthesized distribution."""

    def test_default_s3_origin(self, stack, synth_component):
        component = synth_component(CloudFrontDistributionComponent, name="cdn")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::CloudFront::Distribution", {
            "DistributionConfig": Match.object_like({
                "Comment": "Managed by platform-components",
                "PriceClass": "PriceClass_100",
                "DefaultCacheBehavior": Match.object_like({
                    "ViewerProtocolPolicy": "allow-all",
                    "Compress": True,
                }),
                "Logging": Match.absent(),
            })
        })
        template.resource_count_is("AWS::CloudFront::OriginAccessControl", 1)
        template.resource_count_is("AWS::S3::Bucket", 0)
        template.resource_count_is("AWS::CloudWatch::Alarm", 0)
        assert component.config["origin"]["s3BucketName"] == "orders-cdn-origin"
        assert set(component.get_capabilities()["cdn:cloudfront"]) == {
            "distributionId", "domainName", "distributionArn", "domainNames",
        }

    def test_access_logging_bucket(self, stack, synth_component):
        synth_component(CloudFrontDistributionComponent, {"logging": {"enabled": True}}, name="cdn")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::S3::Bucket", {
            "OwnershipControls": {"Rules": [{"ObjectOwnership": "ObjectWriter"}]},
            "VersioningConfiguration": {"Status": "Enabled"},
        })
        template.has_resource_properties("AWS::CloudFront::Distribution", {
            "DistributionConfig": Match.object_like({
                "Logging": Match.object_like({"Prefix": "orders/cdn/", "IncludeCookies": False}),
            })
        })

    def test_custom_origin(self, stack, synth_component):
        synth_component(CloudFrontDistributionComponent, {
            "origin": {"type": "custom", "customDomainName": "origin.example.com"},
        }, name="cdn")

        Template.from_stack(stack).has_resource_properties("AWS::CloudFront::Distribution", {
            "DistributionConfig": Match.object_like({
                "Origins": [Match.object_like({
                    "DomainName": "origin.example.com",
                    "CustomOriginConfig": Match.object_like({"OriginProtocolPolicy": "https-only"}),
                })],
            })
        })

    def test_alb_origin_requires_dns_name(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(CloudFrontDistributionComponent, {"origin": {"type": "alb"}})

        assert excinfo.value.config_key == "origin.albDnsName"

    def test_domain_names_require_certificate(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(CloudFrontDistributionComponent, {"domain": {"domainNames": ["cdn.example.com"]}})

        assert excinfo.value.config_key == "domain.certificateArn"

    def test_custom_domain(self, stack, synth_component):
        synth_component(CloudFrontDistributionComponent, {
            "domain": {"domainNames": ["cdn.example.com"], "certificateArn": CERTIFICATE_ARN},
        }, name="cdn")

        Template.from_stack(stack).has_resource_properties("AWS::CloudFront::Distribution", {
            "DistributionConfig": Match.object_like({
                "Aliases": ["cdn.example.com"],
                "ViewerCertificate": Match.object_like({
                    "AcmCertificateArn": CERTIFICATE_ARN,
                    "MinimumProtocolVersion": "TLSv1.2_2021",
                }),
            })
        })

    def test_geo_restriction(self, stack, synth_component):
        synth_component(CloudFrontDistributionComponent, {
            "geoRestriction": {"type": "allowlist", "countries": ["US", "CA"]},
        }, name="cdn")

        Template.from_stack(stack).has_resource_properties("AWS::CloudFront::Distribution", {
            "DistributionConfig": Match.object_like({
                "Restrictions": {"GeoRestriction": {"RestrictionType": "whitelist", "Locations": ["US", "CA"]}},
            })
        })

    def test_geo_restriction_needs_countries(self, synth_component):
        with pytest.raises(ComponentConfigurationError, match="at least one country"):
            synth_component(CloudFrontDistributionComponent, {"geoRestriction": {"type": "denylist"}})

    def test_unsupported_method_set(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(CloudFrontDistributionComponent, {
                "defaultBehavior": {"allowedMethods": ["GET", "POST"]},
            })

        assert excinfo.value.config_key == "defaultBehavior.allowedMethods"

    def test_additional_behaviors_inherit_protocol_policy(self, synth_component):
        component = synth_component(CloudFrontDistributionComponent, {
            "defaultBehavior": {"viewerProtocolPolicy": "https-only"},
            "additionalBehaviors": [{"pathPattern": "/api/*", "allowedMethods": ALL_METHODS}],
        }, name="cdn")

        (behavior,) = component.config["additionalBehaviors"]
        assert behavior["viewerProtocolPolicy"] == "https-only"
        assert behavior["cachedMethods"] == ["GET", "HEAD"]


class TestCloudFrontDistributionCreator:
    """Test compliance rules."""

    def test_fedramp_moderate_rules(self, make_context, make_spec):
        result = CloudFrontDistributionCreator().validate_spec(
            make_spec("cloudfront-distribution", "cdn"), make_context(framework="fedramp-moderate")
        )

        assert result.errors == [
            "viewerProtocolPolicy allow-all is not permitted for fedramp-moderate",
            "logging.enabled must be true for fedramp-moderate",
        ]

    def test_fedramp_high_requires_web_acl(self, make_context, make_spec):
        spec = make_spec("cloudfront-distribution", "cdn", {
            "defaultBehavior": {"viewerProtocolPolicy": "https-only"},
            "logging": {"enabled": True},
        })

        result = CloudFrontDistributionCreator().validate_spec(spec, make_context(framework="fedramp-high"))

        assert result.errors == ["webAclId is required for fedramp-high"]

    def test_certificate_must_be_in_us_east_1(self, make_context, make_spec):
        spec = make_spec("cloudfront-distribution", "cdn", {
            "domain": {
                "domainNames": ["cdn.example.com"],
                "certificateArn": CERTIFICATE_ARN.replace("us-east-1", "eu-west-1"),
            },
        })

        result = CloudFrontDistributionCreator().validate_spec(spec, make_context())

        assert result.errors == ["domain.certificateArn must be an ACM certificate in us-east-1"]

    def test_duplicate_path_patterns(self, make_context, make_spec):
        spec = make_spec("cloudfront-distribution", "cdn", {
            "additionalBehaviors": [{"pathPattern": "/img/*"}, {"pathPattern": "/img/*"}],
        })

        result = CloudFrontDistributionCreator().validate_spec(spec, make_context())

        assert result.errors == ["Duplicate behavior path patterns: /img/*"]
