"""Tests for the application-load-balancer component."""

import pytest
from aws_cdk.assertions import Match, Template

from components.application_load_balancer import (
    ApplicationLoadBalancerComponent,
    ApplicationLoadBalancerCreator,
)
from components.common.exceptions import ComponentConfigurationError

CERTIFICATE_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/0f6c1e52-4c1a-4d7e-9d8b-3f1f2a9d7e10"


def _attribute(key, value):
    return {"LoadBalancerAttributes": Match.array_with([{"Key": key, "Value": value}])}


class TestApplicationLoadBalancerComponent:
    """Test the synthesized load balancer."""

    def test_default_load_balancer(self, stack, synth_component):
        component = synth_component(ApplicationLoadBalancerComponent, name="web")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::ElasticLoadBalancingV2::LoadBalancer", {
            "Name": "orders-web",
            "Scheme": "internet-facing",
            "Type": "application",
        })
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::LoadBalancer",
            _attribute("routing.http.drop_invalid_header_fields.enabled", "true")
        )
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::LoadBalancer",
            _attribute("idle_timeout.timeout_seconds", "60")
        )
        template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {
            "Port": 80,
            "Protocol": "HTTP",
            "DefaultActions": [Match.object_like({
                "Type": "fixed-response",
                "FixedResponseConfig": {
                    "StatusCode": "404",
                    "ContentType": "text/plain",
                    "MessageBody": "Not Found",
                },
            })],
        })
        template.has_resource_properties("AWS::EC2::SecurityGroup", {
            "SecurityGroupIngress": Match.array_with([
                Match.object_like({"CidrIp": "0.0.0.0/0", "FromPort": 80, "ToPort": 80}),
            ])
        })
        template.has_resource_properties("AWS::EC2::SecurityGroup", {
            "SecurityGroupIngress": Match.array_with([
                Match.object_like({"CidrIp": "0.0.0.0/0", "FromPort": 443, "ToPort": 443}),
            ])
        })
        template.resource_count_is("AWS::S3::Bucket", 0)
        template.resource_count_is("AWS::CloudWatch::Alarm", 0)

        capability = component.get_capabilities()["net:load-balancer"]
        assert set(capability["listenerArns"]) == {"80"}
        assert capability["targetGroupArns"] == {}
        assert component.get_construct("securityGroup") is component.get_security_group()

    def test_internal_scheme(self, stack, synth_component):
        synth_component(ApplicationLoadBalancerComponent, {
            "scheme": "internal",
            "vpc": {"subnetType": "private"},
        }, name="web")

        Template.from_stack(stack).has_resource_properties("AWS::ElasticLoadBalancingV2::LoadBalancer", {
            "Scheme": "internal",
        })

    def test_https_listener_with_redirect(self, stack, synth_component):
        synth_component(ApplicationLoadBalancerComponent, {
            "listeners": [
                {"port": 80, "redirectToHttps": True},
                {"port": 443, "protocol": "HTTPS", "certificateArn": CERTIFICATE_ARN},
            ],
        }, name="web")
        template = Template.from_stack(stack)

        template.resource_count_is("AWS::ElasticLoadBalancingV2::Listener", 2)
        template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {
            "Port": 80,
            "DefaultActions": [Match.object_like({
                "Type": "redirect",
                "RedirectConfig": Match.object_like({"Protocol": "HTTPS", "Port": "443"}),
            })],
        })
        template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {
            "Port": 443,
            "Protocol": "HTTPS",
            "Certificates": [{"CertificateArn": CERTIFICATE_ARN}],
            "SslPolicy": Match.any_value(),
        })

    def test_forward_to_target_group(self, stack, synth_component):
        component = synth_component(ApplicationLoadBalancerComponent, {
            "targetGroups": [{"name": "app", "port": 8080, "healthCheck": {"path": "/health"}}],
            "listeners": [{"port": 80, "defaultAction": {"type": "forward", "targetGroup": "app"}}],
        }, name="web")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::ElasticLoadBalancingV2::TargetGroup", {
            "Name": "app",
            "Port": 8080,
            "Protocol": "HTTP",
            "TargetType": "instance",
            "HealthCheckPath": "/health",
            "Matcher": {"HttpCode": "200-399"},
        })
        template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {
            "DefaultActions": [Match.object_like({"Type": "forward"})],
        })
        assert component.config["targetGroups"][0]["healthCheck"]["intervalSeconds"] == 30
        assert set(component.get_capabilities()["net:load-balancer"]["targetGroupArns"]) == {"app"}

    def test_access_logs(self, stack, synth_component):
        component = synth_component(ApplicationLoadBalancerComponent, {
            "accessLogs": {"enabled": True, "connectionLogs": True},
        }, name="web")
        template = Template.from_stack(stack)

        template.resource_count_is("AWS::S3::Bucket", 1)
        template.has_resource_properties("AWS::S3::BucketPolicy", Match.any_value())
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::LoadBalancer",
            _attribute("access_logs.s3.enabled", "true")
        )
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::LoadBalancer",
            _attribute("access_logs.s3.prefix", "orders-web-access")
        )
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::LoadBalancer",
            _attribute("connection_logs.s3.prefix", "orders-web-connection")
        )
        assert component.get_construct("accessLogBucket") is not None

    def test_alarms(self, stack, synth_component):
        synth_component(ApplicationLoadBalancerComponent, {
            "targetGroups": [{"name": "app", "port": 8080}],
            "monitoring": {"enabled": True},
        }, name="web")

        Template.from_stack(stack).resource_count_is("AWS::CloudWatch::Alarm", 4)

    def test_imported_security_groups(self, stack, synth_component):
        component = synth_component(ApplicationLoadBalancerComponent, {
            "securityGroups": {"create": False, "securityGroupIds": ["sg-0123456789abcdef0"]},
        }, name="web")

        Template.from_stack(stack).resource_count_is("AWS::EC2::SecurityGroup", 0)
        assert component.get_capabilities()["net:load-balancer"]["securityGroupIds"] == ["sg-0123456789abcdef0"]

    def test_security_group_ids_required_without_create(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApplicationLoadBalancerComponent, {"securityGroups": {"create": False}})

        assert excinfo.value.config_key == "securityGroups.securityGroupIds"

    def test_https_requires_certificate(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApplicationLoadBalancerComponent, {
                "listeners": [{"port": 443, "protocol": "HTTPS"}],
            })

        assert excinfo.value.config_key == "listeners.0.certificateArn"

    def test_duplicate_listener_ports(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApplicationLoadBalancerComponent, {
                "listeners": [{"port": 80}, {"port": 80}],
            })

        assert excinfo.value.config_key == "listeners.1.port"

    def test_forward_to_unknown_target_group(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApplicationLoadBalancerComponent, {
                "listeners": [{"port": 80, "defaultAction": {"type": "forward", "targetGroup": "missing"}}],
            })

        assert excinfo.value.config_key == "listeners.0.defaultAction.targetGroup"

    def test_forward_uses_the_name_as_written(self, stack, synth_component):
        component = synth_component(ApplicationLoadBalancerComponent, {
            "targetGroups": [{"name": "api_v1", "port": 8080}],
            "listeners": [{"port": 80, "defaultAction": {"type": "forward", "targetGroup": "api_v1"}}],
        }, name="web")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::ElasticLoadBalancingV2::TargetGroup", {"Name": "api-v1"})
        template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {
            "DefaultActions": [Match.object_like({"Type": "forward"})],
        })
        assert component.config["listeners"][0]["defaultAction"]["targetGroup"] == "api-v1"
        assert component.get_construct("targetGroup:api-v1") is not None

    def test_redirect_requires_https_listener(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApplicationLoadBalancerComponent, {
                "listeners": [{"port": 80, "redirectToHttps": True}],
            })

        assert excinfo.value.config_key == "listeners"

    def test_redirect_requires_https_on_port_443(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApplicationLoadBalancerComponent, {
                "listeners": [
                    {"port": 80, "redirectToHttps": True},
                    {"port": 8443, "protocol": "HTTPS", "certificateArn": CERTIFICATE_ARN},
                ],
            })

        assert excinfo.value.config_key == "listeners"


class TestApplicationLoadBalancerCreator:
    """Test compliance and production rules."""

    def test_default_config_is_valid(self, make_context, make_spec):
        result = ApplicationLoadBalancerCreator().validate_spec(
            make_spec("application-load-balancer", "web"), make_context()
        )

        assert result.valid

    def test_fedramp_rules(self, make_context, make_spec):
        result = ApplicationLoadBalancerCreator().validate_spec(
            make_spec("application-load-balancer", "web", {"dropInvalidHeaderFields": False}),
            make_context(framework="fedramp-moderate")
        )

        assert result.errors == [
            "accessLogs.enabled must be true for fedramp-moderate",
            "HTTP listener on port 80 must redirect to HTTPS for fedramp-moderate",
            "dropInvalidHeaderFields must be true for fedramp-moderate",
        ]

    def test_production_requires_deletion_protection(self, make_context, make_spec):
        creator = ApplicationLoadBalancerCreator()
        spec = make_spec("application-load-balancer", "web")

        assert creator.validate_spec(spec, make_context(environment="prod")).errors == [
            "deletionProtection must be enabled in production environments"
        ]
        protected = make_spec("application-load-balancer", "web", {"deletionProtection": True})
        assert creator.validate_spec(protected, make_context(environment="prod")).valid

    def test_duplicate_target_group_names(self, make_context, make_spec):
        spec = make_spec("application-load-balancer", "web", {
            "targetGroups": [{"name": "app", "port": 8080}, {"name": "app", "port": 8081}],
        })

        result = ApplicationLoadBalancerCreator().validate_spec(spec, make_context())

        assert result.errors == ["Duplicate target group names: app"]

    def test_certificate_must_be_an_acm_arn(self, make_context, make_spec):
        spec = make_spec("application-load-balancer", "web", {
            "listeners": [{
                "port": 443,
                "protocol": "HTTPS",
                "certificateArn": "arn:aws:iam::123456789012:server-certificate/web",
            }],
        })

        result = ApplicationLoadBalancerCreator().validate_spec(spec, make_context())

        assert len(result.errors) == 1
        assert result.errors[0].startswith("listeners.0.certificateArn")
