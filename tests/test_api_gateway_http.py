"""Tests for the api-gateway-http component."""

import pytest
from aws_cdk.assertions import Match, Template

from components.api_gateway_http import ApiGatewayHttpComponent, ApiGatewayHttpCreator
from components.common.exceptions import ComponentConfigurationError

CERTIFICATE_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/7d2f4b61-0a3c-4b0e-8c55-1c2e9f8d6a01"
ORDERS_ROUTE = {"method": "GET", "path": "/orders", "integration": {"uri": "https://orders.internal.example.com/orders"}}
JWT_AUTH = {"jwt": {"issuer": "https://auth.example.com", "audience": ["orders"]}}


class TestApiGatewayHttpComponent:
    """Test the synthesized HTTP API."""

    def test_default_api(self, stack, synth_component):
        component = synth_component(ApiGatewayHttpComponent, name="api")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::ApiGatewayV2::Api", {
            "Name": "orders-api",
            "ProtocolType": "HTTP",
            "Description": "HTTP API for orders/api",
            "CorsConfiguration": Match.object_like({
                "AllowOrigins": ["https://localhost:3000"],
                "MaxAge": 300,
            }),
        })
        template.has_resource_properties("AWS::ApiGatewayV2::Stage", {
            "StageName": "$default",
            "AutoDeploy": True,
            "DefaultRouteSettings": Match.object_like({
                "ThrottlingRateLimit": 100,
                "ThrottlingBurstLimit": 200,
            }),
            "AccessLogSettings": {
                "DestinationArn": Match.any_value(),
                "Format": Match.string_like_regexp("requestId"),
            },
        })
        template.has_resource_properties("AWS::Logs::LogGroup", {
            "LogGroupName": "/aws/apigateway/orders-api/access",
            "RetentionInDays": 7,
        })
        template.resource_count_is("AWS::ApiGatewayV2::Route", 0)
        template.resource_count_is("AWS::CloudWatch::Alarm", 3)

        assert set(component.get_capabilities()["api:http"]) == {"apiId", "apiEndpoint", "stageName", "url"}
        assert component.get_construct("stage") is component.stage

    def test_routes_with_url_integration(self, stack, synth_component):
        component = synth_component(ApiGatewayHttpComponent, {
            "routes": [ORDERS_ROUTE, {"path": "/health", "integration": {"uri": "https://orders.internal.example.com/health"}}],
        }, name="api")
        template = Template.from_stack(stack)

        template.resource_count_is("AWS::ApiGatewayV2::Route", 2)
        template.has_resource_properties("AWS::ApiGatewayV2::Route", {"RouteKey": "GET /orders"})
        template.has_resource_properties("AWS::ApiGatewayV2::Route", {"RouteKey": "ANY /health"})
        template.has_resource_properties("AWS::ApiGatewayV2::Integration", {
            "IntegrationType": "HTTP_PROXY",
            "IntegrationUri": "https://orders.internal.example.com/orders",
        })
        assert component.get_construct("route:GET /orders") is not None

    def test_jwt_authorizer(self, stack, synth_component):
        synth_component(ApiGatewayHttpComponent, {
            "auth": JWT_AUTH,
            "routes": [dict(ORDERS_ROUTE, authorization="jwt")],
        }, name="api")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::ApiGatewayV2::Authorizer", {
            "AuthorizerType": "JWT",
            "IdentitySource": ["$request.header.Authorization"],
            "JwtConfiguration": {"Issuer": "https://auth.example.com", "Audience": ["orders"]},
        })
        template.has_resource_properties("AWS::ApiGatewayV2::Route", {
            "RouteKey": "GET /orders",
            "AuthorizationType": "JWT",
        })

    def test_custom_domain(self, stack, synth_component):
        component = synth_component(ApiGatewayHttpComponent, {
            "customDomain": {"domainName": "api.orders.example.com", "certificateArn": CERTIFICATE_ARN},
        }, name="api")
        template = Template.from_stack(stack)

        template.has_resource_properties("AWS::ApiGatewayV2::DomainName", {
            "DomainName": "api.orders.example.com",
        })
        template.resource_count_is("AWS::ApiGatewayV2::ApiMapping", 1)
        assert component.get_capabilities()["api:http"]["customDomainName"] == "api.orders.example.com"

    def test_access_logging_and_monitoring_disabled(self, stack, synth_component):
        synth_component(ApiGatewayHttpComponent, {
            "accessLogging": {"enabled": False},
            "monitoring": {"enabled": False},
        }, name="api")
        template = Template.from_stack(stack)

        template.resource_count_is("AWS::Logs::LogGroup", 0)
        template.resource_count_is("AWS::CloudWatch::Alarm", 0)
        template.has_resource_properties("AWS::ApiGatewayV2::Stage", {"AccessLogSettings": Match.absent()})

    def test_credentials_with_wildcard_origin(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApiGatewayHttpComponent, {"cors": {"allowOrigins": ["*"], "allowCredentials": True}})

        assert excinfo.value.config_key == "cors.allowOrigins"

    def test_duplicate_routes(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApiGatewayHttpComponent, {"routes": [ORDERS_ROUTE, ORDERS_ROUTE]})

        assert excinfo.value.config_key == "routes.1"

    def test_jwt_route_requires_auth_config(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApiGatewayHttpComponent, {"routes": [dict(ORDERS_ROUTE, authorization="jwt")]})

        assert excinfo.value.config_key == "auth.jwt"

    def test_custom_domain_requires_certificate(self, synth_component):
        with pytest.raises(ComponentConfigurationError) as excinfo:
            synth_component(ApiGatewayHttpComponent, {"customDomain": {"domainName": "api.orders.example.com"}})

        assert excinfo.value.config_key == "customDomain.certificateArn"


class TestApiGatewayHttpCreator:
    """Test compliance and production rules."""

    def test_default_config_is_valid(self, make_context, make_spec):
        assert ApiGatewayHttpCreator().validate_spec(make_spec("api-gateway-http", "api"), make_context()).valid

    def test_wildcard_origin_rejected_in_production(self, make_context, make_spec):
        spec = make_spec("api-gateway-http", "api", {"cors": {"allowOrigins": ["*"]}})
        creator = ApiGatewayHttpCreator()

        assert creator.validate_spec(spec, make_context()).valid
        assert creator.validate_spec(spec, make_context(environment="prod")).errors == [
            "cors.allowOrigins must not contain '*' in production environments"
        ]

    def test_fedramp_rules(self, make_context, make_spec):
        spec = make_spec("api-gateway-http", "api", {
            "cors": {"allowOrigins": ["http://portal.example.com", "https://portal.example.com"]},
            "accessLogging": {"enabled": False},
        })

        result = ApiGatewayHttpCreator().validate_spec(spec, make_context(framework="fedramp-high"))

        assert result.errors == [
            "accessLogging.enabled must be true for fedramp-high",
            "monitoring.detailedMetrics must be true for fedramp-high",
            "cors.allowOrigins must use https for fedramp-high: http://portal.example.com",
        ]

    def test_fedramp_with_detailed_metrics(self, make_context, make_spec):
        spec = make_spec("api-gateway-http", "api", {"monitoring": {"detailedMetrics": True}})

        assert ApiGatewayHttpCreator().validate_spec(spec, make_context(framework="fedramp-moderate")).valid

    def test_certificate_must_be_an_acm_arn(self, make_context, make_spec):
        spec = make_spec("api-gateway-http", "api", {
            "customDomain": {
                "domainName": "api.orders.example.com",
                "certificateArn": "arn:aws:iam::123456789012:server-certificate/api",
            },
        })

        result = ApiGatewayHttpCreator().validate_spec(spec, make_context())

        assert len(result.errors) == 1
        assert result.errors[0].startswith("customDomain.certificateArn")
