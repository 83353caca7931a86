"""API Gateway HTTP API component."""

import json
from typing import Optional

from aws_cdk import (
    Duration,
    aws_apigatewayv2 as apigwv2,
    aws_apigatewayv2_authorizers as authorizers,
    aws_apigatewayv2_integrations as integrations,
    aws_certificatemanager as acm,
)

from components.common.base import BaseComponent
from components.common.capabilities import API_HTTP
from components.common.mixins import AlarmMixin, MetricDefinition
from .builder import ApiGatewayHttpConfigBuilder

HTTP_METHODS = {
    "ANY": apigwv2.HttpMethod.ANY,
    "GET": apigwv2.HttpMethod.GET,
    "POST": apigwv2.HttpMethod.POST,
    "PUT": apigwv2.HttpMethod.PUT,
    "PATCH": apigwv2.HttpMethod.PATCH,
    "DELETE": apigwv2.HttpMethod.DELETE,
    "HEAD": apigwv2.HttpMethod.HEAD,
    "OPTIONS": apigwv2.HttpMethod.OPTIONS,
}

CORS_METHODS = {
    "ANY": apigwv2.CorsHttpMethod.ANY,
    "GET": apigwv2.CorsHttpMethod.GET,
    "POST": apigwv2.CorsHttpMethod.POST,
    "PUT": apigwv2.CorsHttpMethod.PUT,
    "PATCH": apigwv2.CorsHttpMethod.PATCH,
    "DELETE": apigwv2.CorsHttpMethod.DELETE,
    "HEAD": apigwv2.CorsHttpMethod.HEAD,
    "OPTIONS": apigwv2.CorsHttpMethod.OPTIONS,
}

ACCESS_LOG_FORMAT = {
    "requestId": "$context.requestId",
    "ip": "$context.identity.sourceIp",
    "requestTime": "$context.requestTime",
    "httpMethod": "$context.httpMethod",
    "routeKey": "$context.routeKey",
    "status": "$context.status",
    "protocol": "$context.protocol",
    "responseLength": "$context.responseLength",
    "integrationLatency": "$context.integrationLatency",
}


class ApiGatewayHttpComponent(BaseComponent, AlarmMixin):
    """HTTP API with routes, a throttled stage, access logs and an optional custom domain."""

    builder_class = ApiGatewayHttpConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.http_api: Optional[apigwv2.HttpApi] = None
        self.stage: Optional[apigwv2.HttpStage] = None
        self.domain_name: Optional[apigwv2.DomainName] = None

    def _create_resources(self) -> None:
        self._create_api()
        self._create_routes()
        self._create_stage()
        self._configure_access_logging()
        self._create_custom_domain()
        self._create_alarms()

        data = {
            "apiId": self.http_api.api_id,
            "apiEndpoint": self.http_api.api_endpoint,
            "stageName": self.stage.stage_name,
            "url": self.stage.url,
        }
        if self.domain_name is not None:
            data["customDomainName"] = self.config["customDomain"]["domainName"]
        self.register_capability(API_HTTP, data)

    def _cors_options(self) -> Optional[apigwv2.CorsPreflightOptions]:
        cors = self.config["cors"]
        if not cors["allowOrigins"]:
            return None
        return apigwv2.CorsPreflightOptions(
            allow_origins=cors["allowOrigins"],
            allow_headers=cors["allowHeaders"],
            allow_methods=[CORS_METHODS[method] for method in cors["allowMethods"]],
            allow_credentials=cors["allowCredentials"],
            max_age=Duration.seconds(cors["maxAge"]),
            expose_headers=cors["exposeHeaders"] or None
        )

    def _create_api(self) -> None:
        config = self.config
        self.http_api = apigwv2.HttpApi(
            self,
            "HttpApi",
            api_name=config["apiName"],
            description=config["description"],
            cors_preflight=self._cors_options(),
            create_default_stage=False,
            disable_execute_api_endpoint=config["disableExecuteApiEndpoint"]
        )
        self.apply_standard_tags(self.http_api, config["tags"])
        self.register_construct("api", self.http_api)

    def _create_routes(self) -> None:
        authorizer = None
        jwt = (self.config.get("auth") or {}).get("jwt")
        if jwt:
            authorizer = authorizers.HttpJwtAuthorizer(
                "JwtAuthorizer",
                jwt["issuer"],
                jwt_audience=jwt["audience"],
                identity_source=jwt["identitySource"]
            )

        for index, route in enumerate(self.config["routes"]):
            integration = integrations.HttpUrlIntegration(
                f"Integration{index}",
                route["integration"]["uri"],
                method=HTTP_METHODS[route["integration"]["method"]]
            )
            created = self.http_api.add_routes(
                path=route["path"],
                methods=[HTTP_METHODS[route["method"]]],
                integration=integration,
                authorizer=authorizer if route["authorization"] == "jwt" else None
            )
            for http_route in created:
                self.register_construct(f"route:{route['method']} {route['path']}", http_route)

    def _create_stage(self) -> None:
        stage_config = self.config["stage"]
        throttling = self.config["throttling"]
        self.stage = apigwv2.HttpStage(
            self,
            "Stage",
            http_api=self.http_api,
            stage_name=stage_config["name"],
            auto_deploy=stage_config["autoDeploy"],
            throttle=apigwv2.ThrottleSettings(
                rate_limit=throttling["rateLimit"],
                burst_limit=throttling["burstLimit"]
            ),
            detailed_metrics_enabled=self.config["monitoring"]["detailedMetrics"]
        )
        self.register_construct("stage", self.stage)

    def _configure_access_logging(self) -> None:
        access_logging = self.config["accessLogging"]
        if not access_logging["enabled"]:
            return
        log_group = self.create_log_group(
            "log:access",
            access_logging["logGroupName"],
            retention_days=access_logging["retentionDays"],
            removal_policy=access_logging["removalPolicy"]
        )
        cfn_stage = self.stage.node.default_child
        cfn_stage.add_property_override("AccessLogSettings", {
            "DestinationArn": log_group.log_group_arn,
            "Format": json.dumps(ACCESS_LOG_FORMAT, separators=(",", ":")),
        })

    def _create_custom_domain(self) -> None:
        custom_domain = self.config.get("customDomain") or {}
        if not custom_domain.get("domainName"):
            return
        self.domain_name = apigwv2.DomainName(
            self,
            "DomainName",
            domain_name=custom_domain["domainName"],
            certificate=acm.Certificate.from_certificate_arn(self, "Certificate", custom_domain["certificateArn"]),
            security_policy=apigwv2.SecurityPolicy.TLS_1_2
        )
        apigwv2.ApiMapping(
            self,
            "ApiMapping",
            api=self.http_api,
            domain_name=self.domain_name,
            stage=self.stage,
            api_mapping_key=custom_domain.get("basePath")
        )
        self.register_construct("domainName", self.domain_name)

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        dimensions = {"ApiId": self.http_api.api_id, "Stage": self.stage.stage_name}
        definitions = {
            "error4xx": MetricDefinition(
                "AWS/ApiGateway", "4xx", dimensions, "Sum",
                description="HTTP API 4xx responses"
            ),
            "error5xx": MetricDefinition(
                "AWS/ApiGateway", "5xx", dimensions, "Sum",
                description="HTTP API 5xx responses"
            ),
            "latencyMs": MetricDefinition(
                "AWS/ApiGateway", "Latency", dimensions, "Average",
                description="HTTP API latency in milliseconds"
            ),
        }
        self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )
