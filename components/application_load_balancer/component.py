"""Application Load Balancer component."""

from typing import Any, Dict, List, Optional

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_elasticloadbalancingv2 as elbv2,
    aws_s3 as s3,
)

from components.common.base import BaseComponent, to_removal_policy
from components.common.capabilities import NET_LOAD_BALANCER
from components.common.mixins import AccessLoggingMixin, AlarmMixin, MetricDefinition, SecurityGroupMixin
from .builder import ApplicationLoadBalancerConfigBuilder

PROTOCOLS = {
    "HTTP": elbv2.ApplicationProtocol.HTTP,
    "HTTPS": elbv2.ApplicationProtocol.HTTPS,
}

TARGET_TYPES = {
    "instance": elbv2.TargetType.INSTANCE,
    "ip": elbv2.TargetType.IP,
    "lambda": elbv2.TargetType.LAMBDA,
}

SSL_POLICIES = {
    "RECOMMENDED_TLS": elbv2.SslPolicy.RECOMMENDED_TLS,
    "TLS13_RES": elbv2.SslPolicy.TLS13_RES,
    "TLS12": elbv2.SslPolicy.TLS12,
    "TLS12_EXT": elbv2.SslPolicy.TLS12_EXT,
    "FORWARD_SECRECY_TLS12_RES": elbv2.SslPolicy.FORWARD_SECRECY_TLS12_RES,
}


class ApplicationLoadBalancerComponent(BaseComponent, SecurityGroupMixin, AccessLoggingMixin, AlarmMixin):
    """Application Load Balancer with listeners, target groups, access logs and alarms."""

    builder_class = ApplicationLoadBalancerConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.load_balancer: Optional[elbv2.ApplicationLoadBalancer] = None
        self.security_groups: List[ec2.ISecurityGroup] = []
        self.target_groups: Dict[str, elbv2.ApplicationTargetGroup] = {}
        self.listeners: Dict[int, elbv2.ApplicationListener] = {}

    def _create_resources(self) -> None:
        vpc = self.resolve_vpc(self.config["vpc"])
        self._create_security_groups(vpc)
        self._create_load_balancer(vpc)
        self._configure_access_logs()
        self._create_target_groups(vpc)
        self._create_listeners()
        self._create_alarms()
        self.register_capability(NET_LOAD_BALANCER, {
            "loadBalancerArn": self.load_balancer.load_balancer_arn,
            "dnsName": self.load_balancer.load_balancer_dns_name,
            "hostedZoneId": self.load_balancer.load_balancer_canonical_hosted_zone_id,
            "securityGroupIds": [group.security_group_id for group in self.security_groups],
            "listenerArns": {str(port): listener.listener_arn for port, listener in self.listeners.items()},
            "targetGroupArns": {
                name: target_group.target_group_arn for name, target_group in self.target_groups.items()
            },
        })

    def get_security_group(self) -> Optional[ec2.ISecurityGroup]:
        return self.security_groups[0] if self.security_groups else None

    def get_binding_security_group(self) -> Optional[ec2.ISecurityGroup]:
        return self.get_security_group()

    def _create_security_groups(self, vpc: ec2.IVpc) -> None:
        sg_config = self.config["securityGroups"]
        if sg_config["create"]:
            security_group = self.create_component_security_group(
                "LoadBalancer",
                vpc,
                [],
                description=f"Security group for load balancer {self.config['loadBalancerName']}",
                allow_all_outbound=True
            )
            for rule in sg_config["ingress"]:
                self.allow_ingress_from_cidrs(security_group, [rule["port"]], [rule["cidr"]])
            self.register_construct("securityGroup", security_group)
            self.security_groups.append(security_group)
        for index, group_id in enumerate(sg_config["securityGroupIds"]):
            self.security_groups.append(
                ec2.SecurityGroup.from_security_group_id(self, f"ImportedSecurityGroup{index}", group_id)
            )

    def _subnet_selection(self, vpc: ec2.IVpc) -> ec2.SubnetSelection:
        vpc_config = self.config["vpc"]
        if vpc_config["subnetIds"]:
            return ec2.SubnetSelection(subnets=self.resolve_subnets(vpc, vpc_config["subnetIds"]))
        subnet_type = (
            ec2.SubnetType.PUBLIC if vpc_config["subnetType"] == "public"
            else ec2.SubnetType.PRIVATE_WITH_EGRESS
        )
        return ec2.SubnetSelection(subnet_type=subnet_type)

    def _create_load_balancer(self, vpc: ec2.IVpc) -> None:
        config = self.config
        self.load_balancer = elbv2.ApplicationLoadBalancer(
            self,
            "LoadBalancer",
            vpc=vpc,
            internet_facing=config["scheme"] == "internet-facing",
            load_balancer_name=config["loadBalancerName"],
            ip_address_type=(
                elbv2.IpAddressType.DUAL_STACK if config["ipAddressType"] == "dualstack"
                else elbv2.IpAddressType.IPV4
            ),
            security_group=self.security_groups[0],
            vpc_subnets=self._subnet_selection(vpc),
            deletion_protection=config["deletionProtection"],
            idle_timeout=Duration.seconds(config["idleTimeoutSeconds"]),
            drop_invalid_header_fields=config["dropInvalidHeaderFields"]
        )
        for security_group in self.security_groups[1:]:
            self.load_balancer.add_security_group(security_group)
        self.apply_standard_tags(self.load_balancer, config["tags"])
        self.register_construct("loadBalancer", self.load_balancer)

    def _configure_access_logs(self) -> None:
        access_logs = self.config["accessLogs"]
        if not access_logs["enabled"]:
            return
        if access_logs.get("bucketName"):
            bucket = s3.Bucket.from_bucket_name(self, "AccessLogBucket", access_logs["bucketName"])
        else:
            bucket = self.create_access_log_bucket(
                "AccessLogBucket",
                "alb",
                retention_days=access_logs["retentionDays"],
                removal_policy=to_removal_policy(access_logs["removalPolicy"])
            )
        self.register_construct("accessLogBucket", bucket)
        self.configure_load_balancer_logging(
            self.load_balancer,
            bucket,
            access_logs["prefix"],
            connection_logging=access_logs["connectionLogs"]
        )

    def _create_target_groups(self, vpc: ec2.IVpc) -> None:
        for target_group_config in self.config["targetGroups"]:
            name = target_group_config["name"]
            health = target_group_config["healthCheck"]
            stickiness = target_group_config["stickiness"]
            lambda_targets = target_group_config["targetType"] == "lambda"
            target_group = elbv2.ApplicationTargetGroup(
                self,
                f"TargetGroup-{name}",
                vpc=vpc,
                target_group_name=name,
                port=None if lambda_targets else target_group_config["port"],
                protocol=None if lambda_targets else PROTOCOLS[target_group_config["protocol"]],
                target_type=TARGET_TYPES[target_group_config["targetType"]],
                deregistration_delay=Duration.seconds(target_group_config["deregistrationDelaySeconds"]),
                stickiness_cookie_duration=(
                    Duration.seconds(stickiness["durationSeconds"]) if stickiness["enabled"] else None
                ),
                health_check=elbv2.HealthCheck(
                    enabled=health["enabled"],
                    path=health["path"],
                    protocol=elbv2.Protocol.HTTPS if health["protocol"] == "HTTPS" else elbv2.Protocol.HTTP,
                    port=health.get("port"),
                    healthy_threshold_count=health["healthyThresholdCount"],
                    unhealthy_threshold_count=health["unhealthyThresholdCount"],
                    timeout=Duration.seconds(health["timeoutSeconds"]),
                    interval=Duration.seconds(health["intervalSeconds"]),
                    healthy_http_codes=health["matcher"]
                )
            )
            self.target_groups[name] = target_group
            self.register_construct(f"targetGroup:{name}", target_group)

    def _default_action(self, listener: Dict[str, Any]) -> elbv2.ListenerAction:
        if listener["redirectToHttps"]:
            return elbv2.ListenerAction.redirect(protocol="HTTPS", port="443", permanent=True)
        action = listener.get("defaultAction")
        if action and action["type"] == "forward":
            return elbv2.ListenerAction.forward([self.target_groups[action["targetGroup"]]])
        if action is None and self.target_groups:
            return elbv2.ListenerAction.forward([next(iter(self.target_groups.values()))])
        action = action or {"statusCode": 404, "contentType": "text/plain", "messageBody": "Not Found"}
        return elbv2.ListenerAction.fixed_response(
            action["statusCode"],
            content_type=action["contentType"],
            message_body=action["messageBody"]
        )

    def _create_listeners(self) -> None:
        for listener_config in self.config["listeners"]:
            port = listener_config["port"]
            https = listener_config["protocol"] == "HTTPS"
            listener = self.load_balancer.add_listener(
                f"Listener{port}",
                port=port,
                protocol=PROTOCOLS[listener_config["protocol"]],
                certificates=(
                    [elbv2.ListenerCertificate.from_arn(listener_config["certificateArn"])] if https else None
                ),
                ssl_policy=SSL_POLICIES[listener_config["sslPolicy"]] if https else None,
                default_action=self._default_action(listener_config),
                open=False
            )
            self.listeners[port] = listener
            self.register_construct(f"listener:{port}", listener)

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        dimensions = {"LoadBalancer": self.load_balancer.load_balancer_full_name}
        definitions = {
            "http5xx": MetricDefinition(
                "AWS/ApplicationELB", "HTTPCode_ELB_5XX_Count", dimensions, "Sum",
                description="Load balancer 5xx responses"
            ),
            "targetResponseTime": MetricDefinition(
                "AWS/ApplicationELB", "TargetResponseTime", dimensions, "Average",
                description="Target response time in seconds"
            ),
            "rejectedConnections": MetricDefinition(
                "AWS/ApplicationELB", "RejectedConnectionCount", dimensions, "Sum",
                description="Connections rejected by the load balancer"
            ),
        }
        if self.target_groups:
            target_group = next(iter(self.target_groups.values()))
            definitions["unhealthyHosts"] = MetricDefinition(
                "AWS/ApplicationELB",
                "UnHealthyHostCount",
                {**dimensions, "TargetGroup": target_group.target_group_full_name},
                "Maximum",
                description="Unhealthy targets in the default target group"
            )
        self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )
