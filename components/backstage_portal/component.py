"""Backstage developer portal component."""

import json
from typing import Dict, Optional

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_ecr as ecr,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_iam as iam,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager,
)

from components.common.base import BaseComponent, to_removal_policy
from components.common.capabilities import PORTAL_BACKSTAGE
from components.common.mixins import (
    AlarmMixin,
    IAMPolicyMixin,
    KmsKeyMixin,
    MetricDefinition,
    SecurityGroupMixin,
)
from .builder import BACKEND_PORT, FRONTEND_PORT, POSTGRES_PORT, BackstagePortalConfigBuilder

DATABASE_NAME = "backstage"
DATABASE_USER = "backstage"

BACKEND_ROUTES = ["/api/*", "/healthcheck"]

# Secrets read from Secrets Manager under auth.secretsPrefix
AUTH_SECRETS = {
    "github": {"AUTH_GITHUB_CLIENT_ID": "github-client-id", "AUTH_GITHUB_CLIENT_SECRET": "github-client-secret"},
    "google": {"AUTH_GOOGLE_CLIENT_ID": "google-client-id", "AUTH_GOOGLE_CLIENT_SECRET": "google-client-secret"},
    "microsoft": {
        "AUTH_MICROSOFT_CLIENT_ID": "microsoft-client-id",
        "AUTH_MICROSOFT_CLIENT_SECRET": "microsoft-client-secret",
        "AUTH_MICROSOFT_TENANT_ID": "microsoft-tenant-id",
    },
}


class BackstagePortalComponent(BaseComponent, SecurityGroupMixin, KmsKeyMixin, IAMPolicyMixin, AlarmMixin):
    """
    Backstage portal on ECS Fargate.

    Creates an ECR repository, an ECS cluster with backend and frontend
    services behind an Application Load Balancer, and a PostgreSQL
    instance for the catalog. Requests to ``/api/*`` reach the backend,
    everything else the frontend.
    """

    builder_class = BackstagePortalConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.kms_key = None
        self.repository: Optional[ecr.Repository] = None
        self.cluster: Optional[ecs.Cluster] = None
        self.database: Optional[rds.DatabaseInstance] = None
        self.load_balancer: Optional[elbv2.ApplicationLoadBalancer] = None
        self.service_security_group: Optional[ec2.SecurityGroup] = None
        self.database_security_group: Optional[ec2.SecurityGroup] = None
        self.task_role: Optional[iam.Role] = None
        self.execution_role: Optional[iam.Role] = None
        self.services: Dict[str, ecs.FargateService] = {}
        self.containers: Dict[str, ecs.ContainerDefinition] = {}

    def _create_resources(self) -> None:
        vpc = self.resolve_vpc(self.config["vpc"])
        self._create_encryption_key()
        self._create_repository()
        self._create_security_groups(vpc)
        self._create_database(vpc)
        self._create_cluster(vpc)
        self._create_load_balancer(vpc)
        self._create_roles()
        self._create_services()
        self._create_listeners(vpc)
        self._create_alarms()
        self.register_capability(PORTAL_BACKSTAGE, {
            "url": self.portal_url,
            "loadBalancerDnsName": self.load_balancer.load_balancer_dns_name,
            "repositoryUri": self.repository.repository_uri,
            "clusterName": self.cluster.cluster_name,
            "databaseEndpoint": self.database.db_instance_endpoint_address,
            "databaseSecretArn": self.database.secret.secret_arn,
        })

    @property
    def portal_url(self) -> str:
        base_url = self.config["portal"].get("baseUrl")
        if base_url:
            return base_url.rstrip("/")
        scheme = "https" if self.config["loadBalancer"]["https"] else "http"
        return f"{scheme}://{self.load_balancer.load_balancer_dns_name}"

    def get_binding_principal(self) -> Optional[iam.IGrantable]:
        return self.task_role

    def get_binding_security_group(self) -> Optional[ec2.ISecurityGroup]:
        return self.service_security_group

    def get_security_group(self) -> Optional[ec2.ISecurityGroup]:
        return self.load_balancer.connections.security_groups[0] if self.load_balancer else None

    def _on_binding_environment(self, environment: Dict[str, str]) -> None:
        container = self.containers["backend"]
        for key, value in environment.items():
            container.add_environment(key, value)

    def _create_encryption_key(self) -> None:
        encryption = self.config["encryption"]
        if encryption["enabled"]:
            self.kms_key = self.resolve_kms_key(
                "kmsKey",
                encryption,
                description=f"Backstage portal key for {self.context.service_name}-{self.spec.name}",
                removal_policy=to_removal_policy(
                    "retain" if self.config["removalPolicy"] == "snapshot" else self.config["removalPolicy"]
                )
            )

    def _create_repository(self) -> None:
        ecr_config = self.config["ecr"]
        encryption = self.config["encryption"]
        if self.kms_key is not None:
            repository_encryption = ecr.RepositoryEncryption.KMS
        elif encryption["enabled"]:
            repository_encryption = ecr.RepositoryEncryption.AES_256
        else:
            repository_encryption = None
        self.repository = ecr.Repository(
            self,
            "Repository",
            repository_name=ecr_config["repositoryName"],
            image_scan_on_push=ecr_config["imageScanOnPush"],
            encryption=repository_encryption,
            encryption_key=self.kms_key,
            lifecycle_rules=[ecr.LifecycleRule(
                description="Keep only recent images",
                max_image_count=ecr_config["maxImageCount"],
                rule_priority=1
            )]
        )
        self.register_construct("repository", self.repository)

    def _create_security_groups(self, vpc: ec2.IVpc) -> None:
        self.service_security_group = self.create_component_security_group(
            "Services",
            vpc,
            [],
            description=f"Backstage services for {self.context.service_name}-{self.spec.name}",
            allow_all_outbound=True
        )
        self.register_construct("serviceSecurityGroup", self.service_security_group)

        self.database_security_group = self.create_component_security_group(
            "Database",
            vpc,
            [],
            description=f"Backstage database for {self.context.service_name}-{self.spec.name}"
        )
        self.allow_ingress_from_security_group(
            self.database_security_group,
            self.service_security_group,
            POSTGRES_PORT,
            description="Allow PostgreSQL from Backstage services"
        )
        self.register_construct("databaseSecurityGroup", self.database_security_group)

    def _create_database(self, vpc: ec2.IVpc) -> None:
        database = self.config["database"]
        encryption = self.config["encryption"]
        self.database = rds.DatabaseInstance(
            self,
            "Database",
            engine=rds.DatabaseInstanceEngine.postgres(version=rds.PostgresEngineVersion.VER_16),
            instance_type=ec2.InstanceType(database["instanceClass"][len("db."):]),
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS),
            security_groups=[self.database_security_group],
            credentials=rds.Credentials.from_generated_secret(DATABASE_USER, encryption_key=self.kms_key),
            database_name=DATABASE_NAME,
            allocated_storage=database["allocatedStorage"],
            max_allocated_storage=database["maxAllocatedStorage"],
            storage_encrypted=encryption["enabled"],
            storage_encryption_key=self.kms_key,
            multi_az=database["multiAz"],
            backup_retention=Duration.days(database["backupRetentionDays"]),
            deletion_protection=database["deletionProtection"],
            removal_policy=to_removal_policy(self.config["removalPolicy"])
        )
        self.apply_standard_tags(self.database, self.config["tags"])
        self.register_construct("database", self.database)

    def _create_cluster(self, vpc: ec2.IVpc) -> None:
        self.cluster = ecs.Cluster(
            self,
            "Cluster",
            vpc=vpc,
            cluster_name=f"{self.context.service_name}-{self.spec.name}",
            container_insights=True
        )
        self.register_construct("cluster", self.cluster)

    def _create_load_balancer(self, vpc: ec2.IVpc) -> None:
        internet_facing = self.config["loadBalancer"]["scheme"] == "internet-facing"
        self.load_balancer = elbv2.ApplicationLoadBalancer(
            self,
            "LoadBalancer",
            vpc=vpc,
            internet_facing=internet_facing,
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PUBLIC if internet_facing else ec2.SubnetType.PRIVATE_WITH_EGRESS
            ),
            drop_invalid_header_fields=True
        )
        self.apply_standard_tags(self.load_balancer, self.config["tags"])
        self.register_construct("loadBalancer", self.load_balancer)

    def _create_roles(self) -> None:
        self.execution_role = self.create_service_role(
            "ExecutionRole",
            "ecs-tasks.amazonaws.com",
            f"Task execution role for Backstage portal {self.spec.name}",
            managed_policy_names=["service-role/AmazonECSTaskExecutionRolePolicy"]
        )
        self.task_role = self.create_service_role(
            "TaskRole",
            "ecs-tasks.amazonaws.com",
            f"Task role for Backstage portal {self.spec.name}"
        )
        self.register_construct("executionRole", self.execution_role)
        self.register_construct("taskRole", self.task_role)

    def _auth_secrets(self) -> Dict[str, ecs.Secret]:
        auth = self.config["auth"]
        secrets = {}
        for variable, suffix in AUTH_SECRETS[auth["provider"]].items():
            secret = secretsmanager.Secret.from_secret_name_v2(
                self, f"AuthSecret-{suffix}", f"{auth['secretsPrefix']}/{suffix}"
            )
            secrets[variable] = ecs.Secret.from_secrets_manager(secret)
        return secrets

    def _create_services(self) -> None:
        portal = self.config["portal"]
        base_environment = {
            "NODE_ENV": "production",
            "APP_BASE_URL": self.portal_url,
            "BACKEND_BASE_URL": self.portal_url,
            "ORGANIZATION_NAME": portal["organization"],
            "APP_TITLE": portal["name"],
        }

        backend_environment = {
            **base_environment,
            "PORT": str(BACKEND_PORT),
            "POSTGRES_HOST": self.database.db_instance_endpoint_address,
            "POSTGRES_PORT": self.database.db_instance_endpoint_port,
            "AUTH_PROVIDER": self.config["auth"]["provider"],
            "CATALOG_PROVIDERS": json.dumps(self.config["catalog"]["providers"], sort_keys=True),
        }
        backend_secrets = {
            "POSTGRES_USER": ecs.Secret.from_secrets_manager(self.database.secret, "username"),
            "POSTGRES_PASSWORD": ecs.Secret.from_secrets_manager(self.database.secret, "password"),
            **self._auth_secrets(),
        }
        self._create_service("backend", BACKEND_PORT, backend_environment, backend_secrets)
        self._create_service("frontend", FRONTEND_PORT, {**base_environment, "PORT": str(FRONTEND_PORT)}, {})

    def _create_service(self,
                        kind: str,
                        port: int,
                        environment: Dict[str, str],
                        secrets: Dict[str, ecs.Secret]) -> None:
        task_config = self.config[kind]
        log_group = self.create_log_group(
            f"log:{kind}",
            self.config["logging"][f"{kind}LogGroupName"],
            retention_days=self.config["logging"]["retentionDays"],
            removal_policy=self.config["logging"]["removalPolicy"]
        )

        task_definition = ecs.FargateTaskDefinition(
            self,
            f"{kind}-task",
            family=f"{self.context.service_name}-{self.spec.name}-{kind}",
            cpu=task_config["cpu"],
            memory_limit_mib=task_config["memory"],
            execution_role=self.execution_role,
            task_role=self.task_role
        )
        container = task_definition.add_container(
            kind,
            container_name=f"backstage-{kind}",
            image=ecs.ContainerImage.from_ecr_repository(self.repository, task_config["imageTag"]),
            port_mappings=[ecs.PortMapping(container_port=port, protocol=ecs.Protocol.TCP)],
            environment=environment,
            secrets=secrets or None,
            logging=ecs.LogDrivers.aws_logs(stream_prefix=f"backstage-{kind}", log_group=log_group),
            health_check=ecs.HealthCheck(
                command=["CMD-SHELL", f"curl -f http://localhost:{port}{task_config['healthCheckPath']} || exit 1"],
                interval=Duration.seconds(task_config["healthCheckIntervalSeconds"]),
                timeout=Duration.seconds(5),
                retries=3,
                start_period=Duration.seconds(60)
            )
        )

        service = ecs.FargateService(
            self,
            f"{kind}-service",
            cluster=self.cluster,
            task_definition=task_definition,
            service_name=f"{self.context.service_name}-{self.spec.name}-{kind}",
            desired_count=task_config["desiredCount"],
            assign_public_ip=False,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS),
            security_groups=[self.service_security_group],
            health_check_grace_period=Duration.seconds(120),
            circuit_breaker=ecs.DeploymentCircuitBreaker(rollback=True)
        )
        self.containers[kind] = container
        self.services[kind] = service
        self.register_construct(f"taskDefinition:{kind}", task_definition)
        self.register_construct(f"service:{kind}", service)

    def _target_group(self, kind: str, port: int, vpc: ec2.IVpc) -> elbv2.ApplicationTargetGroup:
        task_config = self.config[kind]
        target_group = elbv2.ApplicationTargetGroup(
            self,
            f"{kind}-targets",
            vpc=vpc,
            port=port,
            protocol=elbv2.ApplicationProtocol.HTTP,
            target_type=elbv2.TargetType.IP,
            health_check=elbv2.HealthCheck(
                path=task_config["healthCheckPath"],
                interval=Duration.seconds(task_config["healthCheckIntervalSeconds"]),
                timeout=Duration.seconds(5),
                healthy_threshold_count=2,
                unhealthy_threshold_count=3,
                healthy_http_codes="200"
            )
        )
        self.services[kind].attach_to_application_target_group(target_group)
        self.register_construct(f"targetGroup:{kind}", target_group)
        return target_group

    def _create_listeners(self, vpc: ec2.IVpc) -> None:
        frontend_targets = self._target_group("frontend", FRONTEND_PORT, vpc)
        backend_targets = self._target_group("backend", BACKEND_PORT, vpc)
        load_balancer_config = self.config["loadBalancer"]

        if load_balancer_config["https"]:
            listener = self.load_balancer.add_listener(
                "HttpsListener",
                port=443,
                protocol=elbv2.ApplicationProtocol.HTTPS,
                certificates=[elbv2.ListenerCertificate.from_arn(load_balancer_config["certificateArn"])],
                ssl_policy=elbv2.SslPolicy.RECOMMENDED_TLS,
                default_target_groups=[frontend_targets]
            )
            redirect = self.load_balancer.add_listener(
                "HttpListener",
                port=80,
                protocol=elbv2.ApplicationProtocol.HTTP,
                default_action=elbv2.ListenerAction.redirect(protocol="HTTPS", port="443", permanent=True)
            )
            self.register_construct("listener:80", redirect)
            self.register_construct("listener:443", listener)
        else:
            listener = self.load_balancer.add_listener(
                "HttpListener",
                port=80,
                protocol=elbv2.ApplicationProtocol.HTTP,
                default_target_groups=[frontend_targets]
            )
            self.register_construct("listener:80", listener)

        listener.add_target_groups(
            "BackendRoutes",
            priority=10,
            conditions=[elbv2.ListenerCondition.path_patterns(BACKEND_ROUTES)],
            target_groups=[backend_targets]
        )

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        cluster_name = self.cluster.cluster_name
        definitions = {
            "cpuUtilization": MetricDefinition(
                "AWS/ECS", "CPUUtilization", {"ClusterName": cluster_name},
                description="Backstage cluster CPU utilization"
            ),
            "memoryUtilization": MetricDefinition(
                "AWS/ECS", "MemoryUtilization", {"ClusterName": cluster_name},
                description="Backstage cluster memory utilization"
            ),
            "runningTaskCount": MetricDefinition(
                "ECS/ContainerInsights", "RunningTaskCount", {"ClusterName": cluster_name}, "Minimum",
                comparison="lt",
                description="Backstage running tasks"
            ),
        }
        self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )

