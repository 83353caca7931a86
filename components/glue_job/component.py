"""AWS Glue job component."""

from typing import Dict, Optional

import aws_cdk as cdk
from aws_cdk import (
    aws_glue as glue,
    aws_iam as iam,
    aws_kms as kms,
)

from components.common.base import BaseComponent, to_removal_policy
from components.common.capabilities import JOB_GLUE
from components.common.mixins import AlarmMixin, IAMPolicyMixin, KmsKeyMixin, MetricDefinition
from components.common.validators import AWSResourceValidator
from .builder import GlueJobConfigBuilder


class GlueJobComponent(BaseComponent, IAMPolicyMixin, KmsKeyMixin, AlarmMixin):
    """Glue job with its execution role, encryption, log groups and alarms."""

    builder_class = GlueJobConfigBuilder

    def __init__(self, scope, construct_id, context, spec, builder=None) -> None:
        super().__init__(scope, construct_id, context, spec, builder)
        self.role: Optional[iam.IRole] = None
        self.job: Optional[glue.CfnJob] = None
        self.kms_key: Optional[kms.IKey] = None
        self.security_configuration: Optional[glue.CfnSecurityConfiguration] = None

    def _create_resources(self) -> None:
        self._create_role()
        self._create_encryption()
        log_groups = self._create_log_groups()
        self._create_job()
        for log_group in log_groups:
            self.job.node.add_dependency(log_group)
        self._create_alarms()
        self.register_capability(JOB_GLUE, {
            "jobName": self.config["jobName"],
            "jobArn": self.job_arn,
            "roleArn": self.role.role_arn,
        })

    @property
    def job_arn(self) -> str:
        return cdk.Stack.of(self).format_arn(
            service="glue",
            resource="job",
            resource_name=self.config["jobName"]
        )

    def get_binding_principal(self) -> Optional[iam.IGrantable]:
        return self.role

    def _on_binding_environment(self, environment: Dict[str, str]) -> None:
        for key, value in environment.items():
            self.job.add_property_override(f"DefaultArguments.--{key}", value)

    def _create_role(self) -> None:
        role_arn = self.config.get("roleArn")
        if role_arn:
            AWSResourceValidator.validate_arn(role_arn, service="iam")
            self.role = iam.Role.from_role_arn(self, "ExecutionRole", role_arn)
        else:
            self.role = self.create_service_role(
                "ExecutionRole",
                "glue.amazonaws.com",
                f"Execution role for Glue job {self.config['jobName']}",
                managed_policy_names=["service-role/AWSGlueServiceRole"]
            )
            self.add_s3_read_permissions(self.role, [self.config["scriptLocation"]])
        self.register_construct("executionRole", self.role)

    def _create_encryption(self) -> None:
        security = self.config["security"]
        encryption = security["encryption"]
        if not encryption.get("enabled"):
            return

        self.kms_key = self.resolve_kms_key(
            "kmsKey",
            encryption,
            description=f"Glue job encryption key for {self.config['jobName']}",
            removal_policy=to_removal_policy(encryption.get("removalPolicy"), "destroy")
        )
        if isinstance(self.kms_key, kms.Key):
            self.kms_key.grant_encrypt_decrypt(
                iam.ServicePrincipal(f"logs.{cdk.Aws.REGION}.amazonaws.com")
            )
        self.add_kms_permissions(self.role, self.kms_key.key_arn)

        key_arn = self.kms_key.key_arn
        self.security_configuration = glue.CfnSecurityConfiguration(
            self,
            "SecurityConfiguration",
            name=security["securityConfigurationName"],
            encryption_configuration=glue.CfnSecurityConfiguration.EncryptionConfigurationProperty(
                cloud_watch_encryption=glue.CfnSecurityConfiguration.CloudWatchEncryptionProperty(
                    cloud_watch_encryption_mode="SSE-KMS",
                    kms_key_arn=key_arn
                ),
                job_bookmarks_encryption=glue.CfnSecurityConfiguration.JobBookmarksEncryptionProperty(
                    job_bookmarks_encryption_mode="CSE-KMS",
                    kms_key_arn=key_arn
                ),
                s3_encryptions=[
                    glue.CfnSecurityConfiguration.S3EncryptionProperty(
                        s3_encryption_mode="SSE-KMS",
                        kms_key_arn=key_arn
                    )
                ]
            )
        )
        self.register_construct("securityConfiguration", self.security_configuration)

    def _create_log_groups(self) -> list:
        log_groups = []
        for group in self.config["logging"]["groups"]:
            if not group["enabled"]:
                continue
            log_groups.append(self.create_log_group(
                f"log:{group['id']}",
                group["logGroupName"],
                retention_days=group["retentionDays"],
                removal_policy=group["removalPolicy"]
            ))
        if log_groups and isinstance(self.role, iam.Role):
            self.add_log_permissions(self.role, [log_group.log_group_arn for log_group in log_groups])
        return log_groups

    def _create_job(self) -> None:
        config = self.config
        worker = config.get("workerConfiguration") or {}

        self.job = glue.CfnJob(
            self,
            "Job",
            name=config["jobName"],
            description=config["description"],
            role=self.role.role_arn,
            command=glue.CfnJob.JobCommandProperty(
                name=config["jobType"],
                script_location=config["scriptLocation"],
                python_version=config["command"]["pythonVersion"]
            ),
            glue_version=config["glueVersion"] if config["jobType"] != "pythonshell" else None,
            max_retries=config["maxRetries"],
            timeout=config["timeout"],
            worker_type=worker.get("workerType"),
            number_of_workers=worker.get("numberOfWorkers"),
            max_capacity=config.get("maxCapacity"),
            default_arguments=config["defaultArguments"],
            non_overridable_arguments=config["nonOverridableArguments"] or None,
            connections=(
                glue.CfnJob.ConnectionsListProperty(connections=config["connections"])
                if config["connections"] else None
            ),
            execution_property=glue.CfnJob.ExecutionPropertyProperty(
                max_concurrent_runs=config["maxConcurrentRuns"]
            ),
            notification_property=(
                glue.CfnJob.NotificationPropertyProperty(notify_delay_after=config["notifyDelayAfter"])
                if config.get("notifyDelayAfter") else None
            ),
            security_configuration=(
                self.security_configuration.name if self.security_configuration else None
            ),
            tags={**self.get_standard_tags(), **config["tags"]}
        )
        if self.security_configuration is not None:
            self.job.add_dependency(self.security_configuration)
        self.register_construct("job", self.job)

    def _create_alarms(self) -> None:
        monitoring = self.config["monitoring"]
        if not monitoring.get("enabled"):
            return
        job_name = self.config["jobName"]
        definitions = {
            "jobFailure": MetricDefinition(
                "Glue",
                "glue.driver.aggregate.numFailedTasks",
                {"JobName": job_name, "JobRunId": "ALL", "Type": "count"},
                "Sum",
                description=f"Glue job {job_name} failed tasks"
            ),
            "jobDuration": MetricDefinition(
                "Glue",
                "glue.driver.aggregate.elapsedTime",
                {"JobName": job_name, "JobRunId": "ALL", "Type": "gauge"},
                "Maximum",
                description=f"Glue job {job_name} elapsed time in milliseconds"
            ),
        }
        self.create_configured_alarms(
            monitoring.get("alarms", {}),
            definitions,
            f"{self.context.service_name}-{self.spec.name}"
        )
