"""IAM policy mixin for platform components."""

from typing import Dict, List, Optional

import aws_cdk
from aws_cdk import aws_iam as iam

from ..constants import ComplianceFramework


def transport_conditions(framework: ComplianceFramework) -> Dict[str, Dict[str, str]]:
    """
    Conditions attached to every platform-generated grant.

    TLS is always required; FedRAMP frameworks also pin requests to the
    deployment region.
    """
    conditions = {"Bool": {"aws:SecureTransport": "true"}}
    if framework.is_fedramp:
        conditions["StringEquals"] = {"aws:RequestedRegion": aws_cdk.Aws.REGION}
    return conditions


class IAMPolicyMixin:
    """
    Mixin class providing common IAM policy functionality.

    Provides reusable methods for creating service roles and adding scoped
    permissions, following the principle of least privilege.
    """

    def create_service_role(self,
                            construct_id: str,
                            service_principal: str,
                            description: str,
                            managed_policy_names: Optional[List[str]] = None) -> iam.Role:
        """
        Create a role assumable by an AWS service.

        Args:
            construct_id: Construct id for the role
            service_principal: e.g. ``glue.amazonaws.com``
            description: Role description
            managed_policy_names: AWS managed policy names to attach
        """
        return iam.Role(
            self,
            construct_id,
            assumed_by=iam.ServicePrincipal(service_principal),
            description=description,
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(name)
                for name in (managed_policy_names or [])
            ]
        )

    def add_s3_read_permissions(self, role: iam.IRole, s3_uris: List[str]) -> None:
        """
        Allow reading the objects addressed by ``s3://bucket/key`` URIs.

        Args:
            role: The IAM role to add permissions to
            s3_uris: S3 URIs; a trailing key is widened to its prefix
        """
        resources = []
        for uri in s3_uris:
            if not uri or not uri.startswith("s3://"):
                continue
            bucket, _, key = uri[len("s3://"):].partition("/")
            prefix = key.rsplit("/", 1)[0] + "/*" if "/" in key else "*"
            resources.append(f"arn:{aws_cdk.Aws.PARTITION}:s3:::{bucket}/{prefix}")
        if not resources:
            return

        role.add_to_principal_policy(iam.PolicyStatement(
            effect=iam.Effect.ALLOW,
            resources=resources,
            actions=["s3:GetObject", "s3:GetObjectVersion"]
        ))

    def add_kms_permissions(self, role: iam.IRole, kms_key_arn: str, via_service: Optional[str] = None) -> None:
        """
        Allow a role to use a KMS key, optionally only through one service.

        Args:
            role: The IAM role to add permissions to
            kms_key_arn: KMS key ARN
            via_service: Service prefix for the kms:ViaService condition, e.g. ``logs``
        """
        conditions = None
        if via_service:
            conditions = {
                "StringEquals": {
                    "kms:ViaService": f"{via_service}.{aws_cdk.Aws.REGION}.amazonaws.com"
                }
            }
        role.add_to_principal_policy(iam.PolicyStatement(
            effect=iam.Effect.ALLOW,
            resources=[kms_key_arn],
            actions=[
                "kms:Decrypt",
                "kms:DescribeKey",
                "kms:Encrypt",
                "kms:GenerateDataKey*",
                "kms:ReEncrypt*"
            ],
            conditions=conditions
        ))

    def add_log_permissions(self, role: iam.IRole, log_group_arns: List[str]) -> None:
        if not log_group_arns:
            return
        role.add_to_principal_policy(iam.PolicyStatement(
            effect=iam.Effect.ALLOW,
            resources=list(log_group_arns),
            actions=[
                "logs:CreateLogStream",
                "logs:PutLogEvents"
            ]
        ))
