"""
Access Logging Mixin

Provides consistent S3 access-log buckets for Application Load Balancers
and CloudFront distributions.

Follows AWS guidance as documented in:
- https://docs.aws.amazon.com/elasticloadbalancing/latest/application/enable-access-logging.html
- https://docs.aws.amazon.com/AmazonCloudFront/latest/DeveloperGuide/standard-logging-legacy-s3.html
"""

from typing import Optional

from aws_cdk import (
    aws_s3 as s3,
    aws_iam as iam,
    aws_elasticloadbalancingv2 as elbv2,
    Duration,
    RemovalPolicy,
    Stack,
)

# ELB log delivery account IDs for regions that predate the service principal
ELB_SERVICE_ACCOUNTS = {
    'us-east-1': '127311923021',
    'us-east-2': '033677994240',
    'us-west-1': '027434742980',
    'us-west-2': '797873946194',
    'us-gov-west-1': '048591011584',
    'us-gov-east-1': '190560391635',
    'ca-central-1': '985666609251',
    'eu-west-1': '156460612806',
    'eu-central-1': '054676820928',
    'eu-west-2': '652711504416',
    'eu-west-3': '009996457667',
    'eu-north-1': '897822967062',
    'ap-northeast-1': '582318560864',
    'ap-northeast-2': '600734575887',
    'ap-southeast-1': '114774131450',
    'ap-southeast-2': '783225319266',
    'ap-south-1': '718504428378',
    'sa-east-1': '507241528517',
}


class AccessLoggingMixin:
    """
    Mixin class that provides standardized access-log buckets.

    Buckets are encrypted with S3 managed keys, block public access, enforce
    TLS and expire objects after the configured retention.
    """

    def create_access_log_bucket(self,
                                 construct_id: str,
                                 log_type: str,
                                 retention_days: int = 90,
                                 bucket_name: Optional[str] = None,
                                 acl_delivery: bool = False,
                                 removal_policy: RemovalPolicy = RemovalPolicy.RETAIN) -> s3.Bucket:
        """
        Create an S3 bucket for access logs.

        Args:
            construct_id: Construct id for the bucket
            log_type: Log family, used for lifecycle rule naming
            retention_days: Number of days to retain logs in S3
            bucket_name: Optional explicit bucket name
            acl_delivery: Enable object ACLs, required by CloudFront standard logging
            removal_policy: Bucket removal policy

        Returns:
            The created S3 bucket
        """
        bucket = s3.Bucket(
            self,
            construct_id,
            bucket_name=bucket_name,
            versioned=True,
            encryption=s3.BucketEncryption.S3_MANAGED,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
            object_ownership=(
                s3.ObjectOwnership.OBJECT_WRITER if acl_delivery
                else s3.ObjectOwnership.BUCKET_OWNER_ENFORCED
            ),
            removal_policy=removal_policy,
            auto_delete_objects=False,
            lifecycle_rules=[
                s3.LifecycleRule(
                    id=f"{log_type}-logs-lifecycle",
                    enabled=True,
                    expiration=Duration.days(retention_days),
                    noncurrent_version_expiration=Duration.days(30),
                    abort_incomplete_multipart_upload_after=Duration.days(7)
                )
            ]
        )
        bucket.node.add_metadata("LogType", log_type)
        return bucket

    def configure_load_balancer_logging(self,
                                        load_balancer: elbv2.ApplicationLoadBalancer,
                                        bucket: s3.IBucket,
                                        prefix: str,
                                        connection_logging: bool = False) -> None:
        """
        Point an ALB's access (and optionally connection) logs at ``bucket``.

        Args:
            load_balancer: The ALB to configure logging for
            bucket: S3 bucket for storing logs
            prefix: S3 prefix shared by both log types
            connection_logging: Whether to enable connection logs as well
        """
        self._add_elb_bucket_policy(bucket, prefix)

        load_balancer.set_attribute("access_logs.s3.enabled", "true")
        load_balancer.set_attribute("access_logs.s3.bucket", bucket.bucket_name)
        load_balancer.set_attribute("access_logs.s3.prefix", f"{prefix}-access")

        if connection_logging:
            load_balancer.set_attribute("connection_logs.s3.enabled", "true")
            load_balancer.set_attribute("connection_logs.s3.bucket", bucket.bucket_name)
            load_balancer.set_attribute("connection_logs.s3.prefix", f"{prefix}-connection")

        # Attributes reference the bucket policy implicitly; make ordering explicit
        if bucket.policy is not None:
            load_balancer.node.add_dependency(bucket.policy)

    def _add_elb_bucket_policy(self, bucket: s3.IBucket, prefix: str) -> None:
        """
        Allow the ELB log delivery principal to write under ``prefix``.

        Unresolved regions and regions outside the legacy account table use
        the log delivery service principal.
        """
        region = Stack.of(bucket).region
        elb_account_id = ELB_SERVICE_ACCOUNTS.get(region)
        if elb_account_id:
            elb_principal = iam.AccountPrincipal(elb_account_id)
        else:
            elb_principal = iam.ServicePrincipal('logdelivery.elasticloadbalancing.amazonaws.com')

        bucket.add_to_resource_policy(
            iam.PolicyStatement(
                sid="AWSLogDeliveryWrite",
                effect=iam.Effect.ALLOW,
                principals=[elb_principal],
                actions=["s3:PutObject"],
                resources=[bucket.arn_for_objects(f"{prefix}-*/AWSLogs/{Stack.of(bucket).account}/*")]
            )
        )
        bucket.add_to_resource_policy(
            iam.PolicyStatement(
                sid="AWSLogDeliveryAclCheck",
                effect=iam.Effect.ALLOW,
                principals=[elb_principal],
                actions=["s3:GetBucketAcl"],
                resources=[bucket.bucket_arn]
            )
        )
