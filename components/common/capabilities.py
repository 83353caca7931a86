"""Capability vocabulary used for component binding."""

import re
from typing import Dict

from .exceptions import ValidationError

CAPABILITY_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9]*:[a-z][a-z0-9-]*$")

CACHE_REDIS = "cache:redis"
DB_DYNAMODB = "db:dynamodb"
JOB_GLUE = "job:glue"
CDN_CLOUDFRONT = "cdn:cloudfront"
STORAGE_EFS = "storage:efs"
NET_LOAD_BALANCER = "net:load-balancer"
API_HTTP = "api:http"
QUEUE_SQS = "queue:sqs"
PORTAL_BACKSTAGE = "portal:backstage"

KNOWN_CAPABILITIES: Dict[str, str] = {
    CACHE_REDIS: "Redis endpoint (host, port) of an ElastiCache replication group",
    DB_DYNAMODB: "DynamoDB table name, ARN and stream ARN",
    JOB_GLUE: "Glue job name and execution role",
    CDN_CLOUDFRONT: "CloudFront distribution id and domain name",
    STORAGE_EFS: "EFS file system id, ARN and security group",
    NET_LOAD_BALANCER: "Application Load Balancer DNS name, ARN and listeners",
    API_HTTP: "HTTP API id, endpoint and stage",
    QUEUE_SQS: "SQS queue URL, ARN and dead-letter queue ARN",
    PORTAL_BACKSTAGE: "Backstage portal URL, image repository, cluster and database endpoint",
}


def validate_capability_key(key: str) -> None:
    """
    Check that ``key`` is a well-formed, registered capability.

    Raises:
        ValidationError: If the key is malformed or unknown
    """
    if not isinstance(key, str) or not CAPABILITY_KEY_PATTERN.match(key):
        raise ValidationError(
            f"Capability key must look like '<category>:<kind>', got '{key}'",
            parameter_name="capability",
            provided_value=str(key)
        )
    if key not in KNOWN_CAPABILITIES:
        raise ValidationError(
            f"Unknown capability '{key}'. Known capabilities: {', '.join(sorted(KNOWN_CAPABILITIES))}",
            parameter_name="capability",
            provided_value=key
        )
