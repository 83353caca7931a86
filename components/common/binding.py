"""
Binding resolution between components.

A component lists ``binds`` directives in the manifest. Each directive names a
target component and one of the capabilities it registered. The resolver
picks the binder for that capability and produces the IAM statements and
environment variables the source component needs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import aws_cdk
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_iam as iam

from .base import BaseComponent
from .capabilities import API_HTTP, CACHE_REDIS, DB_DYNAMODB, QUEUE_SQS, STORAGE_EFS
from .constants import ACCESS_LEVELS, ComplianceFramework
from .contracts import BindingDirective
from .exceptions import BindingError, ValidationError
from .mixins.iam import transport_conditions

logger = logging.getLogger(__name__)


@dataclass
class BindingResult:
    """What a source component receives for one binding directive."""

    source: str
    target: str
    capability: str
    access: str
    statements: List[iam.PolicyStatement] = field(default_factory=list)
    environment: Dict[str, str] = field(default_factory=dict)


def _unique(*action_lists: List[str]) -> List[str]:
    seen = []
    for actions in action_lists:
        for action in actions:
            if action not in seen:
                seen.append(action)
    return seen


class Binder:
    """Base binder for one capability."""

    capability: str = ""
    actions: Dict[str, List[str]] = {}

    def bind(self,
             source: BaseComponent,
             target: BaseComponent,
             directive: BindingDirective,
             data: Dict[str, Any],
             framework: ComplianceFramework) -> BindingResult:
        result = BindingResult(
            source=source.spec.name,
            target=target.spec.name,
            capability=directive.capability,
            access=directive.access,
        )
        resources = self.resources(data)
        if self.actions and resources:
            result.statements.append(iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=self.actions[directive.access],
                resources=resources,
                conditions=transport_conditions(framework)
            ))
        kms_key_arn = data.get("kmsKeyArn")
        if kms_key_arn and self.actions:
            result.statements.append(iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["kms:Decrypt", "kms:GenerateDataKey"],
                resources=[kms_key_arn],
                conditions=transport_conditions(framework)
            ))

        prefix = directive.resolved_prefix()
        for suffix, value in self.environment(data).items():
            name = f"{prefix}_{suffix}"
            result.environment[directive.env.get(name, name)] = value

        self.configure_network(source, target, data)
        return result

    def resources(self, data: Dict[str, Any]) -> List[str]:
        return []

    def environment(self, data: Dict[str, Any]) -> Dict[str, str]:
        return {}

    def configure_network(self, source: BaseComponent, target: BaseComponent, data: Dict[str, Any]) -> None:
        """Open the target's security group to the source where both exist."""


class QueueBinder(Binder):
    capability = QUEUE_SQS
    _read = [
        "sqs:ReceiveMessage",
        "sqs:DeleteMessage",
        "sqs:ChangeMessageVisibility",
        "sqs:GetQueueAttributes",
        "sqs:GetQueueUrl",
    ]
    _write = ["sqs:SendMessage", "sqs:GetQueueAttributes", "sqs:GetQueueUrl"]
    actions = {
        "read": _read,
        "write": _write,
        "readwrite": _unique(_read, _write),
        "admin": ["sqs:*"],
    }

    def resources(self, data):
        return [data["queueArn"]]

    def environment(self, data):
        return {"QUEUE_URL": data["queueUrl"], "QUEUE_ARN": data["queueArn"]}


class DynamoDbBinder(Binder):
    capability = DB_DYNAMODB
    _read = [
        "dynamodb:GetItem",
        "dynamodb:BatchGetItem",
        "dynamodb:Query",
        "dynamodb:Scan",
        "dynamodb:ConditionCheckItem",
        "dynamodb:DescribeTable",
    ]
    _write = [
        "dynamodb:PutItem",
        "dynamodb:UpdateItem",
        "dynamodb:DeleteItem",
        "dynamodb:BatchWriteItem",
        "dynamodb:DescribeTable",
    ]
    actions = {
        "read": _read,
        "write": _write,
        "readwrite": _unique(_read, _write),
        "admin": ["dynamodb:*"],
    }

    def resources(self, data):
        return [data["tableArn"], f"{data['tableArn']}/index/*"]

    def environment(self, data):
        return {"TABLE_NAME": data["tableName"], "TABLE_ARN": data["tableArn"]}


class CacheBinder(Binder):
    capability = CACHE_REDIS

    def environment(self, data):
        return {"HOST": data["host"], "PORT": str(data["port"])}

    def configure_network(self, source, target, data):
        source_group = source.get_binding_security_group()
        target_group = target.get_security_group()
        if source_group is None or target_group is None:
            logger.debug(
                f"Skipping security group rule for {source.spec.name} -> {target.spec.name}: "
                f"no security group on one side"
            )
            return
        target_group.add_ingress_rule(
            peer=source_group,
            connection=ec2.Port.tcp(int(target.config["port"])),
            description=f"Allow {source.spec.name} to reach {target.spec.name}"
        )


class FileSystemBinder(Binder):
    capability = STORAGE_EFS
    actions = {
        "read": ["elasticfilesystem:ClientMount"],
        "write": ["elasticfilesystem:ClientMount", "elasticfilesystem:ClientWrite"],
        "readwrite": ["elasticfilesystem:ClientMount", "elasticfilesystem:ClientWrite"],
        "admin": [
            "elasticfilesystem:ClientMount",
            "elasticfilesystem:ClientWrite",
            "elasticfilesystem:ClientRootAccess",
        ],
    }

    def resources(self, data):
        return [data["fileSystemArn"]]

    def environment(self, data):
        return {"FILE_SYSTEM_ID": data["fileSystemId"]}

    def configure_network(self, source, target, data):
        source_group = source.get_binding_security_group()
        target_group = target.get_security_group()
        if source_group is not None and target_group is not None:
            target_group.add_ingress_rule(
                peer=source_group,
                connection=ec2.Port.tcp(2049),
                description=f"Allow NFS from {source.spec.name}"
            )


class HttpApiBinder(Binder):
    capability = API_HTTP
    actions = {
        "read": ["execute-api:Invoke"],
        "write": ["execute-api:Invoke"],
        "readwrite": ["execute-api:Invoke"],
        "admin": ["execute-api:Invoke", "execute-api:ManageConnections"],
    }

    def resources(self, data):
        return [
            f"arn:{aws_cdk.Aws.PARTITION}:execute-api:{aws_cdk.Aws.REGION}:"
            f"{aws_cdk.Aws.ACCOUNT_ID}:{data['apiId']}/*"
        ]

    def environment(self, data):
        return {"API_ENDPOINT": data["apiEndpoint"]}


DEFAULT_BINDERS = (QueueBinder(), DynamoDbBinder(), CacheBinder(), FileSystemBinder(), HttpApiBinder())


class BindingResolver:
    """Resolves and applies every binding directive of a set of components."""

    def __init__(self,
                 components: Dict[str, BaseComponent],
                 framework: ComplianceFramework,
                 binders=DEFAULT_BINDERS) -> None:
        self.components = components
        self.framework = ComplianceFramework.parse(framework)
        self._binders = {binder.capability: binder for binder in binders}

    def resolve(self, source: BaseComponent, directive: BindingDirective) -> BindingResult:
        """
        Resolve one directive of ``source``.

        Raises:
            ValidationError: If the access level is unknown
            BindingError: If the target, capability or binder is missing
        """
        if directive.access not in ACCESS_LEVELS:
            raise ValidationError(
                f"Invalid access level '{directive.access}' for binding "
                f"{source.spec.name} -> {directive.to}. Expected one of: {', '.join(ACCESS_LEVELS)}",
                parameter_name="access",
                provided_value=directive.access
            )

        target = self.components.get(directive.to)
        if target is None:
            raise BindingError(
                f"Component '{source.spec.name}' binds to unknown component '{directive.to}'",
                source=source.spec.name,
                target=directive.to
            )

        capabilities = target.get_capabilities()
        data = capabilities.get(directive.capability)
        if data is None:
            raise BindingError(
                f"Component '{directive.to}' does not provide capability '{directive.capability}'. "
                f"Available: {', '.join(sorted(capabilities)) or 'none'}",
                source=source.spec.name,
                target=directive.to
            )

        binder = self._binders.get(directive.capability)
        if binder is None:
            raise BindingError(
                f"No binder supports capability '{directive.capability}'",
                source=source.spec.name,
                target=directive.to
            )

        return binder.bind(source, target, directive, data, self.framework)

    def bind_all(self) -> List[BindingResult]:
        results = []
        for source in self.components.values():
            for directive in source.spec.binds:
                result = self.resolve(source, directive)
                source.apply_binding(result)
                logger.info(
                    f"Bound {result.source} -> {result.target} ({result.capability}, {result.access})"
                )
                results.append(result)
        return results
