#!/usr/bin/env python3

import logging
import os

import aws_cdk as cdk
from cdk_nag import AwsSolutionsChecks, NagSuppressions

from components.common.manifest import load_manifest
from components.common.plan import format_plan
from components.service import ServiceStack
from helper.config import PlatformConfig
from helper.logging_config import SERVICE_NAME_ENV_VAR, configure_debug_logging, setup_logging

logger = setup_logging(module_name="app")

app = cdk.App()

if app.node.try_get_context('debug'):
    configure_debug_logging()

manifest_path = app.node.try_get_context('manifest') or os.environ.get('SERVICE_MANIFEST', 'service.yml')
environment = app.node.try_get_context('environment') or os.environ.get('ENVIRONMENT', 'dev')
region = app.node.try_get_context('region') or os.environ.get('CDK_DEFAULT_REGION', 'us-east-1')

manifest = load_manifest(manifest_path, environment)
os.environ[SERVICE_NAME_ENV_VAR] = manifest.service

platform_config = PlatformConfig(app.node.try_get_context('platformConfigDir'))

service_stack = ServiceStack(app, f"{manifest.service}-{environment}",
                             manifest=manifest,
                             environment=environment,
                             platform_config=platform_config,
                             env={
                                 "region": region,
                                 "account": os.environ.get('CDK_DEFAULT_ACCOUNT')
                             },
                             termination_protection=environment == 'prod'
                             )

logger.info(f"Synthesis plan for {manifest.service} ({environment}):\n"
            f"{format_plan(service_stack.components.values(), service_stack.bindings)}")

# Apply CDK Nag AwsSolutions checks to the service stack
cdk.Aspects.of(app).add(AwsSolutionsChecks())

# Suppressions for patterns the components use on purpose
NagSuppressions.add_stack_suppressions(service_stack, [
    {"id": "AwsSolutions-IAM4", "reason": "Glue jobs run with the AWSGlueServiceRole managed policy"},
    {"id": "AwsSolutions-SQS3", "reason": "Dead-letter queues do not have a dead-letter queue of their own"},
    {"id": "AwsSolutions-S1", "reason": "Access log buckets are themselves used for storing access logs"},
    {"id": "CdkNagValidationFailure",
     "reason": "Security group rules use intrinsic functions which cannot be validated at synth time"},
])

if logging.getLogger().isEnabledFor(logging.DEBUG):
    for component in service_stack.components.values():
        logger.debug(f"{component.spec.name}: {component.builder.get_build_summary().to_dict()}")

app.synth()
