"""KMS key mixin for platform components."""

from typing import Any, Dict, Optional

from aws_cdk import aws_kms as kms

from ..validators import AWSResourceValidator


class KmsKeyMixin:
    """Mixin resolving the customer managed key a component encrypts with."""

    def resolve_kms_key(self,
                        handle: str,
                        encryption_config: Dict[str, Any],
                        description: str,
                        removal_policy=None) -> Optional[kms.IKey]:
        """
        Import or create a customer managed KMS key.

        Args:
            handle: Construct handle the key is registered under
            encryption_config: ``{kmsKeyArn, customerManagedKey: {create, enableRotation}}``
            description: Description for a created key
            removal_policy: Removal policy for a created key

        Returns:
            The key, or None when the service-managed key should be used
        """
        key_arn = encryption_config.get("kmsKeyArn")
        if key_arn:
            AWSResourceValidator.validate_arn(key_arn, service="kms")
            key = kms.Key.from_key_arn(self, f"{handle}-imported", key_arn)
            self.register_construct(handle, key)
            return key

        customer_managed = encryption_config.get("customerManagedKey") or {}
        if not customer_managed.get("create"):
            return None

        key = kms.Key(
            self,
            handle,
            description=description,
            enable_key_rotation=customer_managed.get("enableRotation", True),
            alias=customer_managed.get("alias"),
            removal_policy=removal_policy
        )
        self.register_construct(handle, key)
        return key
