"""Security group mixin for platform components."""

from typing import List, Optional

from aws_cdk import aws_ec2 as ec2

from ..validators import ConfigValidator


class SecurityGroupMixin:
    """
    Mixin class providing security group functionality.

    Creates component security groups and opens ports to CIDR ranges or to
    other security groups with validated inputs.
    """

    def create_component_security_group(self,
                                        name: str,
                                        vpc: ec2.IVpc,
                                        ports: List[int],
                                        allowed_cidrs: Optional[List[str]] = None,
                                        description: Optional[str] = None,
                                        allow_all_outbound: bool = False) -> ec2.SecurityGroup:
        """
        Create a security group that admits ``ports`` from ``allowed_cidrs``.

        Args:
            name: Logical name used for the construct id and description
            vpc: VPC to create the security group in
            ports: TCP ports to open
            allowed_cidrs: CIDR blocks allowed to connect
            description: Optional description for the security group
            allow_all_outbound: Whether to allow all egress

        Returns:
            The created security group
        """
        for port in ports:
            ConfigValidator.validate_port_range(port)

        security_group = ec2.SecurityGroup(
            self,
            f"{name}-security-group",
            vpc=vpc,
            description=description or f"Security group for {name}",
            allow_all_outbound=allow_all_outbound
        )

        self.allow_ingress_from_cidrs(security_group, ports, allowed_cidrs or [])
        return security_group

    def allow_ingress_from_cidrs(self,
                                 security_group: ec2.SecurityGroup,
                                 ports: List[int],
                                 allowed_cidrs: List[str]) -> None:
        for cidr in allowed_cidrs:
            ConfigValidator.validate_cidr_block(cidr)
            for port in ports:
                security_group.add_ingress_rule(
                    peer=ec2.Peer.ipv6(cidr) if ":" in cidr else ec2.Peer.ipv4(cidr),
                    connection=ec2.Port.tcp(port),
                    description=f"Allow TCP {port} from {cidr}"
                )

    def allow_ingress_from_security_group(self,
                                          security_group: ec2.ISecurityGroup,
                                          source: ec2.ISecurityGroup,
                                          port: int,
                                          description: Optional[str] = None) -> None:
        ConfigValidator.validate_port_range(port)
        security_group.add_ingress_rule(
            peer=source,
            connection=ec2.Port.tcp(port),
            description=description or f"Allow TCP {port} from bound component"
        )
