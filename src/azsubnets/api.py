# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Dict, List, Optional, Tuple

import boto3

from ._logging_config import init_basic_logging
from .core.network.definitions import (
    AddressSpaceExhausted,
    AvailabilityZone,
    InvalidAddressSpace,
    LookupFailed,
    NetworkBlock,
    PollTimeout,
    ProviderError,
    ProviderErrorKind,
    ProvisionFailed,
    ReconciliationReport,
    SubnetRecord,
    SubnetReconcilerConfig,
    SubnetReconciliationError,
    TaggingFailed,
    VPCContext,
)
from .core.network.inventory import SubnetInventory
from .core.network.planner import build_subnet_candidates, plan
from .core.network.provisioner import SubnetProvisioner, build_subnet_tags
from .core.network.reconciler import AZReconciler
from .core.platform.constructs import SubnetProvider
from .core.platform.definitions.aws.common import AWSAccessPair, get_session
from .core.platform.definitions.aws.ec2.client_wrapper import EC2SubnetProvider

module_logger = logging.getLogger(__name__)


def _create_provider(session: Optional[boto3.Session], region: Optional[str]) -> EC2SubnetProvider:
    return EC2SubnetProvider(session if session else get_session(region=region), region)


def get_cluster_vpc_cidr(
    cluster_id: str,
    region: Optional[str] = None,
    session: Optional[boto3.Session] = None,
    config: Optional[SubnetReconcilerConfig] = None,
    provider: Optional[SubnetProvider] = None,
) -> Tuple[str, str]:
    """Returns the id and the CIDR block of the VPC that holds the subnets of ``cluster_id``."""
    config = config if config else SubnetReconcilerConfig.from_env()
    provider = provider if provider else _create_provider(session, region)
    vpc = SubnetInventory(provider, config).resolve_cluster_vpc(cluster_id)
    if vpc.cidr_block is None:
        raise LookupFailed(f"VPC {vpc.vpc_id} of cluster {cluster_id} has no cidr block")
    return vpc.vpc_id, str(vpc.cidr_block)


def ensure_private_subnets(
    cluster_id: str,
    region: Optional[str] = None,
    session: Optional[boto3.Session] = None,
    user_tags: Optional[Dict[str, str]] = None,
    config: Optional[SubnetReconcilerConfig] = None,
    provider: Optional[SubnetProvider] = None,
) -> List[str]:
    """Make sure the VPC of ``cluster_id`` has a private subnet in every available AZ of the region.

    Safe to call repeatedly: subnets created by a previous (even partially failed) call are discovered and reused.

    :return: ids of all the private subnets of the cluster VPC
    """
    config = config if config else SubnetReconcilerConfig.from_env()
    provider = provider if provider else _create_provider(session, region)
    inventory = SubnetInventory(provider, config)
    provisioner = SubnetProvisioner(provider, config, cluster_id, user_tags)

    vpc = inventory.resolve_cluster_vpc(cluster_id)
    return AZReconciler(provider, inventory, provisioner, config).reconcile(vpc)
