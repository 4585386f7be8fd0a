# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Dict, Iterable, List, Optional

from azsubnets.core.platform.constructs import SubnetProvider
from azsubnets.utils.polling import BoundedPoller

from .definitions import (
    CLUSTER_OWNERSHIP_TAG_VALUES,
    AvailabilityZone,
    LookupFailed,
    ProviderError,
    SubnetRecord,
    SubnetReconcilerConfig,
    VPCContext,
)

module_logger = logging.getLogger(__name__)


class SubnetInventory:
    """Read side of the reconciliation: resolves the cluster VPC and classifies which AZs already have a private subnet.

    The first subnet listing of a pass goes through a :class:`BoundedPoller`, so that it tolerates credentials that
    have just been issued and are not accepted by the provider yet.
    """

    def __init__(self, provider: SubnetProvider, config: SubnetReconcilerConfig, poller: Optional[BoundedPoller] = None) -> None:
        self._provider = provider
        self._config = config
        self._poller = poller if poller else BoundedPoller(config.poll_interval_in_secs, config.poll_timeout_in_secs)

    def resolve_cluster_vpc(self, cluster_id: str) -> VPCContext:
        """Find the VPC that holds the subnets owned by (or shared with) ``cluster_id``."""
        owned_tag_key = self._config.cluster_owned_tag_key(cluster_id)
        subnets = self._poller.poll(self._provider.list_subnets)

        vpc_ids: List[str] = []
        for subnet in subnets:
            if subnet.tags.get(owned_tag_key) in CLUSTER_OWNERSHIP_TAG_VALUES and subnet.vpc_id not in vpc_ids:
                vpc_ids.append(subnet.vpc_id)

        if not vpc_ids:
            raise LookupFailed(f"failed to get cluster vpc id, could not find subnets tagged with {owned_tag_key!r}")
        if len(vpc_ids) > 1:
            raise LookupFailed(f"more than one vpc found associated with cluster {cluster_id} subnets: {vpc_ids}")

        try:
            vpcs = self._provider.list_vpcs(vpc_ids)
        except ProviderError as error:
            raise LookupFailed(f"error getting vpc with id {vpc_ids[0]}") from error
        if not vpcs:
            raise LookupFailed(f"no vpc found with id {vpc_ids[0]}")
        if len(vpcs) > 1:
            raise LookupFailed(f"more than one vpc found associated with cluster {cluster_id} subnets")

        module_logger.info(f"Found cluster {cluster_id} vpc {vpcs[0].vpc_id} ({vpcs[0].cidr_block})")
        return vpcs[0]

    def list_vpc_subnets(self, vpc: VPCContext) -> List[SubnetRecord]:
        """Polled listing of the subnets in ``vpc``. Raises :class:`PollTimeout` if the provider never answers."""
        module_logger.info(f"Gathering subnets of VPC {vpc.vpc_id}")
        subnets = self._poller.poll(self._provider.list_subnets, vpc.vpc_id)
        associated = [subnet for subnet in subnets if subnet.vpc_id == vpc.vpc_id]
        if not associated:
            raise LookupFailed(f"unable to find subnets associated with vpc {vpc.vpc_id}")
        return associated

    def private_subnets(self, subnets: Iterable[SubnetRecord]) -> List[SubnetRecord]:
        return [subnet for subnet in subnets if subnet.has_tag(self._config.private_subnet_tag_key)]

    @staticmethod
    def is_zone_covered(private_subnets: Iterable[SubnetRecord], zone: AvailabilityZone) -> bool:
        return zone.is_available and any(subnet.availability_zone == zone.name for subnet in private_subnets)

    @classmethod
    def coverage_by_az(cls, private_subnets: Iterable[SubnetRecord], zones: Iterable[AvailabilityZone]) -> Dict[str, bool]:
        private_subnets = list(private_subnets)
        return {zone.name: cls.is_zone_covered(private_subnets, zone) for zone in zones}

    def list_private_by_az(self, vpc: VPCContext, zones: Iterable[AvailabilityZone]) -> Dict[str, bool]:
        """Map each zone name to whether it already has a private subnet of ``vpc`` (only available zones count)."""
        return self.coverage_by_az(self.private_subnets(self.list_vpc_subnets(vpc)), zones)
