# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Iterable, List, Optional, Tuple

from azsubnets.core.platform.constructs import SubnetProvider

from .definitions import (
    AvailabilityZone,
    LookupFailed,
    NetworkBlock,
    ProviderError,
    ReconciliationReport,
    SubnetReconciliationError,
    SubnetRecord,
    SubnetReconcilerConfig,
    TaggingFailed,
    VPCContext,
)
from .inventory import SubnetInventory
from .planner import build_subnet_candidates
from .provisioner import SubnetProvisioner

module_logger = logging.getLogger(__name__)


class AZReconciler:
    """Makes sure every available AZ of the region has a private subnet in the VPC.

    AZs are processed one at a time, in the order they are given. The candidate blocks are computed once per pass and
    shared by all AZs: blocks taken earlier in the same pass are rejected by the provider as conflicts, which moves
    the search on to the next candidate. The first unrecoverable error aborts the pass. A failure to tag a new subnet
    does not, it is recorded in the report. New subnets carry the private marker and the cluster id from creation on,
    so the next pass counts them for their AZ and completes their tags.
    """

    def __init__(
        self, provider: SubnetProvider, inventory: SubnetInventory, provisioner: SubnetProvisioner, config: SubnetReconcilerConfig
    ) -> None:
        self._provider = provider
        self._inventory = inventory
        self._provisioner = provisioner
        self._config = config

    def reconcile(self, vpc: VPCContext, region_azs: Optional[Iterable[AvailabilityZone]] = None) -> List[str]:
        """Returns the ids of all the private subnets of ``vpc`` once every available AZ is covered."""
        return self.reconcile_with_report(vpc, region_azs).subnet_ids

    def reconcile_with_report(self, vpc: VPCContext, region_azs: Optional[Iterable[AvailabilityZone]] = None) -> ReconciliationReport:
        module_logger.info(f"Gathering all private subnets in vpc {vpc.vpc_id}")
        zones = list(region_azs) if region_azs is not None else self._list_zones()

        private_subnets = self._inventory.private_subnets(self._inventory.list_vpc_subnets(vpc))
        coverage = self._inventory.coverage_by_az(private_subnets, zones)

        report = ReconciliationReport()
        for subnet in private_subnets:
            report.add_subnet_id(subnet.subnet_id)
            if self._provisioner.needs_tag_repair(subnet):
                self._repair_tags(subnet, report)

        candidates: Optional[Tuple[NetworkBlock, ...]] = None
        for zone in zones:
            module_logger.info(f"Checking if private subnet exists in zone {zone.name}")
            if not zone.is_available:
                module_logger.warning(f"Skipping zone {zone.name} in state {zone.state!r}")
                report.skipped_zones.append(zone.name)
                continue
            if coverage[zone.name]:
                continue

            module_logger.info(f"No private subnet found in {zone.name}")
            try:
                if candidates is None:
                    candidates = build_subnet_candidates(vpc, self._config.subnet_prefix_length)
                subnet = self._provisioner.create_private_subnet(vpc, zone.name, candidates)
            except TaggingFailed as error:
                module_logger.warning(f"Subnet {error.subnet.subnet_id} in {zone.name} was created but not tagged: {error}")
                report.tagging_failures.append(error)
                subnet = error.subnet
            except SubnetReconciliationError as error:
                if error.availability_zone is None:
                    error.availability_zone = zone.name
                module_logger.error(f"Failed to create private subnet in {zone.name}: {error}")
                raise

            coverage[zone.name] = True
            report.created.append(subnet)
            report.add_subnet_id(subnet.subnet_id)

        if not report.subnet_ids:
            raise LookupFailed(f"failed to get list of private subnet ids for vpc {vpc.vpc_id}")

        module_logger.info(
            f"VPC {vpc.vpc_id} has {len(report.subnet_ids)} private subnets, created {len(report.created)} in this pass"
        )
        return report

    def _repair_tags(self, subnet: SubnetRecord, report: ReconciliationReport) -> None:
        try:
            report.repaired.append(self._provisioner.repair_tags(subnet))
        except TaggingFailed as error:
            module_logger.warning(f"Subnet {subnet.subnet_id} in {subnet.availability_zone} is still missing tags: {error}")
            report.tagging_failures.append(error)

    def _list_zones(self) -> List[AvailabilityZone]:
        try:
            return self._provider.list_availability_zones()
        except ProviderError as error:
            raise LookupFailed("error getting availability zones") from error
